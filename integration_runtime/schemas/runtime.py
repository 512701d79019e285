"""Runtime variable and execution result schemas."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from integration_runtime.schemas.descriptor import InputBinding, OutputBinding

StrategyMode = Literal["testing", "active"]


class VariableDeclaration(BaseModel):
    """A runtime variable known to the caller."""

    id: str = Field(..., description="Identifier referenced by bindings")
    title: str = Field(..., description="Key used in values and in the output map")


class RuntimeVariableSet(BaseModel):
    """Caller-supplied values plus the declarations bindings resolve against."""

    values: dict[str, Any] = Field(default_factory=dict, description="Current values keyed by variable title")
    input_variables: list[VariableDeclaration] = Field(default_factory=list)
    output_variables: list[VariableDeclaration] = Field(default_factory=list)

    def input_title(self, identifier: Any) -> str | None:
        return _title_for(self.input_variables, identifier)

    def output_title(self, identifier: Any) -> str | None:
        return _title_for(self.output_variables, identifier)


def _title_for(declarations: list[VariableDeclaration], identifier: Any) -> str | None:
    if isinstance(identifier, dict):
        # inline declaration, e.g. {"id": "v1", "title": "score"}
        if identifier.get("title"):
            return str(identifier["title"])
        identifier = identifier.get("id")
    if identifier is None or identifier == "":
        return None
    key = str(identifier)
    # later declarations win on duplicate ids
    titles = {declaration.id: declaration.title for declaration in declarations}
    return titles.get(key, key)


class Segment(BaseModel):
    """Per-strategy binding overlay for a descriptor."""

    inputs: list[InputBinding] = Field(default_factory=list)
    outputs: list[OutputBinding] = Field(default_factory=list)


class IntegrationResult(BaseModel):
    """Successful execution payload returned to the caller."""

    result: dict[str, Any] = Field(default_factory=dict, description="Coerced outputs keyed by variable title")
    response: Any = Field(default=None, description="Raw response body")
    status: int = Field(..., description="Upstream HTTP status code")
