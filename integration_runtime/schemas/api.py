"""HTTP request and response schemas for the integration endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from integration_runtime.schemas.descriptor import IntegrationDescriptor
from integration_runtime.schemas.runtime import RuntimeVariableSet, Segment, StrategyMode


class ExecuteIntegrationRequest(BaseModel):
    """Descriptor plus the runtime state it executes against."""

    model_config = {"populate_by_name": True}

    descriptor: IntegrationDescriptor
    variables: RuntimeVariableSet = Field(default_factory=RuntimeVariableSet)
    strategy_mode: StrategyMode = Field(default="testing", alias="strategyMode")
    segment: Segment | None = None


class DecodeIntegrationRequest(ExecuteIntegrationRequest):
    """Descriptor plus a raw response body to decode and map."""

    raw_response: Any = Field(..., alias="rawResponse", description="Body as returned by the API")


class RequestPreview(BaseModel):
    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    timeout: float | None = None


class ExecuteIntegrationResponse(BaseModel):
    requestId: str
    result: dict[str, Any] = Field(default_factory=dict)
    response: Any = None
    status: int


class PreviewIntegrationResponse(BaseModel):
    requestId: str
    request: RequestPreview


class DecodeIntegrationResponse(BaseModel):
    requestId: str
    result: dict[str, Any] = Field(default_factory=dict)
