"""Integration descriptor schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

# ------------------------------------------------------------------
# Bindings
# ------------------------------------------------------------------


class InputBinding(BaseModel):
    """One named request input, either a literal or a runtime variable reference."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    input_name: str = Field(..., description="Name used in the body, path placeholders and query params")
    input_type: str = Field(default="variable", description="'value' for literals, 'variable' for runtime lookups")
    input_value: Any = Field(default=None, description="Literal value when input_type is 'value'")
    input_variable: Any = Field(default=None, description="Runtime variable identifier")
    traversal_path: str = Field(default="", description="Dotted path inside the body template")
    format: str | None = Field(default=None, description="'Date', 'Evaluation' or any other passthrough tag")
    style: str | None = Field(default=None, description="Date pattern (moment-style tokens)")
    function: str | None = Field(default=None, description="Expression evaluated when format is 'Evaluation'")
    header: bool = Field(default=False, description="Copy the resolved value into request headers")


class OutputBinding(BaseModel):
    """One named response output mapped onto a runtime variable."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    api_name: str = Field(..., description="Output key declared by the integration")
    output_variable: Any = Field(default=None, description="Runtime variable identifier to populate")
    traversal_path: str = Field(default="", alias="traversalPath", description="Dotted path into the decoded response")
    array_configs: list[dict[str, Any]] = Field(
        default_factory=list,
        alias="arrayConfigs",
        description="Ordered {field: expected} matchers for array elements",
    )
    data_type: str | None = Field(default=None, description="String, Number, Boolean or Date")


class SecretBinding(BaseModel):
    """An input whose value comes from the secret collaborator."""

    input_name: str = Field(..., description="Resolved input name")
    secret_key: str = Field(..., description="Lookup key in the secret store")
    header: bool = Field(default=False, description="Copy the secret into request headers")


class CustomInput(BaseModel):
    """Descriptor-defined input formatted after the body is built."""

    name: str
    value: Any = None
    format: str | None = None
    style: str | None = None
    function: str | None = None


# ------------------------------------------------------------------
# Scripting
# ------------------------------------------------------------------


class HelperExpression(BaseModel):
    """A named helper bound before the main expression runs."""

    name: str = Field(..., description="Binding name inside the sandbox")
    expression: str = Field(..., description="Expression source, usually a lambda")


class CustomScript(BaseModel):
    """Helpers plus a main expression producing derived outputs."""

    helpers: list[HelperExpression] = Field(default_factory=list)
    main: str = Field(..., description="Expression that evaluates to a mapping")


# ------------------------------------------------------------------
# Request / response options
# ------------------------------------------------------------------


class RequestOptions(BaseModel):
    """Target of the outbound call."""

    model_config = {"extra": "ignore"}

    protocol: str = Field(default="https", description="'http' or 'https'")
    hostname: str = Field(default="", description="Target host")
    port: int | None = Field(default=None, description="Explicit port")
    path: str = Field(default="/", description="Path, may contain :name placeholders")
    method: str = Field(default="GET", description="HTTP method")
    headers: dict[str, Any] = Field(default_factory=dict)


class RequestOptionConfigs(BaseModel):
    set_content_length: bool = False
    pfx: bool = False


class ResponseOptionConfigs(BaseModel):
    skip_status_message_check: bool = False


class CertificateAttributes(BaseModel):
    model_config = {"populate_by_name": True, "extra": "ignore"}

    original_filename: str = ""
    container_name: str = Field(default="", alias="cloudcontainername")
    file_path: str = Field(default="", alias="cloudfilepath")
    client_encryption_algo: str = ""


class SecurityCertificate(BaseModel):
    """Stored credential describing where client certificate material lives."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    created_at: datetime | None = Field(default=None, alias="createdat")
    attributes: CertificateAttributes = Field(default_factory=CertificateAttributes)


class Credentials(BaseModel):
    security_certificate: SecurityCertificate | None = None


# ------------------------------------------------------------------
# Descriptor
# ------------------------------------------------------------------


class IntegrationDescriptor(BaseModel):
    """Declarative description of one third-party API call."""

    model_config = {"populate_by_name": True, "extra": "ignore"}

    name: str = Field(default="", description="Integration display name")
    request_type: str = Field(default="json", description="json, xml or form-urlencoded")

    default_configuration: dict[str, Any] | None = Field(default=None, description="Body template (testing)")
    active_default_configuration: dict[str, Any] | None = Field(default=None, description="Body template (active)")

    inputs: list[InputBinding] = Field(default_factory=list)
    outputs: list[OutputBinding] = Field(default_factory=list)
    secrets: list[SecretBinding] = Field(default_factory=list)
    custom_inputs: list[CustomInput] = Field(default_factory=list)

    request_options: RequestOptions = Field(default_factory=RequestOptions)
    active_request_options: RequestOptions | None = None
    request_option_configs: RequestOptionConfigs | None = None
    response_option_configs: ResponseOptionConfigs = Field(default_factory=ResponseOptionConfigs)
    timeout: float | None = Field(default=None, description="Transport timeout in seconds")

    custom_query_params: dict[str, Any] | None = None
    url_encode_format: str = "utf-8"

    custom_script: CustomScript | None = None
    format_request_body: str | None = Field(default=None, description="Expression rewriting the JSON body")
    raw_data_parse: bool = Field(default=False, description="Decode the payload embedded at raw_data_traversal_path")
    raw_data_traversal_path: str | None = Field(default=None, description="Path to an embedded encoded payload")

    xml_library: str = Field(default="compact", description="'builder' or 'compact' serializer")
    xml_configs: dict[str, Any] | None = None
    xml_parser_configs: dict[str, Any] | None = None
    stringify: bool = False

    require_security_cert: bool = False
    credentials: Credentials | None = None
