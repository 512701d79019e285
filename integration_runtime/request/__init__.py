"""Request synthesis."""

from integration_runtime.request.builder import (
    RequestBuilder,
    RequestSpec,
    generate_dynamic_path,
    generate_dynamic_query_string,
    get_body_template,
)
from integration_runtime.request.inputs import SecretResolver, resolve_inputs

__all__ = [
    "RequestBuilder",
    "RequestSpec",
    "SecretResolver",
    "generate_dynamic_path",
    "generate_dynamic_query_string",
    "get_body_template",
    "resolve_inputs",
]
