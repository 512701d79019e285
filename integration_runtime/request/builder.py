"""Synthesis of transport-ready requests from integration descriptors."""

from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import quote

from integration_runtime.errors import CertificateUnavailableError, IntegrationError
from integration_runtime.helpers.coerce import is_truthy, to_text
from integration_runtime.helpers.traversal import assign
from integration_runtime.request.inputs import format_inputs
from integration_runtime.request.xml import serialize_xml
from integration_runtime.sandbox import evaluate_expression
from integration_runtime.schemas.descriptor import IntegrationDescriptor, RequestOptions
from integration_runtime.schemas.runtime import StrategyMode

logger = logging.getLogger(__name__)

# characters encodeURIComponent leaves untouched besides alphanumerics and "-_.~"
URI_COMPONENT_SAFE = "!*'()"

BEARER_TOKEN_INPUT = "request_bearer_token"
PATH_VARIABLE_INPUT = "path_variable"


@dataclass
class RequestSpec:
    """Everything the transport needs to perform one call."""

    method: str
    protocol: str
    hostname: str
    path: str
    port: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    timeout: float | None = None
    skip_status_message_check: bool = False
    client_certificate: bytes | None = None
    client_certificate_path: str | None = None

    @property
    def url(self) -> str:
        port = f":{self.port}" if self.port else ""
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"{self.protocol}://{self.hostname}{port}{path}"

    def encoded_body(self) -> bytes | None:
        return encode_body(self.body)


def encode_body(body: Any) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, separators=(",", ":"), default=str).encode("utf-8")


def get_body_template(descriptor: IntegrationDescriptor, strategy_mode: StrategyMode) -> dict[str, Any]:
    """Pick the active template in active mode when declared, else the default one."""
    if strategy_mode == "active" and descriptor.active_default_configuration:
        return descriptor.active_default_configuration
    return descriptor.default_configuration or {}


def get_request_options(descriptor: IntegrationDescriptor, strategy_mode: StrategyMode) -> RequestOptions:
    if strategy_mode == "active" and descriptor.active_request_options is not None:
        return descriptor.active_request_options
    return descriptor.request_options


def encode_component(value: Any, encoding: str = "utf-8") -> str:
    return quote(to_text(value), safe=URI_COMPONENT_SAFE, encoding=encoding)


def generate_dynamic_path(path: str, inputs: dict[str, Any]) -> str:
    """Replace ``:name`` placeholders with encoded inputs, consuming those inputs."""
    for key in list(inputs):
        placeholder = re.compile(f":{re.escape(key)}(?![A-Za-z0-9_])")
        if placeholder.search(path):
            replacement = encode_component(inputs.pop(key))
            path = placeholder.sub(lambda _match: replacement, path)
    return path


def generate_dynamic_query_string(
    inputs: Mapping[str, Any],
    query_params: Mapping[str, Any],
    url_encode_format: str = "utf-8",
) -> str:
    """Render declared query params, preferring resolved inputs over defaults."""
    try:
        entries: list[str] = []
        for key, default in query_params.items():
            value = inputs[key] if key in inputs else default
            if value is None or value == "":
                continue
            if isinstance(value, float) and value != value:
                continue
            entries.append(f"{key}={encode_component(value, url_encode_format)}")
        return "&".join(entries)
    except LookupError as exc:
        return f"error={encode_component(str(exc))}"


def flatten_form_body(body: Any) -> str:
    """Percent-encode a body tree as ``key=value&...`` pairs.

    Nested mappings use ``parent[child]`` keys and lists repeat their key.
    """
    pairs: list[tuple[str, str]] = []

    def _flatten(prefix: str, value: Any) -> None:
        if isinstance(value, Mapping):
            for key, item in value.items():
                _flatten(f"{prefix}[{key}]" if prefix else str(key), item)
        elif isinstance(value, list):
            for item in value:
                _flatten(prefix, item)
        else:
            pairs.append((prefix, "" if value is None else to_text(value)))

    if isinstance(body, Mapping):
        _flatten("", body)
    return "&".join(f"{encode_component(key)}={encode_component(value)}" for key, value in pairs)


class RequestBuilder:
    """Build a ``RequestSpec`` from a descriptor, strategy mode and resolved inputs."""

    def __init__(self, *, default_timeout: float | None = None) -> None:
        self._default_timeout = default_timeout

    def build(
        self,
        descriptor: IntegrationDescriptor,
        strategy_mode: StrategyMode,
        resolved_inputs: Mapping[str, Any],
        *,
        certificate_path: Path | None = None,
    ) -> RequestSpec:
        inputs = format_inputs(descriptor, dict(resolved_inputs))
        options = copy.deepcopy(get_request_options(descriptor, strategy_mode))

        available = set(inputs)
        path = generate_dynamic_path(options.path or "/", inputs)
        consumed = available - set(inputs)

        path_variable = inputs.get(PATH_VARIABLE_INPUT)
        if isinstance(path_variable, str) and inputs.get(path_variable) is not None:
            path = f"{path.rstrip('/')}/{encode_component(inputs[path_variable])}"

        body = self._build_body(descriptor, strategy_mode, inputs, consumed)

        headers = {str(name): to_text(value) for name, value in options.headers.items()}
        headers.update(self._headers_from_inputs(descriptor, inputs))
        bearer_token = inputs.get(BEARER_TOKEN_INPUT)
        if bearer_token:
            headers["Authorization"] = f"Bearer {to_text(bearer_token)}"

        if descriptor.custom_query_params:
            query = generate_dynamic_query_string(inputs, descriptor.custom_query_params, descriptor.url_encode_format)
            path = f"{path}?{query}"

        spec = RequestSpec(
            method=(options.method or "GET").upper(),
            protocol=options.protocol or "https",
            hostname=options.hostname,
            port=options.port,
            path=path,
            headers=headers,
            body=body,
            timeout=descriptor.timeout if descriptor.timeout is not None else self._default_timeout,
            skip_status_message_check=descriptor.response_option_configs.skip_status_message_check,
        )
        self._apply_option_configs(descriptor, spec, certificate_path)
        return spec

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def _build_body(
        self,
        descriptor: IntegrationDescriptor,
        strategy_mode: StrategyMode,
        inputs: dict[str, Any],
        consumed: set[str],
    ) -> Any:
        request_type = descriptor.request_type
        if request_type not in {"json", "xml", "form-urlencoded"}:
            return None

        body = copy.deepcopy(get_body_template(descriptor, strategy_mode))
        for binding in descriptor.inputs:
            name = binding.input_name
            if name in consumed or name not in inputs:
                continue
            if request_type == "xml" and not binding.traversal_path:
                continue
            try:
                if binding.traversal_path:
                    assign(body, binding.traversal_path, inputs[name], binding=name)
                else:
                    body[name] = inputs[name]
            except IntegrationError as exc:
                logger.warning("Cannot apply input %s of %s: %s", name, descriptor.name, exc)

        if request_type == "xml":
            return serialize_xml(body, library=descriptor.xml_library, configs=descriptor.xml_configs)

        body = self._format_request_body(descriptor, body, inputs)
        if request_type == "form-urlencoded":
            return flatten_form_body(body)
        if descriptor.stringify:
            return json.dumps(body, separators=(",", ":"))
        return body

    @staticmethod
    def _format_request_body(descriptor: IntegrationDescriptor, body: dict[str, Any], inputs: dict[str, Any]) -> Any:
        if not descriptor.format_request_body:
            return body
        try:
            return evaluate_expression(descriptor.format_request_body, {"body": body, "inputs": inputs})
        except IntegrationError as exc:
            logger.warning("Cannot format request body of %s: %s", descriptor.name, exc)
            return body

    # ------------------------------------------------------------------
    # Headers and option configs
    # ------------------------------------------------------------------

    @staticmethod
    def _headers_from_inputs(descriptor: IntegrationDescriptor, inputs: Mapping[str, Any]) -> dict[str, str]:
        headers: dict[str, str] = {}
        for binding in [*descriptor.inputs, *descriptor.secrets]:
            value = inputs.get(binding.input_name)
            if binding.header and is_truthy(value):
                headers[binding.input_name] = to_text(value)
        return headers

    @staticmethod
    def _apply_option_configs(descriptor: IntegrationDescriptor, spec: RequestSpec, certificate_path: Path | None) -> None:
        configs = descriptor.request_option_configs
        if configs is None:
            return
        if configs.set_content_length:
            encoded = spec.encoded_body()
            spec.headers["Content-Length"] = str(len(encoded) if encoded is not None else 0)
        if configs.pfx:
            if certificate_path is None or not certificate_path.exists():
                raise CertificateUnavailableError(f"Client certificate for {descriptor.name} is not available")
            spec.client_certificate = certificate_path.read_bytes()
            spec.client_certificate_path = str(certificate_path)
