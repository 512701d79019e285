"""Resolution and formatting of request input values."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from integration_runtime.errors import EvaluatorRuntimeError, IntegrationError, SecretResolutionError
from integration_runtime.helpers.coerce import is_truthy
from integration_runtime.helpers.dates import format_date
from integration_runtime.sandbox import evaluate_expression
from integration_runtime.schemas.descriptor import InputBinding, IntegrationDescriptor, SecretBinding
from integration_runtime.schemas.runtime import RuntimeVariableSet

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for an input that has no value at all (distinct from ``None``)."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class SecretResolver(Protocol):
    """Boundary for secret-typed input lookup."""

    async def get_secret(self, secret_key: str) -> str:
        ...


class FormattableInput(Protocol):
    format: str | None
    style: str | None
    function: str | None


def resolve_binding_inputs(
    bindings: list[InputBinding],
    variables: RuntimeVariableSet,
    *,
    integration: str = "",
) -> dict[str, Any]:
    """Map each binding name to its literal or current variable value.

    Bindings without a value are left out; later bindings with the same name win.
    """
    inputs: dict[str, Any] = {}
    for binding in bindings:
        if binding.input_type == "value":
            if "input_value" in binding.model_fields_set:
                inputs[binding.input_name] = binding.input_value
            continue

        title = variables.input_title(binding.input_variable)
        if title is None:
            logger.debug("Cannot retrieve %s of %s: no variable bound", binding.input_name, integration)
            continue
        if title in variables.values:
            inputs[binding.input_name] = variables.values[title]
    return inputs


async def resolve_secret_inputs(secrets: list[SecretBinding], resolver: SecretResolver | None) -> dict[str, Any]:
    if not secrets:
        return {}
    if resolver is None:
        raise SecretResolutionError("No secret resolver configured", secret_key=secrets[0].secret_key)

    async def _resolve(secret: SecretBinding) -> tuple[str, str]:
        try:
            return secret.input_name, await resolver.get_secret(secret.secret_key)
        except SecretResolutionError:
            raise
        except Exception as exc:
            raise SecretResolutionError(
                f"Cannot resolve secret {secret.secret_key}: {exc}",
                secret_key=secret.secret_key,
            ) from exc

    resolved = await asyncio.gather(*(_resolve(secret) for secret in secrets))
    return dict(resolved)


async def resolve_inputs(
    descriptor: IntegrationDescriptor,
    variables: RuntimeVariableSet,
    resolver: SecretResolver | None = None,
) -> dict[str, Any]:
    inputs = resolve_binding_inputs(descriptor.inputs, variables, integration=descriptor.name)
    inputs.update(await resolve_secret_inputs(descriptor.secrets, resolver))
    return inputs


def format_input_value(name: str, config: FormattableInput, inputs: dict[str, Any]) -> Any:
    """Apply a binding's format rule; ``MISSING`` when an unformatted input has no value."""
    value = inputs.get(name, MISSING)
    if not config.format:
        return value

    if config.format == "Date":
        if value is MISSING or not is_truthy(value):
            return ""
        return format_date(value, config.style) or ""

    if config.format == "Evaluation":
        if not config.function:
            raise EvaluatorRuntimeError(f"Input {name} has no evaluation expression")
        return evaluate_expression(
            config.function,
            {
                "name": name,
                "value": None if value is MISSING else value,
                "inputs": inputs,
            },
        )

    return "" if value is MISSING or value is None else value


def format_inputs(descriptor: IntegrationDescriptor, inputs: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``inputs`` with every binding's formatted value applied.

    A binding whose formatting fails is logged and dropped, so its raw value
    never reaches the body, headers or query string.
    """
    formatted = dict(inputs)
    for binding in descriptor.inputs:
        try:
            value = format_input_value(binding.input_name, binding, formatted)
        except IntegrationError as exc:
            logger.warning("Cannot format input %s of %s: %s", binding.input_name, descriptor.name, exc)
            formatted.pop(binding.input_name, None)
            continue
        if value is not MISSING:
            formatted[binding.input_name] = value

    custom_values = {custom.name: custom.value for custom in descriptor.custom_inputs}
    for custom in descriptor.custom_inputs:
        try:
            value = format_input_value(custom.name, custom, custom_values)
        except IntegrationError as exc:
            logger.warning("Cannot format custom input %s of %s: %s", custom.name, descriptor.name, exc)
            formatted.pop(custom.name, None)
            continue
        if value is not MISSING:
            formatted[custom.name] = value
    return formatted
