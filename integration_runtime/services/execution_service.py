"""End-to-end execution of integration descriptors."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from time import monotonic
from typing import Any

from integration_runtime.adapters.certificates import CertificateProvider, ensure_certificate
from integration_runtime.adapters.secrets import EnvironmentSecretResolver
from integration_runtime.adapters.transport import HttpxTransport, Transport
from integration_runtime.config import Settings, get_settings
from integration_runtime.errors import IntegrationExecutionError
from integration_runtime.observability import log_execution_event
from integration_runtime.request.builder import RequestBuilder, RequestSpec
from integration_runtime.request.inputs import SecretResolver, resolve_inputs
from integration_runtime.response.decoder import decode
from integration_runtime.response.extractor import extract
from integration_runtime.schemas.descriptor import InputBinding, IntegrationDescriptor, OutputBinding
from integration_runtime.schemas.runtime import IntegrationResult, RuntimeVariableSet, Segment, StrategyMode

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """State of one descriptor execution. Never shared between calls."""

    descriptor: IntegrationDescriptor
    variables: RuntimeVariableSet
    strategy_mode: StrategyMode = "testing"
    inputs: dict[str, Any] = field(default_factory=dict)
    request: RequestSpec | None = None
    raw_response: Any = None
    status: int | None = None
    tree: Any = None
    outputs: dict[str, Any] = field(default_factory=dict)


def _overlay_input(binding: InputBinding, declared: dict[str, InputBinding]) -> InputBinding:
    updates: dict[str, Any] = {}
    base = declared.get(binding.input_name)
    if not binding.traversal_path and base is not None:
        updates["traversal_path"] = base.traversal_path
    if binding.input_type == "value" and "input_value" not in binding.model_fields_set:
        updates["input_value"] = binding.input_variable
    if not updates:
        return binding
    return binding.model_copy(update=updates)


def _overlay_output(binding: OutputBinding, declared: dict[str, OutputBinding]) -> OutputBinding:
    base = declared.get(binding.api_name)
    if base is None:
        return binding
    updates: dict[str, Any] = {}
    if not binding.traversal_path:
        updates["traversal_path"] = base.traversal_path
    if not binding.array_configs:
        updates["array_configs"] = copy.deepcopy(base.array_configs)
    return binding.model_copy(update=updates) if updates else binding


def apply_segment(descriptor: IntegrationDescriptor, segment: Segment | None) -> IntegrationDescriptor:
    """Return a copy of the descriptor with the segment's bindings in place of its own."""
    if segment is None:
        return descriptor
    declared_inputs = {binding.input_name: binding for binding in descriptor.inputs}
    declared_outputs = {binding.api_name: binding for binding in descriptor.outputs}
    updates: dict[str, Any] = {}
    if segment.inputs:
        updates["inputs"] = [_overlay_input(binding, declared_inputs) for binding in segment.inputs]
    if segment.outputs:
        updates["outputs"] = [_overlay_output(binding, declared_outputs) for binding in segment.outputs]
    return descriptor.model_copy(update=updates)


class IntegrationExecutionService:
    """Resolve inputs, build the request, call the API and map its response."""

    def __init__(
        self,
        *,
        transport: Transport | None = None,
        secret_resolver: SecretResolver | None = None,
        certificate_provider: CertificateProvider | None = None,
        certificate_dir: str | Path = "security_certificates",
        default_timeout: float | None = None,
    ) -> None:
        self._transport = transport or HttpxTransport()
        self._secret_resolver = secret_resolver
        self._certificate_provider = certificate_provider
        self._certificate_dir = Path(certificate_dir)
        self._builder = RequestBuilder(default_timeout=default_timeout)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        transport: Transport | None = None,
        certificate_provider: CertificateProvider | None = None,
    ) -> IntegrationExecutionService:
        settings = settings or get_settings()
        return cls(
            transport=transport,
            secret_resolver=EnvironmentSecretResolver(prefix=settings.secret_env_prefix),
            certificate_provider=certificate_provider,
            certificate_dir=settings.certificate_dir,
            default_timeout=settings.default_timeout_seconds,
        )

    async def prepare(
        self,
        descriptor: IntegrationDescriptor,
        variables: RuntimeVariableSet,
        *,
        strategy_mode: StrategyMode = "testing",
        segment: Segment | None = None,
    ) -> ExecutionContext:
        """Resolve inputs and build the request without sending it."""
        descriptor = apply_segment(copy.deepcopy(descriptor), segment)
        context = ExecutionContext(descriptor=descriptor, variables=variables, strategy_mode=strategy_mode)
        try:
            context.inputs = await resolve_inputs(descriptor, variables, self._secret_resolver)
            certificate_path = await ensure_certificate(
                descriptor,
                self._certificate_provider,
                self._certificate_dir,
            )
            context.request = self._builder.build(
                descriptor,
                strategy_mode,
                context.inputs,
                certificate_path=certificate_path,
            )
        except Exception as exc:
            raise self._failure(context, exc, operation="prepare") from exc
        return context

    async def preview(
        self,
        descriptor: IntegrationDescriptor,
        variables: RuntimeVariableSet,
        *,
        strategy_mode: StrategyMode = "testing",
        segment: Segment | None = None,
    ) -> RequestSpec:
        context = await self.prepare(descriptor, variables, strategy_mode=strategy_mode, segment=segment)
        return context.request

    def interpret(
        self,
        descriptor: IntegrationDescriptor,
        raw_response: Any,
        variables: RuntimeVariableSet,
        *,
        strategy_mode: StrategyMode = "testing",
        segment: Segment | None = None,
    ) -> dict[str, Any]:
        """Decode a raw body and extract outputs without calling the API."""
        descriptor = apply_segment(copy.deepcopy(descriptor), segment)
        context = ExecutionContext(
            descriptor=descriptor,
            variables=variables,
            strategy_mode=strategy_mode,
            raw_response=raw_response,
        )
        try:
            context.tree = decode(raw_response, descriptor)
        except Exception as exc:
            raise self._failure(context, exc, operation="decode") from exc
        return extract(context.tree, descriptor, variables)

    async def execute(
        self,
        descriptor: IntegrationDescriptor,
        variables: RuntimeVariableSet,
        *,
        strategy_mode: StrategyMode = "testing",
        segment: Segment | None = None,
    ) -> IntegrationResult:
        started_at = monotonic()
        context = await self.prepare(descriptor, variables, strategy_mode=strategy_mode, segment=segment)
        descriptor = context.descriptor

        try:
            response = await self._transport.send(context.request)
            context.raw_response = response.body
            context.status = response.status
            context.tree = decode(response.body, descriptor)
        except Exception as exc:
            raise self._failure(context, exc, operation="execute") from exc

        context.outputs = extract(context.tree, descriptor, variables)
        log_execution_event(
            logger,
            level=logging.INFO,
            message="Integration executed.",
            integration=descriptor.name,
            strategy_mode=strategy_mode,
            component="execution_service",
            operation="execute",
            status_code=context.status,
            outputs=len(context.outputs),
            durationMs=round((monotonic() - started_at) * 1000, 2),
        )
        return IntegrationResult(result=context.outputs, response=context.raw_response, status=context.status)

    @staticmethod
    def _failure(context: ExecutionContext, exc: Exception, *, operation: str) -> IntegrationExecutionError:
        error = IntegrationExecutionError(descriptor_name=context.descriptor.name, cause=exc)
        log_execution_event(
            logger,
            level=logging.WARNING,
            message=error.message,
            integration=context.descriptor.name,
            strategy_mode=context.strategy_mode,
            component="execution_service",
            operation=operation,
            status_code=error.status_code,
            errorCode=error.code,
        )
        return error
