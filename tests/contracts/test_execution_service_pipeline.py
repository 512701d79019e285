"""End-to-end contract tests for descriptor execution."""

from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from integration_runtime.adapters.secrets import InMemorySecretResolver
from integration_runtime.adapters.transport import HttpxTransport
from integration_runtime.errors import IntegrationExecutionError, TransportTimeoutError
from integration_runtime.schemas.descriptor import (
    InputBinding,
    IntegrationDescriptor,
    OutputBinding,
    RequestOptions,
    SecretBinding,
)
from integration_runtime.schemas.runtime import RuntimeVariableSet, Segment, VariableDeclaration
from integration_runtime.services.execution_service import IntegrationExecutionService, apply_segment


def _descriptor() -> IntegrationDescriptor:
    return IntegrationDescriptor(
        name="Credit Bureau",
        request_type="json",
        default_configuration={"applicant": {"ssn": None}},
        inputs=[
            InputBinding(input_name="ssn", input_variable="v_ssn", traversal_path="applicant.ssn"),
            InputBinding(input_name="report", input_type="value", input_value="full"),
        ],
        secrets=[SecretBinding(input_name="X-Api-Key", secret_key="bureau", header=True)],
        outputs=[
            OutputBinding(api_name="score", output_variable="v_score", traversal_path="result.score", data_type="Number"),
            OutputBinding(api_name="hit", output_variable="v_hit", traversal_path="result.hit", data_type="Boolean"),
            OutputBinding(api_name="unbound", traversal_path="result.score"),
        ],
        request_options=RequestOptions(hostname="bureau.example.com", path="/reports/:report", method="POST"),
    )


def _variables() -> RuntimeVariableSet:
    return RuntimeVariableSet(
        values={"ssn": "123-45-6789"},
        input_variables=[VariableDeclaration(id="v_ssn", title="ssn")],
        output_variables=[
            VariableDeclaration(id="v_score", title="credit_score"),
            VariableDeclaration(id="v_hit", title="bureau_hit"),
        ],
    )


def _service(handler) -> IntegrationExecutionService:  # type: ignore[no-untyped-def]
    return IntegrationExecutionService(
        transport=HttpxTransport(transport=httpx.MockTransport(handler)),
        secret_resolver=InMemorySecretResolver({"bureau": "key-1"}),
    )


def test_execute_runs_the_full_pipeline() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"result": {"score": "712", "hit": "TRUE"}})

    async def _run() -> None:
        descriptor = _descriptor()
        result = await _service(handler).execute(descriptor, _variables())

        assert result.status == 200
        assert result.result == {"credit_score": 712, "bureau_hit": True}
        assert json.loads(result.response) == {"result": {"score": "712", "hit": "TRUE"}}
        assert descriptor.default_configuration == {"applicant": {"ssn": None}}

    asyncio.run(_run())

    request = seen[0]
    assert request.url.path == "/reports/full"
    assert request.headers["X-Api-Key"] == "key-1"
    assert json.loads(request.content) == {"applicant": {"ssn": "123-45-6789"}}


def test_xml_responses_are_mapped_the_same_way() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<result><score>640</score><hit>false</hit></result>")

    async def _run() -> None:
        result = await _service(handler).execute(_descriptor(), _variables())
        assert result.result == {"credit_score": 640, "bureau_hit": False}

    asyncio.run(_run())


def test_failures_are_wrapped_with_the_descriptor_name(caplog) -> None:  # type: ignore[no-untyped-def]
    caplog.set_level(logging.WARNING)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async def _run() -> None:
        with pytest.raises(IntegrationExecutionError) as exc_info:
            await _service(handler).execute(_descriptor(), _variables())
        error = exc_info.value
        assert error.descriptor_name == "Credit Bureau"
        assert error.status_code == 500
        assert error.code == "TRANSPORT_FAILED"
        assert error.message.startswith('Cannot get valid response from "Credit Bureau" data integration: ')

    asyncio.run(_run())

    records = [record for record in caplog.records if getattr(record, "component", None) == "execution_service"]
    assert records
    assert getattr(records[-1], "integration", None) == "Credit Bureau"
    assert getattr(records[-1], "strategyMode", None) == "testing"
    assert getattr(records[-1], "errorCode", None) == "TRANSPORT_FAILED"


def test_timeouts_stay_distinguishable_after_wrapping() -> None:
    async def slow_handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    async def _run() -> None:
        descriptor = _descriptor().model_copy(update={"timeout": 0.01})
        with pytest.raises(IntegrationExecutionError) as exc_info:
            await _service(slow_handler).execute(descriptor, _variables())
        assert isinstance(exc_info.value.cause, TransportTimeoutError)
        assert exc_info.value.code == "TRANSPORT_TIMEOUT"
        assert "Request to bureau.example.com/reports/full was aborted" in exc_info.value.message

    asyncio.run(_run())


def test_secret_failures_are_wrapped() -> None:
    async def _run() -> None:
        service = IntegrationExecutionService(
            transport=HttpxTransport(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))),
            secret_resolver=InMemorySecretResolver(),
        )
        with pytest.raises(IntegrationExecutionError) as exc_info:
            await service.execute(_descriptor(), _variables())
        assert exc_info.value.code == "SECRET_RESOLUTION_FAILED"

    asyncio.run(_run())


def test_preview_builds_without_sending() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("preview must not call the transport")

    async def _run() -> None:
        spec = await _service(handler).preview(_descriptor(), _variables(), strategy_mode="active")
        assert spec.url == "https://bureau.example.com/reports/full"
        assert spec.headers == {"X-Api-Key": "key-1"}

    asyncio.run(_run())


def test_interpret_decodes_and_extracts_a_saved_body() -> None:
    service = _service(lambda request: httpx.Response(200))

    outputs = service.interpret(_descriptor(), '{"result": {"score": 1, "hit": 0}}', _variables())

    assert outputs == {"credit_score": 1, "bureau_hit": False}


def test_segment_bindings_replace_and_inherit_paths() -> None:
    descriptor = _descriptor()
    segment = Segment(
        inputs=[
            InputBinding(input_name="ssn", input_variable="v_ssn"),
            InputBinding(input_name="report", input_type="value", input_variable="summary"),
        ],
        outputs=[OutputBinding(api_name="score", output_variable="v_score")],
    )

    overlaid = apply_segment(descriptor, segment)

    assert [binding.input_name for binding in overlaid.inputs] == ["ssn", "report"]
    assert overlaid.inputs[0].traversal_path == "applicant.ssn"
    assert overlaid.inputs[1].input_value == "summary"
    assert [binding.api_name for binding in overlaid.outputs] == ["score"]
    assert overlaid.outputs[0].traversal_path == "result.score"
    assert descriptor.inputs[1].input_value == "full"

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/reports/summary"
        return httpx.Response(200, json={"result": {"score": "701"}})

    async def _run() -> None:
        result = await _service(handler).execute(descriptor, _variables(), segment=segment)
        assert result.result == {"credit_score": "701"}

    asyncio.run(_run())
