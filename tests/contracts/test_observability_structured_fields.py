"""Contract tests for structured observability fields."""

from __future__ import annotations

import logging

import httpx
from fastapi.testclient import TestClient

from integration_runtime.adapters.transport import HttpxTransport
from integration_runtime.api.deps import get_execution_service
from integration_runtime.main import app
from integration_runtime.services.execution_service import IntegrationExecutionService

_PAYLOAD = {
    "descriptor": {
        "name": "Echo",
        "outputs": [{"api_name": "echo", "output_variable": "v_echo", "traversalPath": "echo"}],
        "request_options": {"hostname": "echo.example.com", "path": "/echo"},
    },
    "variables": {"output_variables": [{"id": "v_echo", "title": "echoed"}]},
    "strategyMode": "active",
}


def _client() -> TestClient:
    service = IntegrationExecutionService(
        transport=HttpxTransport(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"echo": "hi"})))
    )
    app.dependency_overrides[get_execution_service] = lambda: service
    return TestClient(app)


def _records_by_component(caplog, component: str) -> list[logging.LogRecord]:  # type: ignore[no-untyped-def]
    return [record for record in caplog.records if getattr(record, "component", None) == component]


def test_structured_fields_for_request_and_execution(caplog) -> None:  # type: ignore[no-untyped-def]
    caplog.set_level(logging.INFO)
    try:
        response = _client().post(
            "/v1/integrations/execute",
            json=_PAYLOAD,
            headers={"X-Request-Id": "req-observability-001"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json()["result"] == {"echoed": "hi"}

    api_records = _records_by_component(caplog, "api")
    operations = [getattr(record, "operation", None) for record in api_records]
    assert "request_started" in operations
    assert "request_completed" in operations
    for record in api_records:
        assert getattr(record, "requestId", None) == "req-observability-001"
        assert getattr(record, "resourceId", None) == "/v1/integrations/execute"
    completed = [record for record in api_records if getattr(record, "operation", None) == "request_completed"]
    assert getattr(completed[-1], "statusCode", None) == 200

    route_records = _records_by_component(caplog, "integrations")
    assert route_records
    assert getattr(route_records[-1], "integration", None) == "Echo"

    service_records = _records_by_component(caplog, "execution_service")
    assert service_records
    record = service_records[-1]
    assert getattr(record, "integration", None) == "Echo"
    assert getattr(record, "strategyMode", None) == "active"
    assert getattr(record, "operation", None) == "execute"
    assert getattr(record, "statusCode", None) == 200
    assert getattr(record, "outputs", None) == 1
    assert isinstance(getattr(record, "durationMs", None), float)


def test_generated_request_ids_are_echoed(caplog) -> None:  # type: ignore[no-untyped-def]
    caplog.set_level(logging.INFO)
    try:
        response = _client().post("/v1/integrations/preview", json=_PAYLOAD)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    request_id = response.headers["X-Request-Id"]
    assert request_id.startswith("req-")
    assert response.json()["requestId"] == request_id
    assert all(
        getattr(record, "requestId", None) == request_id for record in _records_by_component(caplog, "api")
    )
