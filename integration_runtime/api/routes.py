"""Integration execution routes."""

import logging

from fastapi import APIRouter, Request

from integration_runtime.api.deps import ExecutionServiceDep
from integration_runtime.observability import log_request_event
from integration_runtime.schemas.api import (
    DecodeIntegrationRequest,
    DecodeIntegrationResponse,
    ExecuteIntegrationRequest,
    ExecuteIntegrationResponse,
    PreviewIntegrationResponse,
    RequestPreview,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/integrations", tags=["integrations"])


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "req-unknown"


@router.post("/execute", response_model=ExecuteIntegrationResponse)
async def execute_integration(
    payload: ExecuteIntegrationRequest,
    request: Request,
    service: ExecutionServiceDep,
) -> ExecuteIntegrationResponse:
    """Run the full pipeline against the live API."""
    result = await service.execute(
        payload.descriptor,
        payload.variables,
        strategy_mode=payload.strategy_mode,
        segment=payload.segment,
    )
    log_request_event(
        logger,
        level=logging.INFO,
        message="Integration execution completed.",
        request=request,
        component="integrations",
        operation="execute",
        status_code=result.status,
        integration=payload.descriptor.name,
    )
    return ExecuteIntegrationResponse(
        requestId=_request_id(request),
        result=result.result,
        response=result.response,
        status=result.status,
    )


@router.post("/preview", response_model=PreviewIntegrationResponse)
async def preview_integration(
    payload: ExecuteIntegrationRequest,
    request: Request,
    service: ExecutionServiceDep,
) -> PreviewIntegrationResponse:
    """Build the outbound request without sending it."""
    spec = await service.preview(
        payload.descriptor,
        payload.variables,
        strategy_mode=payload.strategy_mode,
        segment=payload.segment,
    )
    body = spec.body.decode("utf-8", errors="replace") if isinstance(spec.body, bytes) else spec.body
    return PreviewIntegrationResponse(
        requestId=_request_id(request),
        request=RequestPreview(
            method=spec.method,
            url=spec.url,
            headers=spec.headers,
            body=body,
            timeout=spec.timeout,
        ),
    )


@router.post("/decode", response_model=DecodeIntegrationResponse)
async def decode_integration(
    payload: DecodeIntegrationRequest,
    request: Request,
    service: ExecutionServiceDep,
) -> DecodeIntegrationResponse:
    """Decode a supplied response body and map it onto output variables."""
    result = service.interpret(
        payload.descriptor,
        payload.raw_response,
        payload.variables,
        strategy_mode=payload.strategy_mode,
        segment=payload.segment,
    )
    return DecodeIntegrationResponse(requestId=_request_id(request), result=result)
