"""Error types for descriptor execution and their HTTP envelope mapping."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class IntegrationError(Exception):
    """Base error for integration pipeline failures."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "INTEGRATION_ERROR",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class TemplateResolutionError(IntegrationError):
    """A single input binding could not be written into the body template."""

    def __init__(self, message: str, *, binding: str) -> None:
        super().__init__(message, code="TEMPLATE_RESOLUTION_FAILED")
        self.binding = binding


class TransportError(IntegrationError):
    """Non-success status code or network failure from the transport."""

    def __init__(self, message: str, *, status_code: int | None = None, code: str = "TRANSPORT_FAILED") -> None:
        super().__init__(message, code=code, status_code=status_code)


class TransportTimeoutError(TransportError):
    """The transport call was aborted by its timer."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="TRANSPORT_TIMEOUT")


class DecodeError(IntegrationError):
    """Response body is neither valid JSON nor valid XML."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="RESPONSE_DECODE_FAILED")


class SecretResolutionError(IntegrationError):
    """A secret-typed input could not be resolved."""

    def __init__(self, message: str, *, secret_key: str) -> None:
        super().__init__(message, code="SECRET_RESOLUTION_FAILED")
        self.secret_key = secret_key


class CertificateUnavailableError(IntegrationError):
    """Client certificate material could not be produced."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CERTIFICATE_UNAVAILABLE")


class EvaluatorRuntimeError(IntegrationError):
    """Raised inside the sandbox; never escapes the evaluator."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="EVALUATOR_RUNTIME_ERROR")


class IntegrationExecutionError(IntegrationError):
    """Top-level failure of a descriptor execution, naming the descriptor."""

    def __init__(self, *, descriptor_name: str, cause: Exception) -> None:
        message = f'Cannot get valid response from "{descriptor_name}" data integration: {cause}'
        code = cause.code if isinstance(cause, IntegrationError) else "INTEGRATION_EXECUTION_FAILED"
        status_code = cause.status_code if isinstance(cause, IntegrationError) else None
        super().__init__(message, code=code, status_code=status_code)
        self.descriptor_name = descriptor_name
        self.cause = cause


_HTTP_STATUS_BY_CODE = {
    "TRANSPORT_TIMEOUT": 504,
    "TRANSPORT_FAILED": 502,
    "RESPONSE_DECODE_FAILED": 502,
    "SECRET_RESOLUTION_FAILED": 424,
    "CERTIFICATE_UNAVAILABLE": 424,
}


def error_envelope(
    *,
    code: str,
    message: str,
    request_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the canonical ErrorResponse payload."""
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        },
        "requestId": request_id,
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload


async def integration_error_handler(request: Request, exc: IntegrationError) -> JSONResponse:
    """Convert pipeline exceptions into canonical JSON error payloads."""
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id") or "req-unknown"
    details: dict[str, Any] | None = None
    if isinstance(exc, IntegrationExecutionError):
        details = {"integration": exc.descriptor_name}
        if exc.status_code is not None:
            details["upstreamStatus"] = exc.status_code
    return JSONResponse(
        status_code=_HTTP_STATUS_BY_CODE.get(exc.code, 500),
        content=error_envelope(
            code=exc.code,
            message=exc.message,
            request_id=request_id,
            details=details,
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler preserving the error envelope."""
    request_id = getattr(request.state, "request_id", None) or "req-unknown"
    return JSONResponse(
        status_code=500,
        content=error_envelope(
            code="INTERNAL_ERROR",
            message="Internal server error",
            request_id=request_id,
        ),
    )
