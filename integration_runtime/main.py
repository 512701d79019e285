"""FastAPI application entry point."""

import logging
from uuid import uuid4

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from integration_runtime.api.routes import router as integrations_router
from integration_runtime.config import get_settings
from integration_runtime.errors import (
    IntegrationError,
    integration_error_handler,
    unhandled_error_handler,
)
from integration_runtime.observability import configure_logging, log_request_event, request_log_fields

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title="Integration Runtime",
    description="Executes declarative third-party API integration descriptors",
    version="0.1.0",
)


def _is_api_request(path: str) -> bool:
    return path.startswith("/v1/")


@app.middleware("http")
async def observability_context_middleware(request: Request, call_next):
    """Attach request correlation identifiers and emit structured request logs."""
    if _is_api_request(request.url.path):
        request.state.request_id = request.headers.get("X-Request-Id") or f"req-{uuid4()}"
        log_request_event(
            logger,
            level=logging.INFO,
            message="Integration API request started.",
            request=request,
            component="api",
            operation="request_started",
            method=request.method,
        )

    response = await call_next(request)

    if _is_api_request(request.url.path):
        response.headers["X-Request-Id"] = request.state.request_id
        log_request_event(
            logger,
            level=logging.INFO,
            message="Integration API request completed.",
            request=request,
            component="api",
            operation="request_completed",
            status_code=response.status_code,
            method=request.method,
        )
    return response


@app.middleware("http")
async def unhandled_error_middleware(request: Request, call_next):
    """Apply the fallback error envelope to API routes."""
    try:
        return await call_next(request)
    except Exception as exc:
        if _is_api_request(request.url.path):
            logger.exception(
                "Unhandled exception for integration API request %s",
                request.url.path,
                extra=request_log_fields(
                    request=request,
                    component="api",
                    operation="request_failed_unhandled",
                ),
            )
            return await unhandled_error_handler(request, exc)
        raise


app.include_router(integrations_router)

# Register error envelope handlers.
app.add_exception_handler(IntegrationError, integration_error_handler)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "integration_runtime.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
