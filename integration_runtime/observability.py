"""Structured observability helpers for integration runtime logs."""

from __future__ import annotations

import logging

from fastapi import Request


def execution_log_fields(
    *,
    integration: str,
    strategy_mode: str,
    component: str,
    operation: str,
    status_code: int | None = None,
    **details: object,
) -> dict[str, object]:
    fields: dict[str, object] = {
        "integration": integration,
        "strategyMode": strategy_mode,
        "component": component,
        "operation": operation,
    }
    if status_code is not None:
        fields["statusCode"] = status_code
    for key, value in details.items():
        if value is None:
            continue
        fields[key] = value
    return fields


def request_log_fields(
    *,
    request: Request,
    component: str,
    operation: str,
    status_code: int | None = None,
    **details: object,
) -> dict[str, object]:
    request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id") or "req-unknown"
    fields: dict[str, object] = {
        "requestId": request_id,
        "component": component,
        "operation": operation,
        "resourceType": "request",
        "resourceId": request.url.path,
    }
    if status_code is not None:
        fields["statusCode"] = status_code
    for key, value in details.items():
        if value is None:
            continue
        fields[key] = value
    return fields


def log_execution_event(
    logger: logging.Logger,
    *,
    level: int,
    message: str,
    integration: str,
    strategy_mode: str,
    component: str,
    operation: str,
    status_code: int | None = None,
    **details: object,
) -> None:
    logger.log(
        level,
        message,
        extra=execution_log_fields(
            integration=integration,
            strategy_mode=strategy_mode,
            component=component,
            operation=operation,
            status_code=status_code,
            **details,
        ),
    )


def log_request_event(
    logger: logging.Logger,
    *,
    level: int,
    message: str,
    request: Request,
    component: str,
    operation: str,
    status_code: int | None = None,
    **details: object,
) -> None:
    logger.log(
        level,
        message,
        extra=request_log_fields(
            request=request,
            component=component,
            operation=operation,
            status_code=status_code,
            **details,
        ),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a basic root handler when the host process has none."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
