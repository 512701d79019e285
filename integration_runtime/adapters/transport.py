"""HTTP transport adapter for prepared integration requests."""

from __future__ import annotations

import asyncio
import logging
import re
import ssl
from dataclasses import dataclass
from typing import Protocol

import httpx

from integration_runtime.errors import TransportError, TransportTimeoutError
from integration_runtime.request.builder import RequestSpec

logger = logging.getLogger(__name__)

SUCCESS_STATUS_RE = re.compile(r"^[23]\d{2}$")
FALLBACK_TIMEOUT_SECONDS = 60.0
BODYLESS_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: str
    reason: str = ""


class Transport(Protocol):
    """Boundary for executing a prepared request."""

    async def send(self, request: RequestSpec) -> TransportResponse:
        ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    One timer governs the whole call; on expiry the in-flight request is
    cancelled and ``TransportTimeoutError`` is raised.
    """

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def send(self, request: RequestSpec) -> TransportResponse:
        content = None if request.method in BODYLESS_METHODS else request.encoded_body()
        timeout = request.timeout if request.timeout is not None else FALLBACK_TIMEOUT_SECONDS

        async with httpx.AsyncClient(
            transport=self._transport,
            verify=self._verify_for(request),
            timeout=httpx.Timeout(timeout),
        ) as client:
            call = client.request(request.method, request.url, headers=request.headers, content=content)
            try:
                if request.timeout is not None:
                    response = await asyncio.wait_for(call, timeout=request.timeout)
                else:
                    response = await call
            except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
                logger.warning("Request to %s%s timed out after %ss", request.hostname, request.path, timeout)
                raise TransportTimeoutError(f"Request to {request.hostname}{request.path} was aborted") from exc
            except httpx.HTTPError as exc:
                raise TransportError(str(exc) or type(exc).__name__) from exc

        reason = response.reason_phrase or ""
        if not SUCCESS_STATUS_RE.match(str(response.status_code)) or (
            not request.skip_status_message_check and reason and reason.upper() != "OK"
        ):
            raise TransportError(
                f"{response.status_code} {reason}".strip(),
                status_code=response.status_code,
            )

        return TransportResponse(status=response.status_code, body=response.text, reason=reason)

    @staticmethod
    def _verify_for(request: RequestSpec) -> ssl.SSLContext | bool:
        if not request.client_certificate_path:
            return True
        context = ssl.create_default_context()
        context.load_cert_chain(request.client_certificate_path)
        return context
