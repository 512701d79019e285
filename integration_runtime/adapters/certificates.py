"""Client certificate retrieval and local caching."""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from pathlib import Path
from typing import Protocol

from integration_runtime.errors import CertificateUnavailableError
from integration_runtime.helpers.dates import format_date
from integration_runtime.schemas.descriptor import IntegrationDescriptor, SecurityCertificate

logger = logging.getLogger(__name__)

CACHE_PREFIX_PATTERN = "YYYY-MM-DD_h:mm:ss_a_"
_WHITESPACE = re.compile(r"\s+")


class CertificateProvider(Protocol):
    """Boundary for producing decrypted certificate material on local disk."""

    async def fetch(self, *, certificate: SecurityCertificate, destination: Path) -> Path:
        ...


class LocalDirectoryCertificateProvider:
    """Copy certificate files from a local directory laid out as ``<container>/<path>``."""

    def __init__(self, source_dir: str | Path) -> None:
        self._source_dir = Path(source_dir)

    async def fetch(self, *, certificate: SecurityCertificate, destination: Path) -> Path:
        attributes = certificate.attributes
        source = self._source_dir / attributes.container_name / attributes.file_path
        if not source.is_file():
            raise CertificateUnavailableError(f"Certificate file {source} does not exist")
        await asyncio.to_thread(shutil.copyfile, source, destination)
        return destination


def certificate_cache_path(certificate: SecurityCertificate, directory: str | Path) -> Path:
    """Cache file name: creation timestamp prefix plus the whitespace-free original name."""
    filename = _WHITESPACE.sub("_", certificate.attributes.original_filename or "certificate")
    prefix = format_date(certificate.created_at, CACHE_PREFIX_PATTERN) if certificate.created_at else ""
    return Path(directory) / f"{prefix or ''}{filename}"


async def ensure_certificate(
    descriptor: IntegrationDescriptor,
    provider: CertificateProvider | None,
    directory: str | Path,
) -> Path | None:
    """Return the local certificate path for a descriptor that requires one.

    Cached files are reused; otherwise the provider fetches into the cache.
    """
    if not descriptor.require_security_cert:
        return None
    certificate = descriptor.credentials.security_certificate if descriptor.credentials else None
    if certificate is None:
        raise CertificateUnavailableError(f"{descriptor.name} requires a security certificate but declares none")

    path = certificate_cache_path(certificate, directory)
    if path.exists():
        return path
    if provider is None:
        raise CertificateUnavailableError(f"No certificate provider configured for {descriptor.name}")

    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fetched = await provider.fetch(certificate=certificate, destination=path)
    except CertificateUnavailableError:
        raise
    except Exception as exc:
        raise CertificateUnavailableError(f"Cannot retrieve certificate for {descriptor.name}: {exc}") from exc
    logger.info("Cached client certificate for %s at %s", descriptor.name, fetched)
    return fetched
