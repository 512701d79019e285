"""Boundary tests for the secret and certificate collaborators."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

import pytest

from integration_runtime.adapters.certificates import (
    LocalDirectoryCertificateProvider,
    certificate_cache_path,
    ensure_certificate,
)
from integration_runtime.adapters.secrets import EnvironmentSecretResolver
from integration_runtime.errors import CertificateUnavailableError, SecretResolutionError
from integration_runtime.schemas.descriptor import (
    CertificateAttributes,
    Credentials,
    IntegrationDescriptor,
    SecurityCertificate,
)


def _certificate() -> SecurityCertificate:
    return SecurityCertificate(
        created_at=datetime(2023, 5, 17, 14, 3, 9),
        attributes=CertificateAttributes(
            original_filename="client cert.pem",
            container_name="certs",
            file_path="bureau/client.pem",
        ),
    )


def _descriptor() -> IntegrationDescriptor:
    return IntegrationDescriptor(
        name="Mutual TLS",
        require_security_cert=True,
        credentials=Credentials(security_certificate=_certificate()),
    )


def test_environment_secret_resolver_reads_prefixed_variables() -> None:
    resolver = EnvironmentSecretResolver(prefix="APP_SECRET_", environ={"APP_SECRET_BUREAU_API_KEY": "k-1"})

    async def _run() -> None:
        assert await resolver.get_secret("bureau.api-key") == "k-1"
        with pytest.raises(SecretResolutionError) as exc_info:
            await resolver.get_secret("other")
        assert exc_info.value.secret_key == "other"

    asyncio.run(_run())


def test_certificate_descriptor_aliases_are_accepted() -> None:
    certificate = SecurityCertificate.model_validate(
        {
            "createdat": "2023-05-17T14:03:09",
            "attributes": {
                "original_filename": "a.pem",
                "cloudcontainername": "certs",
                "cloudfilepath": "x/a.pem",
            },
        }
    )

    assert certificate.attributes.container_name == "certs"
    assert certificate.attributes.file_path == "x/a.pem"


def test_cache_path_combines_creation_time_and_original_name(tmp_path: Path) -> None:
    assert certificate_cache_path(_certificate(), tmp_path) == tmp_path / "2023-05-17_2:03:09_pm_client_cert.pem"


def test_certificate_is_fetched_once_then_reused(tmp_path: Path) -> None:
    source = tmp_path / "source" / "certs" / "bureau"
    source.mkdir(parents=True)
    (source / "client.pem").write_bytes(b"pem-bytes")
    provider = LocalDirectoryCertificateProvider(tmp_path / "source")
    cache = tmp_path / "cache"

    async def _run() -> None:
        path = await ensure_certificate(_descriptor(), provider, cache)
        assert path is not None
        assert path.read_bytes() == b"pem-bytes"

        (source / "client.pem").unlink()
        assert await ensure_certificate(_descriptor(), provider, cache) == path

    asyncio.run(_run())


def test_certificate_failures(tmp_path: Path) -> None:
    async def _run() -> None:
        assert await ensure_certificate(IntegrationDescriptor(name="Plain"), None, tmp_path) is None

        with pytest.raises(CertificateUnavailableError):
            await ensure_certificate(_descriptor(), None, tmp_path)

        with pytest.raises(CertificateUnavailableError):
            await ensure_certificate(_descriptor(), LocalDirectoryCertificateProvider(tmp_path / "empty"), tmp_path)

        with pytest.raises(CertificateUnavailableError):
            await ensure_certificate(IntegrationDescriptor(name="No creds", require_security_cert=True), None, tmp_path)

    asyncio.run(_run())
