"""Collaborator adapters: transport, secrets and certificates."""

from integration_runtime.adapters.certificates import (
    CertificateProvider,
    LocalDirectoryCertificateProvider,
    ensure_certificate,
)
from integration_runtime.adapters.secrets import EnvironmentSecretResolver, InMemorySecretResolver
from integration_runtime.adapters.transport import HttpxTransport, Transport, TransportResponse

__all__ = [
    "CertificateProvider",
    "EnvironmentSecretResolver",
    "HttpxTransport",
    "InMemorySecretResolver",
    "LocalDirectoryCertificateProvider",
    "Transport",
    "TransportResponse",
    "ensure_certificate",
]
