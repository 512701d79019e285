"""Secret resolution adapters."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

from integration_runtime.errors import SecretResolutionError

_ENV_UNSAFE = re.compile(r"[^A-Za-z0-9]+")


class EnvironmentSecretResolver:
    """Read secrets from prefixed environment variables.

    ``api.key`` with prefix ``INTEGRATION_SECRET_`` resolves
    ``INTEGRATION_SECRET_API_KEY``.
    """

    def __init__(self, *, prefix: str = "INTEGRATION_SECRET_", environ: Mapping[str, str] | None = None) -> None:
        self._prefix = prefix
        self._environ = environ if environ is not None else os.environ

    def variable_name(self, secret_key: str) -> str:
        return f"{self._prefix}{_ENV_UNSAFE.sub('_', secret_key).strip('_').upper()}"

    async def get_secret(self, secret_key: str) -> str:
        name = self.variable_name(secret_key)
        value = self._environ.get(name)
        if value is None:
            raise SecretResolutionError(f"Secret {secret_key} is not set ({name})", secret_key=secret_key)
        return value


class InMemorySecretResolver:
    """Secret resolver backed by a plain mapping."""

    def __init__(self, secrets: Mapping[str, str] | None = None) -> None:
        self._secrets = dict(secrets or {})

    async def get_secret(self, secret_key: str) -> str:
        if secret_key not in self._secrets:
            raise SecretResolutionError(f"Secret {secret_key} is not set", secret_key=secret_key)
        return self._secrets[secret_key]
