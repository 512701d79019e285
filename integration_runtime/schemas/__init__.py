"""Pydantic schemas."""

from integration_runtime.schemas.descriptor import (
    CustomScript,
    HelperExpression,
    InputBinding,
    IntegrationDescriptor,
    OutputBinding,
    RequestOptions,
    SecretBinding,
    SecurityCertificate,
)
from integration_runtime.schemas.runtime import (
    IntegrationResult,
    RuntimeVariableSet,
    Segment,
    StrategyMode,
    VariableDeclaration,
)

__all__ = [
    "CustomScript",
    "HelperExpression",
    "InputBinding",
    "IntegrationDescriptor",
    "IntegrationResult",
    "OutputBinding",
    "RequestOptions",
    "RuntimeVariableSet",
    "SecretBinding",
    "SecurityCertificate",
    "Segment",
    "StrategyMode",
    "VariableDeclaration",
]
