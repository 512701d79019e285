"""Business logic services."""

from integration_runtime.services.execution_service import (
    ExecutionContext,
    IntegrationExecutionService,
    apply_segment,
)

__all__ = ["ExecutionContext", "IntegrationExecutionService", "apply_segment"]
