"""API dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from integration_runtime.config import get_settings
from integration_runtime.services.execution_service import IntegrationExecutionService


@lru_cache
def get_execution_service() -> IntegrationExecutionService:
    """Process-wide execution service built from settings."""
    return IntegrationExecutionService.from_settings(get_settings())


ExecutionServiceDep = Annotated[IntegrationExecutionService, Depends(get_execution_service)]
