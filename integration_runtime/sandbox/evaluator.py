"""Sandboxed evaluation of descriptor scripts against a decoded response."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from integration_runtime.errors import EvaluatorRuntimeError
from integration_runtime.sandbox.builtins import SAFE_BUILTINS
from integration_runtime.sandbox.interpreter import Interpreter, Scope
from integration_runtime.schemas.descriptor import CustomScript

logger = logging.getLogger(__name__)

DATA_BINDING = "json_data"


@dataclass
class SandboxContext:
    """Single-use evaluation context with reserved result and error slots."""

    scope: Scope
    result: dict[str, Any] = field(default_factory=dict)
    error: str = ""


def build_context(data: Any) -> SandboxContext:
    builtins = Scope(bindings=dict(SAFE_BUILTINS))
    return SandboxContext(scope=builtins.child({DATA_BINDING: copy.deepcopy(data)}))


def execute(script: CustomScript, data: Any) -> SandboxContext:
    """Bind helpers, run the main expression once, and capture any failure."""
    context = build_context(data)
    interpreter = Interpreter()
    try:
        for helper in script.helpers:
            context.scope.bindings[helper.name] = interpreter.evaluate(helper.expression, context.scope)
        produced = interpreter.evaluate(script.main, context.scope)
        if not isinstance(produced, Mapping):
            raise EvaluatorRuntimeError(f"main expression must produce a mapping, got {type(produced).__name__}")
        context.result = {str(key): value for key, value in produced.items()}
    except Exception as exc:
        context.result = {}
        context.error = str(exc) or type(exc).__name__
        logger.warning("Custom script failed: %s", context.error)
    return context


def run_script(script: CustomScript, data: Any) -> dict[str, Any]:
    """Return the derived values of a script; empty when the script fails."""
    return execute(script, data).result


def evaluate_expression(source: str, bindings: Mapping[str, Any]) -> Any:
    """Evaluate a standalone expression with extra read-only bindings.

    Unlike ``run_script`` this raises ``EvaluatorRuntimeError`` so callers can
    decide how a failed expression degrades.
    """
    scope = Scope(bindings=dict(SAFE_BUILTINS)).child(copy.deepcopy(dict(bindings)))
    try:
        return Interpreter().evaluate(source, scope)
    except EvaluatorRuntimeError:
        raise
    except Exception as exc:
        raise EvaluatorRuntimeError(str(exc) or type(exc).__name__) from exc
