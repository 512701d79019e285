"""Restricted expression sandbox for descriptor scripts."""

from integration_runtime.sandbox.evaluator import (
    DATA_BINDING,
    SandboxContext,
    evaluate_expression,
    execute,
    run_script,
)

__all__ = ["DATA_BINDING", "SandboxContext", "evaluate_expression", "execute", "run_script"]
