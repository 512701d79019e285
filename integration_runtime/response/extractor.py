"""Mapping of decoded response trees onto runtime output variables."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from integration_runtime.helpers.coerce import coerce_value
from integration_runtime.helpers.traversal import walk
from integration_runtime.sandbox import run_script
from integration_runtime.schemas.descriptor import IntegrationDescriptor, OutputBinding
from integration_runtime.schemas.runtime import RuntimeVariableSet

logger = logging.getLogger(__name__)

SCRIPT_RESULT_KEY = "script_result"


def with_script_result(tree: Any, descriptor: IntegrationDescriptor) -> Any:
    """Return ``tree`` with the custom script's mapping under ``script_result``.

    The caller's tree is never mutated. Non-mapping trees are wrapped so the
    script output stays addressable.
    """
    if descriptor.custom_script is None:
        return tree
    derived = run_script(descriptor.custom_script, tree)
    if isinstance(tree, Mapping):
        return {**tree, SCRIPT_RESULT_KEY: derived}
    return {SCRIPT_RESULT_KEY: derived}


def extract_binding(tree: Any, binding: OutputBinding) -> Any:
    value = walk(tree, binding.traversal_path, binding.array_configs)
    if value is None:
        return None
    return coerce_value(value, binding.data_type)


def extract(tree: Any, descriptor: IntegrationDescriptor, variables: RuntimeVariableSet) -> dict[str, Any]:
    """Build the output map keyed by each bound variable's title."""
    source = with_script_result(tree, descriptor)
    outputs: dict[str, Any] = {}
    for binding in descriptor.outputs:
        title = variables.output_title(binding.output_variable)
        if title is None:
            continue
        try:
            outputs[title] = extract_binding(source, binding)
        except Exception as exc:
            logger.warning("Cannot extract %s of %s: %s", binding.api_name, descriptor.name, exc)
    return outputs
