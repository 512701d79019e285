"""Dotted-path traversal over decoded trees and body templates."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from integration_runtime.errors import TemplateResolutionError


def split_path(path: str | None) -> list[str]:
    if not path:
        return []
    return path.split(".")


def as_index(segment: str, size: int) -> int | None:
    """Return the list index a segment addresses, or ``None``."""
    if not segment.isdigit():
        return None
    index = int(segment)
    return index if index < size else None


def matches(value: Any, expected: Any) -> bool:
    """Strict equality: booleans never match numbers."""
    if isinstance(value, bool) or isinstance(expected, bool):
        return type(value) is type(expected) and value == expected
    return value == expected


def walk(tree: Any, path: str | None, array_configs: list[Mapping[str, Any]] | None = None) -> Any:
    """Resolve a dotted path, picking array elements through ordered matchers.

    ``array_configs`` is consumed left-to-right; the caller's list is never
    modified. Any miss yields ``None``.
    """
    segments = split_path(path)
    if not segments:
        return None
    matchers = list(array_configs or [])
    current = tree

    for segment in segments:
        if isinstance(current, list) and matchers:
            front = matchers[0]
            if isinstance(front, Mapping) and segment in front:
                expected = front[segment]
                found = next(
                    (
                        item
                        for item in current
                        if isinstance(item, Mapping) and segment in item and matches(item[segment], expected)
                    ),
                    None,
                )
                if found is None:
                    return None
                matchers.pop(0)
                current = found
                continue

        if isinstance(current, list):
            index = as_index(segment, len(current))
            if index is None:
                return None
            current = current[index]
        elif isinstance(current, Mapping):
            if segment not in current:
                return None
            current = current[segment]
        else:
            return None

    return current


def assign(target: dict[str, Any], path: str, value: Any, *, binding: str) -> None:
    """Write ``value`` at a dotted path, creating intermediate mappings."""
    segments = split_path(path)
    if not segments:
        raise TemplateResolutionError(f"Empty traversal path for input {binding}", binding=binding)

    current: Any = target
    for segment in segments[:-1]:
        if isinstance(current, list):
            index = as_index(segment, len(current))
            if index is None:
                raise TemplateResolutionError(
                    f"Segment '{segment}' is not an index of the list at '{path}'",
                    binding=binding,
                )
            current = current[index]
            continue
        if not isinstance(current, dict):
            raise TemplateResolutionError(
                f"Cannot descend into scalar at segment '{segment}' of '{path}'",
                binding=binding,
            )
        child = current.get(segment)
        if child is None:
            child = {}
            current[segment] = child
        current = child

    last = segments[-1]
    if isinstance(current, list):
        index = as_index(last, len(current))
        if index is None:
            raise TemplateResolutionError(f"Segment '{last}' is not an index of the list at '{path}'", binding=binding)
        current[index] = value
    elif isinstance(current, dict):
        current[last] = value
    else:
        raise TemplateResolutionError(f"Cannot assign into scalar at '{path}'", binding=binding)
