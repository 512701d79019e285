"""Whitelisted callables and attribute access for sandboxed expressions."""

from __future__ import annotations

import json
import math
import statistics
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from integration_runtime.errors import EvaluatorRuntimeError
from integration_runtime.helpers.coerce import coerce_boolean_value, coerce_number_value, to_text
from integration_runtime.helpers.dates import format_date, parse_date

MAX_RANGE = 10_000
MAX_SEQUENCE_SIZE = 1_000_000


def check_size(length: int) -> None:
    if length > MAX_SEQUENCE_SIZE:
        raise EvaluatorRuntimeError("result too large")


def _bounded_range(*args: int) -> range:
    values = range(*args)
    if len(values) > MAX_RANGE:
        raise EvaluatorRuntimeError(f"range() larger than {MAX_RANGE} items is not allowed")
    return values


# str methods whose result can outgrow their receiver are sized before they run


def _bounded_zfill(text: str) -> Callable[[int], str]:
    def zfill(width: int) -> str:
        check_size(width)
        return text.zfill(width)

    return zfill


def _bounded_replace(text: str) -> Callable[..., str]:
    def replace(old: str, new: str, count: int = -1) -> str:
        occurrences = text.count(old) if old else len(text) + 1
        if count >= 0:
            occurrences = min(occurrences, count)
        check_size(len(text) + occurrences * (len(new) - len(old)))
        return text.replace(old, new, count)

    return replace


def _bounded_join(text: str) -> Callable[[Any], str]:
    def join(items: Any) -> str:
        parts = list(items)
        check_size(sum(len(part) for part in parts if isinstance(part, str)) + len(text) * max(len(parts) - 1, 0))
        return text.join(parts)

    return join


_GROWING_STR_METHODS: dict[str, Callable[[str], Callable[..., str]]] = {
    "join": _bounded_join,
    "replace": _bounded_replace,
    "zfill": _bounded_zfill,
}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _parse_json(text: str) -> Any:
    return json.loads(text)


def _mean(values: list[float]) -> float:
    return statistics.fmean(values)


def _median(values: list[float]) -> float:
    return statistics.median(values)


def _stdev(values: list[float]) -> float:
    return statistics.stdev(values)


SAFE_BUILTINS: dict[str, Callable[..., Any]] = {
    # python built-ins without I/O or introspection
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "dict": dict,
    "enumerate": enumerate,
    "filter": filter,
    "float": float,
    "int": int,
    "len": len,
    "list": list,
    "map": map,
    "max": max,
    "min": min,
    "range": _bounded_range,
    "reversed": reversed,
    "round": round,
    "set": set,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
    "zip": zip,
    # numeric helpers
    "ceil": math.ceil,
    "floor": math.floor,
    "sqrt": math.sqrt,
    "log": math.log,
    "exp": math.exp,
    "mean": _mean,
    "median": _median,
    "stdev": _stdev,
    "to_number": coerce_number_value,
    # string helpers
    "to_text": to_text,
    "to_boolean": coerce_boolean_value,
    "parse_json": _parse_json,
    # date helpers
    "now": _now,
    "parse_date": parse_date,
    "format_date": format_date,
}

_STR_METHODS = frozenset(
    {
        "capitalize",
        "count",
        "endswith",
        "find",
        "isalnum",
        "isalpha",
        "isdigit",
        "islower",
        "isnumeric",
        "isupper",
        "join",
        "lower",
        "lstrip",
        "partition",
        "replace",
        "rsplit",
        "rstrip",
        "split",
        "startswith",
        "strip",
        "title",
        "upper",
        "zfill",
    }
)
_DICT_METHODS = frozenset({"get", "items", "keys", "values"})
_LIST_METHODS = frozenset({"count", "index"})
_DATE_ATTRIBUTES = frozenset(
    {"year", "month", "day", "hour", "minute", "second", "weekday", "isoformat", "strftime", "date", "timestamp"}
)

SAFE_ATTRIBUTES: tuple[tuple[type, frozenset[str]], ...] = (
    (str, _STR_METHODS),
    (dict, _DICT_METHODS),
    (list, _LIST_METHODS),
    (tuple, _LIST_METHODS),
    (datetime, _DATE_ATTRIBUTES),
    (date, _DATE_ATTRIBUTES - {"hour", "minute", "second", "timestamp"}),
)


def safe_attribute(value: Any, name: str) -> Any:
    """Return an attribute only when its owner type whitelists it."""
    if name.startswith("_"):
        raise EvaluatorRuntimeError(f"access to attribute '{name}' is not allowed")
    if isinstance(value, str) and name in _GROWING_STR_METHODS:
        return _GROWING_STR_METHODS[name](value)
    for owner, allowed in SAFE_ATTRIBUTES:
        if isinstance(value, owner) and name in allowed:
            return getattr(value, name)
    raise EvaluatorRuntimeError(f"access to attribute '{name}' of {type(value).__name__} is not allowed")
