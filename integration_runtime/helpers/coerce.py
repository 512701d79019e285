"""Best-effort value coercion for declared output data types.

Coercion never raises: a value that cannot be converted is either mapped to
``None`` (numbers) or returned unchanged (dates, unknown types, internal errors).
"""

from __future__ import annotations

import json
import math
from typing import Any

from integration_runtime.helpers.dates import format_date

DATE_OUTPUT_PATTERN = "MM/DD/YYYY"


def to_text(value: Any) -> str:
    """Stringify a decoded value the way it appears on the wire."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def is_truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (dict, list, tuple)):
        return True
    return bool(value)


def coerce_value(value: Any, data_type: str | None) -> Any:
    try:
        if data_type == "String":
            return to_text(value)
        if data_type == "Number":
            return coerce_number_value(value)
        if data_type == "Boolean":
            return coerce_boolean_value(value)
        if data_type == "Date":
            return coerce_date_value(value)
        return value
    except Exception:
        return value


def coerce_number_value(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return 0
    if "_" in text:
        return None
    lowered = text.lower()
    if lowered.startswith(("0x", "0o", "0b")):
        try:
            return int(text, 0)
        except ValueError:
            return None
    if lowered in {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity", "nan"}:
        # only the spelled-out form counts as infinite
        return {"infinity": math.inf, "+infinity": math.inf, "-infinity": -math.inf}.get(lowered)
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number


def coerce_boolean_value(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() == "true"
    return is_truthy(value)


def coerce_date_value(value: Any) -> Any:
    if not is_truthy(value):
        return value
    formatted = format_date(value, DATE_OUTPUT_PATTERN)
    return formatted if formatted is not None else value
