"""Value helpers shared by request synthesis and response mapping."""

from integration_runtime.helpers.coerce import coerce_value, is_truthy, to_text
from integration_runtime.helpers.dates import format_date, parse_date
from integration_runtime.helpers.traversal import assign, walk

__all__ = ["assign", "coerce_value", "format_date", "is_truthy", "parse_date", "to_text", "walk"]
