"""XML request body serializers.

Two strategies are selectable per descriptor through ``xml_library``:

- ``builder``: generic tree builder. Emits an XML declaration, supports an
  attribute-key marker and a text-key marker, renders nulls as empty elements
  and pretty-prints by default.
- ``compact``: compact converter. No declaration and no whitespace; null and
  empty-string values follow a ``full`` / ``short`` / ``hide`` tag policy.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any
from xml.sax.saxutils import escape

from integration_runtime.helpers.coerce import to_text

BUILDER_LIBRARY = "builder"
COMPACT_LIBRARY = "compact"

DEFAULT_BUILDER_CONFIGS: dict[str, Any] = {"attr_key": "@", "root_name": "requestTag"}
DEFAULT_COMPACT_CONFIGS: dict[str, Any] = {
    "trim": True,
    "null_value_tag": "full",
    "empty_string_tag": "full",
    "root_tag": "requestTag",
}

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'


class TreeXMLBuilder:
    """Build an element tree from nested mappings and serialize it."""

    def __init__(
        self,
        *,
        root_name: str | None = None,
        attr_key: str = "@",
        char_key: str = "_",
        headless: bool = False,
        pretty: bool = True,
        indent: str = "  ",
    ) -> None:
        self._root_name = root_name
        self._attr_key = attr_key
        self._char_key = char_key
        self._headless = headless
        self._pretty = pretty
        self._indent = indent

    @classmethod
    def from_configs(cls, configs: Mapping[str, Any]) -> TreeXMLBuilder:
        return cls(
            root_name=configs.get("root_name"),
            attr_key=configs.get("attr_key", "@"),
            char_key=configs.get("char_key", "_"),
            headless=bool(configs.get("headless", False)),
            pretty=bool(configs.get("pretty", True)),
            indent=configs.get("indent", "  "),
        )

    def build(self, body: Any) -> str:
        root_name, content = self._root_for(body)
        root = ET.Element(root_name)
        self._fill(root, content)
        if self._pretty:
            ET.indent(root, space=self._indent)
        document = ET.tostring(root, encoding="unicode")
        if self._headless:
            return document
        separator = "\n" if self._pretty else ""
        return f"{_XML_DECLARATION}{separator}{document}"

    def _root_for(self, body: Any) -> tuple[str, Any]:
        if self._root_name:
            return self._root_name, body
        if isinstance(body, Mapping) and len(body) == 1:
            key, value = next(iter(body.items()))
            if key not in (self._attr_key, self._char_key):
                return str(key), value
        return "root", body

    def _fill(self, element: ET.Element, value: Any) -> None:
        if isinstance(value, Mapping):
            for key, item in value.items():
                if key == self._attr_key and isinstance(item, Mapping):
                    for name, attribute in item.items():
                        element.set(str(name), to_text(attribute))
                elif key == self._char_key:
                    element.text = to_text(item)
                else:
                    self._append(element, str(key), item)
        elif value is not None:
            element.text = to_text(value)

    def _append(self, parent: ET.Element, key: str, value: Any) -> None:
        if isinstance(value, list):
            for item in value:
                self._append(parent, key, item)
            return
        self._fill(ET.SubElement(parent, key), value)


class CompactXMLConverter:
    """Convert nested mappings to a compact XML string."""

    def __init__(
        self,
        *,
        root_tag: str | None = "requestTag",
        trim: bool = True,
        null_value_tag: str = "full",
        empty_string_tag: str = "full",
    ) -> None:
        self._root_tag = root_tag
        self._trim = trim
        self._null_value_tag = null_value_tag
        self._empty_string_tag = empty_string_tag

    @classmethod
    def from_configs(cls, configs: Mapping[str, Any]) -> CompactXMLConverter:
        return cls(
            root_tag=configs.get("root_tag"),
            trim=bool(configs.get("trim", False)),
            null_value_tag=configs.get("null_value_tag", "full"),
            empty_string_tag=configs.get("empty_string_tag", "full"),
        )

    def convert(self, body: Any) -> str:
        if isinstance(body, Mapping):
            inner = "".join(self._render(str(key), value) for key, value in body.items())
        else:
            inner = escape(to_text(body)) if body is not None else ""
        if not self._root_tag:
            return inner
        return f"<{self._root_tag}>{inner}</{self._root_tag}>"

    def _render(self, key: str, value: Any) -> str:
        if isinstance(value, list):
            return "".join(self._render(key, item) for item in value)
        if value is None:
            return self._empty(key, self._null_value_tag)
        if isinstance(value, Mapping):
            inner = "".join(self._render(str(child), item) for child, item in value.items())
            return f"<{key}>{inner}</{key}>"
        text = to_text(value)
        if self._trim:
            text = text.strip()
        if text == "":
            return self._empty(key, self._empty_string_tag)
        return f"<{key}>{escape(text)}</{key}>"

    @staticmethod
    def _empty(key: str, policy: str) -> str:
        if policy == "hide":
            return ""
        if policy == "short":
            return f"<{key}/>"
        return f"<{key}></{key}>"


def serialize_xml(body: Any, *, library: str, configs: Mapping[str, Any] | None) -> str:
    """Serialize a body tree with the strategy the descriptor selects."""
    if library == BUILDER_LIBRARY:
        return TreeXMLBuilder.from_configs(configs if configs is not None else DEFAULT_BUILDER_CONFIGS).build(body)
    return CompactXMLConverter.from_configs(configs if configs is not None else DEFAULT_COMPACT_CONFIGS).convert(body)
