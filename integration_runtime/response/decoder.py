"""Decoding of raw response bodies into plain trees."""

from __future__ import annotations

import copy
import json
import logging
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import ParseError, fromstring

from integration_runtime.errors import DecodeError
from integration_runtime.helpers.traversal import as_index, split_path
from integration_runtime.schemas.descriptor import IntegrationDescriptor

logger = logging.getLogger(__name__)

DEFAULT_PARSER_CONFIGS: dict[str, Any] = {
    "attr_key": "@",
    "char_key": "_",
    "explicit_array": False,
    "explicit_root": True,
}

# xml2js-style option names are accepted as well
_CONFIG_ALIASES = {
    "attrkey": "attr_key",
    "charkey": "char_key",
    "explicitArray": "explicit_array",
    "explicitRoot": "explicit_root",
}


class XMLTreeParser:
    """Turn an XML document into nested dicts.

    Attributes are grouped under ``attr_key``. An element with only text
    becomes that text; text next to attributes or children goes under
    ``char_key``. Repeated children become lists, and with ``explicit_array``
    every child is a list. Empty elements become ``""``.
    """

    def __init__(
        self,
        *,
        attr_key: str = "@",
        char_key: str = "_",
        explicit_array: bool = False,
        explicit_root: bool = True,
        trim: bool = False,
    ) -> None:
        self.attr_key = attr_key
        self.char_key = char_key
        self.explicit_array = explicit_array
        self.explicit_root = explicit_root
        self.trim = trim

    @classmethod
    def from_configs(cls, configs: Mapping[str, Any] | None) -> XMLTreeParser:
        merged = dict(DEFAULT_PARSER_CONFIGS)
        for key, value in (configs or {}).items():
            merged[_CONFIG_ALIASES.get(key, key)] = value
        return cls(
            attr_key=merged["attr_key"],
            char_key=merged["char_key"],
            explicit_array=bool(merged["explicit_array"]),
            explicit_root=bool(merged["explicit_root"]),
            trim=bool(merged.get("trim", False)),
        )

    def parse(self, document: str) -> Any:
        root = fromstring(document)
        value = self._convert(root)
        if self.explicit_root:
            return {root.tag: value}
        return value

    def _convert(self, element: ET.Element) -> Any:
        children: dict[str, list[Any]] = {}
        for child in element:
            children.setdefault(child.tag, []).append(self._convert(child))

        node: dict[str, Any] = {}
        if element.attrib:
            node[self.attr_key] = dict(element.attrib)
        for tag, values in children.items():
            node[tag] = values if self.explicit_array or len(values) > 1 else values[0]

        text = "".join(_own_text(element))
        if self.trim or children:
            text = text.strip()

        if not node:
            return text
        if text:
            node[self.char_key] = text
        return node


def _own_text(element: ET.Element) -> list[str]:
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return parts


def decode_payload(raw: Any, parser_configs: Mapping[str, Any] | None = None) -> Any:
    """Decode a single payload: JSON first, then XML."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if not isinstance(raw, str):
        return raw
    if not raw.strip():
        return None

    try:
        return json.loads(raw)
    except ValueError:
        pass

    try:
        return XMLTreeParser.from_configs(parser_configs).parse(raw)
    except (ParseError, DefusedXmlException) as exc:
        raise DecodeError(f"Response body is neither JSON nor XML: {exc}") from exc


def unwrap_nested(tree: Any, path: str, parser_configs: Mapping[str, Any] | None = None) -> Any:
    """Decode the encoded payload found at ``path`` inside ``tree``.

    Works on a deep copy. A missing intermediate leaves the tree unchanged.
    """
    segments = split_path(path)
    if not segments or not isinstance(tree, (Mapping, list)):
        return tree

    unwrapped = copy.deepcopy(tree)
    current: Any = unwrapped
    for position, segment in enumerate(segments):
        if isinstance(current, list):
            key: Any = as_index(segment, len(current))
            if key is None:
                return tree
        elif isinstance(current, dict) and segment in current:
            key = segment
        else:
            return tree

        if position == len(segments) - 1:
            current[key] = decode_payload(current[key], parser_configs)
            return unwrapped
        current = current[key]
    return tree


def decode(raw: Any, descriptor: IntegrationDescriptor) -> Any:
    tree = decode_payload(raw, descriptor.xml_parser_configs)
    if descriptor.raw_data_parse and descriptor.raw_data_traversal_path and tree is not None:
        logger.debug("Unwrapping nested payload at %s for %s", descriptor.raw_data_traversal_path, descriptor.name)
        tree = unwrap_nested(tree, descriptor.raw_data_traversal_path, descriptor.xml_parser_configs)
    return tree
