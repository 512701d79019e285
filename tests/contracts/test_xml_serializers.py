"""Tests for the two XML request body serializers."""

from __future__ import annotations

from integration_runtime.request.xml import CompactXMLConverter, TreeXMLBuilder, serialize_xml


def test_tree_builder_emits_declaration_attributes_and_text() -> None:
    builder = TreeXMLBuilder(root_name="Envelope", pretty=False)

    document = builder.build({"@": {"version": "1"}, "Body": {"Id": 7, "Note": {"@": {"lang": "en"}, "_": "hi"}}})

    assert document == (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<Envelope version="1"><Body><Id>7</Id><Note lang="en">hi</Note></Body></Envelope>'
    )


def test_tree_builder_uses_single_key_as_root_and_renders_nulls_as_empty() -> None:
    builder = TreeXMLBuilder(headless=True, pretty=False)

    assert builder.build({"order": {"id": None, "items": ["a", "b"]}}) == (
        "<order><id /><items>a</items><items>b</items></order>"
    )


def test_tree_builder_pretty_prints_by_default() -> None:
    document = TreeXMLBuilder(root_name="r", headless=True).build({"a": "1"})

    assert document == "<r>\n  <a>1</a>\n</r>"


def test_compact_converter_tag_policies() -> None:
    body = {"name": None, "note": "  ", "value": " 5 "}

    assert CompactXMLConverter(root_tag=None).convert(body) == "<name></name><note></note><value>5</value>"
    assert (
        CompactXMLConverter(root_tag=None, null_value_tag="short", empty_string_tag="hide").convert(body)
        == "<name/><value>5</value>"
    )
    assert (
        CompactXMLConverter(root_tag=None, trim=False, empty_string_tag="short").convert(body)
        == "<name></name><note>  </note><value> 5 </value>"
    )


def test_compact_converter_escapes_text() -> None:
    assert CompactXMLConverter(root_tag="q").convert({"term": "a < b & c"}) == "<q><term>a &lt; b &amp; c</term></q>"


def test_serialize_xml_selects_library_and_defaults() -> None:
    body = {"customer": {"id": "7"}}

    assert serialize_xml(body, library="compact", configs=None) == "<requestTag><customer><id>7</id></customer></requestTag>"
    assert serialize_xml(body, library="builder", configs={"headless": True, "pretty": False}) == (
        "<customer><id>7</id></customer>"
    )
    assert serialize_xml(body, library="builder", configs=None).startswith(
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<requestTag>'
    )
