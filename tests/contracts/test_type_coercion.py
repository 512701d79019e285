"""Tests for declared-type coercion of extracted values."""

from __future__ import annotations

import math

import pytest

from integration_runtime.helpers.coerce import coerce_value, is_truthy, to_text


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, "true"),
        (False, "false"),
        (3.0, "3"),
        (2.5, "2.5"),
        ({"a": [1, 2]}, '{"a":[1,2]}'),
        ("text", "text"),
    ],
)
def test_string_coercion(value: object, expected: str) -> None:
    assert coerce_value(value, "String") == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("42", 42),
        (" 3.5 ", 3.5),
        ("", 0),
        (True, 1),
        ("0x1F", 31),
        ("1e3", 1000.0),
        ("Infinity", math.inf),
        ("abc", None),
        ("1_000", None),
        ("nan", None),
        ([1], None),
    ],
)
def test_number_coercion(value: object, expected: object) -> None:
    assert coerce_value(value, "Number") == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("TRUE", True),
        ("true", True),
        ("yes", False),
        ("false", False),
        (1, True),
        (0, False),
        ([], True),
        ({}, True),
    ],
)
def test_boolean_coercion(value: object, expected: bool) -> None:
    assert coerce_value(value, "Boolean") is expected


def test_date_coercion_formats_parseable_values_and_keeps_the_rest() -> None:
    assert coerce_value("2024-03-09T12:00:00", "Date") == "03/09/2024"
    assert coerce_value("March 9, 2024", "Date") == "03/09/2024"
    assert coerce_value("soon", "Date") == "soon"
    assert coerce_value("", "Date") == ""
    assert coerce_value(0, "Date") == 0


def test_unknown_types_pass_values_through() -> None:
    value = {"nested": True}

    assert coerce_value(value, "Object") is value
    assert coerce_value(value, None) is value


@pytest.mark.parametrize("data_type", ["String", "Number", "Boolean", "Date"])
@pytest.mark.parametrize("value", ["12", "true", "2024-01-31", 7, 0.5, True])
def test_coercion_is_idempotent(data_type: str, value: object) -> None:
    once = coerce_value(value, data_type)

    assert coerce_value(once, data_type) == once


def test_truthiness_treats_containers_as_truthy_and_nan_as_falsy() -> None:
    assert is_truthy([]) is True
    assert is_truthy(float("nan")) is False
    assert to_text(None) == "null"
    assert to_text(float("-inf")) == "-Infinity"
