from __future__ import annotations

from datetime import date, datetime

import pytest

from wfimport.services.importer.classifier import FieldType
from wfimport.services.importer.coercer import (
    coerce,
    is_missing,
    parse_decimal,
    parse_int,
    sanitize_text,
)


def test_integer_failure_defaults_to_zero() -> None:
    assert coerce("not-a-number", FieldType.INTEGER) == (0, "0")


@pytest.mark.parametrize(("raw", "expected"), [(7, 7), ("12", 12), ("12.0", 12), (12.0, 12), (" -3 ", -3)])
def test_integer_parsing(raw: object, expected: int) -> None:
    assert coerce(raw, FieldType.INTEGER) == (expected, str(expected))


def test_integer_rejects_fractions() -> None:
    assert parse_int("12.5") == (0, False)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1,234", 1234), ("1.234", 1234), ("1,234,567", 1234567), ("-2,500", -2500), ("1.234,00", 1234), ("12,5", 0)],
)
def test_integer_accepts_digit_grouping(raw: str, expected: int) -> None:
    assert coerce(raw, FieldType.INTEGER) == (expected, str(expected))


def test_choice_with_identifier() -> None:
    result = coerce("19#Acme", FieldType.CHOICE)
    assert result.value == [{"id": "19", "name": "Acme"}]
    assert result.display == "19#Acme"


def test_choice_without_identifier_has_no_id_key() -> None:
    result = coerce("Acme", FieldType.CHOICE)
    assert result.value == [{"name": "Acme"}]
    assert "id" not in result.value[0]


def test_choice_parts_are_trimmed() -> None:
    assert coerce(" 7 # Widget Co ", FieldType.CHOICE).value == [{"id": "7", "name": "Widget Co"}]
    assert coerce("#Nameless", FieldType.CHOICE).value == [{"name": "Nameless"}]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("YES", True), ("y", True), ("1", True), (1, True), (True, True),
     ("false", False), ("No", False), ("n", False), ("0", False), (0.0, False), ("maybe", False)],
)
def test_boolean_values_and_empty_display(raw: object, expected: bool) -> None:
    assert coerce(raw, FieldType.BOOLEAN) == (expected, "")


def test_datetime_is_emitted_as_utc_with_milliseconds() -> None:
    assert coerce("2024-03-01 10:00", FieldType.DATE_TIME).value == "2024-03-01T10:00:00.000Z"
    stamp = coerce(datetime(2024, 1, 2, 3, 4, 5, 678000), FieldType.DATE_TIME)
    assert stamp == ("2024-01-02T03:04:05.678Z", "2024-01-02T03:04:05.678Z")
    assert coerce(date(2024, 5, 6), FieldType.DATE_TIME).value == "2024-05-06T00:00:00.000Z"


def test_datetime_with_offset_is_converted_to_utc() -> None:
    assert coerce("2024-03-01T10:00:00+02:00", FieldType.DATE_TIME).value == "2024-03-01T08:00:00.000Z"


def test_naive_datetime_uses_source_timezone() -> None:
    result = coerce("2024-03-01 10:00", FieldType.DATE_TIME, tz="Europe/Warsaw")
    assert result.value == "2024-03-01T09:00:00.000Z"


def test_unparseable_datetime_passes_through() -> None:
    assert coerce("next tuesday-ish", FieldType.DATE_TIME) == ("next tuesday-ish", "next tuesday-ish")


@pytest.mark.parametrize(
    ("raw", "value", "display"),
    [
        ("1,5", 1.5, "1.5"),
        ("1,234.50", 1234.5, "1234.5"),
        ("1 234,5", 1234.5, "1234.5"),
        ("1.234,56", 1234.56, "1234.56"),
        ("1,234,567.8", 1234567.8, "1234567.8"),
        ("1.234.567", 1234567.0, "1234567"),
        ("12,34.5", 0.0, "0"),
        ("1,2,3", 0.0, "0"),
        (10.25, 10.25, "10.25"),
        (3, 3.0, "3"),
        ("abc", 0.0, "0"),
        ("", 0.0, "0"),
    ],
)
def test_decimal_parsing(raw: object, value: float, display: str) -> None:
    result = coerce(raw, FieldType.DECIMAL)
    assert result.value == value
    assert isinstance(result.value, float)
    assert result.display == display


def test_decimal_rejects_non_finite() -> None:
    assert parse_decimal("NaN") == (0, False)
    assert parse_decimal(float("inf"))[1] is False


def test_text_fields_are_sanitized() -> None:
    assert coerce("a\x00b\x07c\td\r\n", FieldType.STRING) == ("abc\td\r\n", "abc\td\r\n")
    assert coerce("line1\nline2", FieldType.LONG_TEXT).value == "line1\nline2"


def test_integral_float_renders_without_fraction() -> None:
    assert coerce(1234.0, FieldType.STRING).value == "1234"


def test_sanitize_text_handles_none() -> None:
    assert sanitize_text(None) == ""


@pytest.mark.parametrize("raw", [None, float("nan"), "", "   "])
def test_missing_values(raw: object) -> None:
    assert is_missing(raw)


@pytest.mark.parametrize("raw", [0, False, "0", "x", 0.0])
def test_present_values(raw: object) -> None:
    assert not is_missing(raw)
