"""Infer the semantic type of a mapped column from its metadata strings."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Sequence


class FieldType(Enum):
    STRING = "SingleLine"
    LONG_TEXT = "Multiline"
    BOOLEAN = "Boolean"
    DATE_TIME = "DateTime"
    INTEGER = "Integer"
    DECIMAL = "Decimal"
    CHOICE = "ChoicePicker"

    @property
    def wire_type(self) -> str:
        return self.value


NamePattern = tuple[Callable[[str], bool], FieldType]


def _contains(*needles: str) -> Callable[[str], bool]:
    return lambda name: any(needle in name for needle in needles)


def _startswith(*prefixes: str) -> Callable[[str], bool]:
    return lambda name: name.startswith(prefixes)


# Evaluated top to bottom, first match wins. Matching is case-sensitive.
FORM_FIELD_PATTERNS: tuple[NamePattern, ...] = (
    (_contains("Choose", "Choice"), FieldType.CHOICE),
    (_contains("AttBool"), FieldType.BOOLEAN),
    (_contains("AttDateTime"), FieldType.DATE_TIME),
    (_contains("AttInt"), FieldType.INTEGER),
    (lambda name: "AttDecimal" in name or name.startswith("DET_Value"), FieldType.DECIMAL),
    (_startswith("DET_LongText"), FieldType.LONG_TEXT),
)

DETAIL_COLUMN_PATTERNS: tuple[NamePattern, ...] = (
    (_contains("Choose", "Choice"), FieldType.CHOICE),
    (_startswith("DET_Bool"), FieldType.BOOLEAN),
    (_startswith("DET_Date"), FieldType.DATE_TIME),
    (_startswith("DET_Int"), FieldType.INTEGER),
    (_startswith("DET_Value", "DET_Decimal"), FieldType.DECIMAL),
    (_startswith("DET_LongText"), FieldType.LONG_TEXT),
)

_YES_NO_HINT = "yes / no choice"


def classify_hint(column_type_hint: str | None) -> FieldType | None:
    """Map a schema column type description to a type, or None when unrecognised."""

    hint = (column_type_hint or "").strip().lower()
    if not hint:
        return None
    if _YES_NO_HINT in hint:
        return FieldType.BOOLEAN
    if "floating-point number" in hint:
        return FieldType.DECIMAL
    if "multiple lines of text" in hint:
        return FieldType.LONG_TEXT
    if "choice" in hint:
        return FieldType.CHOICE
    return None


def classify(
    column_type_hint: str | None,
    database_name: str | None,
    explicit_choice: bool = False,
    *,
    patterns: Sequence[NamePattern] = FORM_FIELD_PATTERNS,
) -> FieldType:
    """Return the field type for a column; unknown metadata yields ``STRING``.

    Resolution order: the explicit choice flag, then the column type hint,
    then the database name patterns. A hint that is present but not one of
    the known descriptions falls through to the name patterns.
    """

    if explicit_choice:
        return FieldType.CHOICE
    from_hint = classify_hint(column_type_hint)
    if from_hint is not None:
        return from_hint
    name = (database_name or "").strip()
    for matches, field_type in patterns:
        if matches(name):
            return field_type
    return FieldType.STRING


__all__ = [
    "FieldType",
    "FORM_FIELD_PATTERNS",
    "DETAIL_COLUMN_PATTERNS",
    "classify",
    "classify_hint",
]
