"""Convert raw cell values into the wire representation of a classified field.

Every parser returns ``(value, ok)`` instead of raising. ``coerce`` never
fails: unparseable input falls back to a type-appropriate zero value, or is
passed through as text for date/time fields.
"""

from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple

import pandas as pd

from wfimport.core.logger import get_logger

from .classifier import FieldType

LOGGER = get_logger()

DEFAULT_TIMEZONE = "UTC"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TRUE_TOKENS = frozenset({"true", "1", "yes", "y"})
_FALSE_TOKENS = frozenset({"false", "0", "no", "n"})
_EXTRA_TRUE_TOKENS = frozenset({"t", "on"})
_EXTRA_FALSE_TOKENS = frozenset({"f", "off"})


class Coerced(NamedTuple):
    value: Any
    display: str


def is_missing(raw: Any) -> bool:
    """Return True for values that must be left out of a payload."""

    if raw is None:
        return True
    if isinstance(raw, str):
        return not raw.strip()
    if isinstance(raw, (list, tuple, dict, set)):
        return False
    try:
        return bool(pd.isna(raw))
    except (TypeError, ValueError):
        return False


def sanitize_text(value: Any) -> str:
    """Drop NUL bytes and control characters other than tab, CR and LF."""

    if value is None:
        return ""
    return _CONTROL_CHARS.sub("", str(value))


def to_text(raw: Any) -> str:
    """Render a cell value as text; integral floats lose their ``.0``."""

    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, numbers.Real) and not isinstance(raw, numbers.Integral):
        as_float = float(raw)
        if math.isfinite(as_float) and as_float.is_integer():
            return str(int(as_float))
    return sanitize_text(raw)


def _decimal_text(value: Decimal) -> str:
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


# Parsers ---------------------------------------------------------------------------


def parse_bool(raw: Any) -> tuple[bool, bool]:
    if isinstance(raw, bool):
        return raw, True
    if isinstance(raw, numbers.Real):
        return float(raw) != 0, True
    token = sanitize_text(raw).strip().lower()
    if token in _TRUE_TOKENS or token in _EXTRA_TRUE_TOKENS:
        return True, True
    if token in _FALSE_TOKENS:
        return False, True
    number, ok = parse_decimal(token)
    if ok:
        return number != 0, True
    if token in _EXTRA_FALSE_TOKENS:
        return False, True
    return False, False


def _is_grouped(text: str, separator: str) -> bool:
    return re.fullmatch(r"[+-]?\d{1,3}(?:" + re.escape(separator) + r"\d{3})+", text) is not None


def _normalize_number_text(text: str, *, prefer_grouping: bool = False) -> str | None:
    """Drop digit grouping and use ``.`` as the decimal point; None when the grouping is inconsistent.

    With both separators present the last one is the decimal point. A single
    separator is a decimal point unless *prefer_grouping* is set and it is
    followed by exactly three digits.
    """

    commas, dots = text.count(","), text.count(".")
    if commas and dots:
        decimal_sep = "," if text.rfind(",") > text.rfind(".") else "."
        group_sep = "." if decimal_sep == "," else ","
        whole, _, fraction = text.rpartition(decimal_sep)
        if decimal_sep in whole or not _is_grouped(whole, group_sep):
            return None
        return f"{whole.replace(group_sep, '')}.{fraction}"
    for separator, count in ((",", commas), (".", dots)):
        if count > 1:
            return text.replace(separator, "") if _is_grouped(text, separator) else None
        if count == 1:
            if prefer_grouping and _is_grouped(text, separator):
                return text.replace(separator, "")
            return text.replace(separator, ".")
    return text


def _parse_number_text(raw: Any, *, prefer_grouping: bool = False) -> tuple[Decimal, bool]:
    text = sanitize_text(raw).strip().replace("\u00a0", "").replace(" ", "")
    if not text:
        return Decimal(0), False
    normalized = _normalize_number_text(text, prefer_grouping=prefer_grouping)
    if normalized is None:
        return Decimal(0), False
    try:
        value = Decimal(normalized)
    except InvalidOperation:
        return Decimal(0), False
    if not value.is_finite():
        return Decimal(0), False
    return value, True


def parse_decimal(raw: Any) -> tuple[Decimal, bool]:
    if isinstance(raw, bool):
        return Decimal(int(raw)), True
    if isinstance(raw, numbers.Integral):
        return Decimal(int(raw)), True
    if isinstance(raw, numbers.Real):
        as_float = float(raw)
        if not math.isfinite(as_float):
            return Decimal(0), False
        return Decimal(repr(as_float)), True
    return _parse_number_text(raw)


def parse_int(raw: Any) -> tuple[int, bool]:
    if isinstance(raw, numbers.Integral):
        return int(raw), True
    if isinstance(raw, numbers.Real):
        value, ok = parse_decimal(raw)
    else:
        value, ok = _parse_number_text(raw, prefer_grouping=True)
    if not ok or value != value.to_integral_value():
        return 0, False
    return int(value), True


def parse_datetime(raw: Any, tz: str | None = None) -> tuple[pd.Timestamp | None, bool]:
    """Parse *raw* into a UTC timestamp; naive values are read in *tz* (default UTC)."""

    if isinstance(raw, (bool, numbers.Real)):
        return None, False
    try:
        if isinstance(raw, (datetime, date, pd.Timestamp)):
            stamp = pd.Timestamp(raw)
        else:
            text = sanitize_text(raw).strip()
            if not text:
                return None, False
            stamp = pd.to_datetime(text, errors="coerce")
        if stamp is None or pd.isna(stamp):
            return None, False
        if stamp.tzinfo is None:
            stamp = stamp.tz_localize(tz or DEFAULT_TIMEZONE, ambiguous="NaT", nonexistent="shift_forward")
            if pd.isna(stamp):
                return None, False
        return stamp.tz_convert("UTC"), True
    except (ValueError, TypeError, OverflowError):
        return None, False


def format_utc(stamp: pd.Timestamp) -> str:
    """Render ``YYYY-MM-DDTHH:MM:SS.sssZ``."""

    return f"{stamp.strftime('%Y-%m-%dT%H:%M:%S')}.{stamp.microsecond // 1000:03d}Z"


def parse_choice(raw: Any) -> list[dict[str, str]]:
    """Split ``id#name`` (or a bare name) into the one-element choice list."""

    text = to_text(raw)
    if "#" in text:
        choice_id, name = (part.strip() for part in text.split("#", 1))
    else:
        choice_id, name = "", text.strip()
    item: dict[str, str] = {"id": choice_id, "name": name} if choice_id else {"name": name}
    return [item]


# Entry point -----------------------------------------------------------------------


def coerce(raw: Any, field_type: FieldType, *, tz: str | None = None) -> Coerced:
    """Return the wire value and display string for *raw* under *field_type*."""

    if field_type in (FieldType.STRING, FieldType.LONG_TEXT):
        text = "" if raw is None else to_text(raw)
        return Coerced(text, text)

    if field_type is FieldType.BOOLEAN:
        flag, ok = parse_bool(raw)
        if not ok:
            LOGGER.debug("importer.coerce fallback type=%s raw=%r", field_type.name, raw)
        return Coerced(flag, "")

    if field_type is FieldType.DATE_TIME:
        stamp, ok = parse_datetime(raw, tz)
        if ok and stamp is not None:
            text = format_utc(stamp)
            return Coerced(text, text)
        LOGGER.debug("importer.coerce passthrough type=%s raw=%r", field_type.name, raw)
        text = "" if raw is None else sanitize_text(raw)
        return Coerced(text, text)

    if field_type is FieldType.INTEGER:
        number, ok = parse_int(raw)
        if not ok:
            LOGGER.debug("importer.coerce fallback type=%s raw=%r", field_type.name, raw)
        return Coerced(number, str(number))

    if field_type is FieldType.DECIMAL:
        amount, ok = parse_decimal(raw)
        if not ok:
            LOGGER.debug("importer.coerce fallback type=%s raw=%r", field_type.name, raw)
            return Coerced(0.0, "0")
        return Coerced(float(amount), _decimal_text(amount))

    # FieldType.CHOICE
    display = "" if raw is None else to_text(raw)
    return Coerced(parse_choice(raw), display)


__all__ = [
    "Coerced",
    "coerce",
    "format_utc",
    "is_missing",
    "parse_bool",
    "parse_choice",
    "parse_datetime",
    "parse_decimal",
    "parse_int",
    "sanitize_text",
    "to_text",
]
