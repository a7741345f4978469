"""Typed value coercion: cell text to/from the closed set of field types."""

from __future__ import annotations

import re
import struct
import uuid
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from sheetbind.errors import ConfigurationError, ErrorKind, ValueFormatError


class TypeTag(str, Enum):
    TEXT = "text"
    BYTE = "byteInt"
    SHORT = "shortInt"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    DECIMAL = "decimal"
    UUID = "uuid"
    DATETIME = "dateTime"
    TIMESPAN = "timeSpan"
    DATE = "dateOnly"
    TIME = "timeOnly"


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()

# ── Zero values ─────────────────────────────────────────────────

_ZERO_VALUES: dict[TypeTag, Any] = {
    TypeTag.TEXT: "",
    TypeTag.BYTE: 0,
    TypeTag.SHORT: 0,
    TypeTag.INT32: 0,
    TypeTag.INT64: 0,
    TypeTag.FLOAT32: 0.0,
    TypeTag.FLOAT64: 0.0,
    TypeTag.DECIMAL: Decimal(0),
    TypeTag.UUID: uuid.UUID(int=0),
    TypeTag.DATETIME: datetime.min,
    TypeTag.TIMESPAN: timedelta(0),
    TypeTag.DATE: date.min,
    TypeTag.TIME: time.min,
}


def zero_value(tag: TypeTag, *, nullable: bool = False) -> Any:
    """Value used for an absent cell when the field declares no default."""
    if nullable:
        return None
    return _ZERO_VALUES[check_tag(tag)]


def is_absent(text: str | None) -> bool:
    return text is None or not text.strip()


def check_tag(tag: Any) -> TypeTag:
    if isinstance(tag, TypeTag):
        return tag
    try:
        return TypeTag(tag)
    except ValueError:
        raise ConfigurationError(
            f"Unsupported field type: {tag!r}", kind=ErrorKind.UNSUPPORTED_TYPE
        ) from None


# ── Parsers ─────────────────────────────────────────────────────

_INT_RE = re.compile(r"^[+-]?\d+(?:\.0*)?$")
_TIMESPAN_RE = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>\d+)\.)?"
    r"(?P<hours>\d{1,2}):(?P<minutes>\d{2}):(?P<seconds>\d{2})"
    r"(?:\.(?P<fraction>\d{1,7}))?$"
)

_INT_RANGES: dict[TypeTag, tuple[int, int]] = {
    TypeTag.BYTE: (0, 2**8 - 1),
    TypeTag.SHORT: (-(2**15), 2**15 - 1),
    TypeTag.INT32: (-(2**31), 2**31 - 1),
    TypeTag.INT64: (-(2**63), 2**63 - 1),
}


def _integer_parser(tag: TypeTag) -> Callable[[str], int]:
    low, high = _INT_RANGES[tag]

    def parse(text: str) -> int:
        if not _INT_RE.fullmatch(text):
            raise ValueError(text)
        result = int(text.split(".", 1)[0])
        if not low <= result <= high:
            raise ValueError(f"{result} outside [{low}, {high}]")
        return result

    return parse


def _parse_float32(text: str) -> float:
    # struct.pack raises OverflowError for finite values beyond single precision.
    return struct.unpack("<f", struct.pack("<f", float(text)))[0]


def _parse_decimal(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(text) from exc


def _parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        parsed = datetime.fromisoformat(text)
        if parsed.time() != time.min:
            raise
        return parsed.date()


def _parse_timespan(text: str) -> timedelta:
    match = _TIMESPAN_RE.fullmatch(text)
    if not match:
        raise ValueError(text)
    hours = int(match["hours"])
    minutes = int(match["minutes"])
    seconds = int(match["seconds"])
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValueError(text)
    fraction = (match["fraction"] or "").ljust(6, "0")[:6]
    result = timedelta(
        days=int(match["days"] or 0),
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        microseconds=int(fraction),
    )
    return -result if match["sign"] else result


_PARSERS: dict[TypeTag, Callable[[str], Any]] = {
    TypeTag.TEXT: str,
    TypeTag.BYTE: _integer_parser(TypeTag.BYTE),
    TypeTag.SHORT: _integer_parser(TypeTag.SHORT),
    TypeTag.INT32: _integer_parser(TypeTag.INT32),
    TypeTag.INT64: _integer_parser(TypeTag.INT64),
    TypeTag.FLOAT32: _parse_float32,
    TypeTag.FLOAT64: float,
    TypeTag.DECIMAL: _parse_decimal,
    TypeTag.UUID: uuid.UUID,
    TypeTag.DATETIME: datetime.fromisoformat,
    TypeTag.TIMESPAN: _parse_timespan,
    TypeTag.DATE: _parse_date,
    TypeTag.TIME: time.fromisoformat,
}


def parse_value(
    text: str | None,
    tag: TypeTag,
    *,
    nullable: bool = False,
    default: Any = NO_DEFAULT,
) -> Any:
    """Convert cell *text* into a value of type *tag*.

    Blank text never fails: it yields *default* when one is given, otherwise
    the zero value for *tag* (``None`` for nullable fields).

    Raises
    ------
    ValueFormatError
        If non-blank *text* does not parse as *tag*.
    ConfigurationError
        If *tag* is not a supported type.
    """
    tag = check_tag(tag)
    if is_absent(text):
        if default is not NO_DEFAULT:
            return default
        return zero_value(tag, nullable=nullable)

    stripped = str(text).strip()
    try:
        return _PARSERS[tag](stripped)
    except (ValueError, TypeError, OverflowError, struct.error) as exc:
        raise ValueFormatError(stripped, tag) from exc


# ── Stringify ───────────────────────────────────────────────────


def _format_timespan(value: timedelta) -> str:
    sign = "-" if value < timedelta(0) else ""
    value = abs(value)
    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.days:
        text = f"{value.days}.{text}"
    if value.microseconds:
        text = f"{text}.{value.microseconds:06d}"
    return sign + text


def _format_float(value: float) -> str:
    return repr(float(value))


_FORMATTERS: dict[TypeTag, Callable[[Any], str]] = {
    TypeTag.TEXT: str,
    TypeTag.BYTE: lambda v: str(int(v)),
    TypeTag.SHORT: lambda v: str(int(v)),
    TypeTag.INT32: lambda v: str(int(v)),
    TypeTag.INT64: lambda v: str(int(v)),
    TypeTag.FLOAT32: _format_float,
    TypeTag.FLOAT64: _format_float,
    TypeTag.DECIMAL: str,
    TypeTag.UUID: str,
    TypeTag.DATETIME: lambda v: v.isoformat(),
    TypeTag.TIMESPAN: _format_timespan,
    TypeTag.DATE: lambda v: v.isoformat(),
    TypeTag.TIME: lambda v: v.isoformat(),
}


def tag_for_value(value: Any) -> TypeTag:
    """Best-fit tag for an untyped Python value (used for passthrough writes)."""
    # datetime subclasses date, so order matters here.
    if isinstance(value, datetime):
        return TypeTag.DATETIME
    if isinstance(value, date):
        return TypeTag.DATE
    if isinstance(value, time):
        return TypeTag.TIME
    if isinstance(value, timedelta):
        return TypeTag.TIMESPAN
    if isinstance(value, bool):
        return TypeTag.TEXT
    if isinstance(value, int):
        return TypeTag.INT64
    if isinstance(value, float):
        return TypeTag.FLOAT64
    if isinstance(value, Decimal):
        return TypeTag.DECIMAL
    if isinstance(value, uuid.UUID):
        return TypeTag.UUID
    return TypeTag.TEXT


def stringify_value(value: Any, tag: TypeTag | None = None) -> str:
    """Render *value* as canonical cell text; ``None`` becomes ``""``.

    Raises
    ------
    ValueFormatError
        If *value* cannot be rendered as *tag*.
    """
    if value is None:
        return ""
    tag = tag_for_value(value) if tag is None else check_tag(tag)
    try:
        return _FORMATTERS[tag](value)
    except (ValueError, TypeError, AttributeError, OverflowError) as exc:
        raise ValueFormatError(str(value), tag) from exc
