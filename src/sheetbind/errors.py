"""Error taxonomy shared by the reader, writer and coercion engine."""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    UNSUPPORTED_FORMAT = "unsupported_format"
    UNSUPPORTED_TYPE = "unsupported_type"
    INVALID_CONFIG = "invalid_config"
    PARSE_FAILURE = "parse_failure"


class SheetBindError(Exception):
    """Base class for every error raised by sheetbind."""

    kind: ErrorKind


class UnsupportedFormatError(SheetBindError):
    """The workbook format cannot be opened (or written) by any backend."""

    kind = ErrorKind.UNSUPPORTED_FORMAT


class ConfigurationError(SheetBindError):
    """A record type or configuration value cannot be used."""

    def __init__(self, message: str, *, kind: ErrorKind = ErrorKind.INVALID_CONFIG) -> None:
        super().__init__(message)
        self.kind = kind


class ValueFormatError(SheetBindError, ValueError):
    """Non-blank cell text that does not parse as its field's type."""

    kind = ErrorKind.PARSE_FAILURE

    def __init__(
        self,
        text: str,
        type_tag: Any,
        *,
        field: str | None = None,
        row: int | None = None,
    ) -> None:
        self.text = text
        self.type_tag = type_tag
        self.field = field
        self.row = row
        super().__init__(self._message())

    def _message(self) -> str:
        tag = getattr(self.type_tag, "value", self.type_tag)
        where = ""
        if self.field is not None:
            where = f" for field {self.field!r}"
        if self.row is not None:
            where += f" (row {self.row})"
        return f"Cannot parse {self.text!r} as {tag}{where}"

    def with_context(self, *, field: str | None = None, row: int | None = None) -> ValueFormatError:
        """Return a copy annotated with the field and/or row it came from."""
        return ValueFormatError(
            self.text,
            self.type_tag,
            field=field if field is not None else self.field,
            row=row if row is not None else self.row,
        )
