"""Record materialization: raw rows to typed records and back."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from sheetbind.coercion import is_absent
from sheetbind.descriptor import TypeDescriptor
from sheetbind.errors import ValueFormatError
from sheetbind.headers import ColumnMap

T = TypeVar("T")

RawRow = dict[str, str | None]


def is_blank_row(cells: Sequence[str | None]) -> bool:
    return all(is_absent(cell) for cell in cells)


def extract_row(cells: Sequence[str | None], columns: ColumnMap) -> RawRow:
    """Pick the mapped cells of one row, keyed by field name (text trimmed)."""
    raw: RawRow = {}
    for idx, name in columns.items():
        text = cells[idx] if idx < len(cells) else None
        raw[name] = text.strip() if text is not None else None
    return raw


def materialize_record(
    raw: RawRow, descriptor: TypeDescriptor[T], *, row: int | None = None
) -> T:
    """Coerce every field of *raw* and build the record.

    Fields missing from *raw* (unmatched columns) behave like blank cells.

    Raises
    ------
    ValueFormatError
        If a non-blank cell does not parse; annotated with field and *row*.
    """
    values: dict[str, Any] = {}
    for spec in descriptor.fields:
        try:
            values[spec.name] = spec.parse(raw.get(spec.name))
        except ValueFormatError as exc:
            raise exc.with_context(field=spec.name, row=row) from exc
    return descriptor.construct(values)


def record_to_row(record: Any, descriptor: TypeDescriptor[Any]) -> list[str]:
    """Stringify *record* into one text cell per field, in field order."""
    values = descriptor.values_of(record)
    cells: list[str] = []
    for spec in descriptor.fields:
        try:
            cells.append(spec.stringify(values[spec.name]))
        except ValueFormatError as exc:
            raise exc.with_context(field=spec.name) from exc
    return cells
