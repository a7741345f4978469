"""Read path: header reconciliation then per-row record materialization."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from pathlib import Path
from types import TracebackType
from typing import Generic, TypeVar

from sheetbind.config import SheetConfig
from sheetbind.descriptor import TypeDescriptor, descriptor_for
from sheetbind.headers import ColumnMap, reconcile_headers
from sheetbind.io import SheetHandle, Source, WorkbookHandle, open_workbook
from sheetbind.materialize import RawRow, extract_row, is_blank_row, materialize_record

logger = logging.getLogger(__name__)

T = TypeVar("T")


def as_descriptor(target: type[T] | TypeDescriptor[T]) -> TypeDescriptor[T]:
    if isinstance(target, TypeDescriptor):
        return target
    return descriptor_for(target)


def _source_name(source: Source) -> str | None:
    if isinstance(source, (str, Path)):
        return str(source)
    name = getattr(source, "name", None)
    return name if isinstance(name, str) else None


def _cancelled(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


class SheetReader:
    """Owns an open workbook; releases it on :meth:`close` or ``with`` exit."""

    def __init__(self, source: Source, config: SheetConfig | None = None) -> None:
        self.config = config or SheetConfig()
        workbook_format = self.config.resolve_format(_source_name(source))
        self._workbook: WorkbookHandle | None = open_workbook(source, workbook_format)

    def __enter__(self) -> SheetReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._workbook is not None:
            self._workbook.close()
            self._workbook = None

    def _sheet(self) -> SheetHandle:
        if self._workbook is None:
            raise ValueError("Reader is closed")
        return self._workbook.sheet(self.config.sheet_name)

    def _reconcile(self, header: Sequence[str | None], field_names: Sequence[str]) -> ColumnMap:
        return reconcile_headers(
            header,
            field_names,
            aliases=self.config.human_readable_headers,
            matching_percentage=self.config.matching_percentage,
        )

    def column_map(self, field_names: Sequence[str]) -> ColumnMap:
        """Reconcile the sheet's header row against *field_names*."""
        header = next(self._sheet().rows(), [])
        return self._reconcile(header, field_names)

    def _iter_raw(
        self, field_names: Sequence[str], cancel: threading.Event | None
    ) -> Iterator[tuple[int, RawRow]]:
        rows = self._sheet().rows()
        header = next(rows, None)
        if header is None:
            return
        columns = self._reconcile(header, field_names)
        for row_number, cells in enumerate(rows, start=2):
            if _cancelled(cancel):
                logger.info("Read cancelled before row %d", row_number)
                return
            if is_blank_row(cells):
                continue
            yield row_number, extract_row(cells, columns)

    def read(
        self,
        target: type[T] | TypeDescriptor[T],
        *,
        cancel: threading.Event | None = None,
    ) -> Iterator[T]:
        """Lazily yield one typed record per non-blank data row.

        Raises
        ------
        ValueFormatError
            On the first non-blank cell whose text does not parse.
        """
        descriptor = as_descriptor(target)
        return (
            materialize_record(raw, descriptor, row=row_number)
            for row_number, raw in self._iter_raw(descriptor.field_names, cancel)
        )

    def read_rows(self, *, cancel: threading.Event | None = None) -> Iterator[RawRow]:
        """Lazily yield ``{header text: cell text}`` per non-blank data row."""
        return (raw for _row_number, raw in self._iter_raw([], cancel))


class SheetIterator(Generic[T]):
    """Iterator that owns its reader.

    The workbook is released on exhaustion, on error, on :meth:`close` and on
    garbage collection, whether or not iteration ever started.
    """

    def __init__(self, reader: SheetReader, items: Iterator[T]) -> None:
        self._reader: SheetReader | None = reader
        self._items = items

    def __iter__(self) -> SheetIterator[T]:
        return self

    def __next__(self) -> T:
        if self._reader is None:
            raise StopIteration
        try:
            return next(self._items)
        except BaseException:
            self.close()
            raise

    def __enter__(self) -> SheetIterator[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()

    def close(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None:
            close_items = getattr(self._items, "close", None)
            if close_items is not None:
                close_items()
            reader.close()


def read_records(
    source: Source,
    target: type[T] | TypeDescriptor[T],
    config: SheetConfig | None = None,
    *,
    cancel: threading.Event | None = None,
) -> SheetIterator[T]:
    """Open *source* and lazily yield typed records.

    The returned iterator owns the workbook; close it (or use it in a
    ``with`` block) when abandoning iteration early.
    """
    reader = SheetReader(source, config)
    try:
        records = reader.read(target, cancel=cancel)
    except BaseException:
        reader.close()
        raise
    return SheetIterator(reader, records)


def read_rows(
    source: Source,
    config: SheetConfig | None = None,
    *,
    cancel: threading.Event | None = None,
) -> SheetIterator[RawRow]:
    """Open *source* and lazily yield untyped passthrough rows."""
    reader = SheetReader(source, config)
    return SheetIterator(reader, reader.read_rows(cancel=cancel))
