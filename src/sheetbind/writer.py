"""Write path: header row from the type descriptor, one text row per record."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace
from pathlib import Path
from types import TracebackType
from typing import IO, Any, TypeVar

from sheetbind.config import SheetConfig
from sheetbind.descriptor import TypeDescriptor
from sheetbind.errors import ConfigurationError
from sheetbind.headers import header_labels
from sheetbind.io import XlsxSheet, XlsxWorkbook, new_workbook
from sheetbind.materialize import record_to_row
from sheetbind.reader import as_descriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")
Target = TypeVar("Target", Path, str, IO[bytes])


def _select_fields(descriptor: TypeDescriptor[Any], fields: Sequence[str] | None) -> list[str]:
    if fields is None:
        return descriptor.field_names
    unknown = [name for name in fields if name not in descriptor]
    if unknown:
        raise ConfigurationError(f"Unknown fields: {', '.join(unknown)}")
    return list(fields)


class SheetWriter:
    """Owns a new workbook; sheets are filled with :meth:`write`, persisted with :meth:`save`."""

    def __init__(self, config: SheetConfig | None = None) -> None:
        self.config = config or SheetConfig()
        self._workbook: XlsxWorkbook | None = new_workbook(self.config.resolve_format())

    def __enter__(self) -> SheetWriter:
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

    def _book(self) -> XlsxWorkbook:
        if self._workbook is None:
            raise ValueError("Writer is closed")
        return self._workbook

    def _column_width(self, max_length: int) -> int:
        return max_length * self.config.column_size_coefficient

    def write(
        self,
        records: Iterable[T],
        target: type[T] | TypeDescriptor[T],
        *,
        fields: Sequence[str] | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        """Write a header row plus one row per record; return the records written.

        *fields* overrides which fields become columns (and their order).
        Cancellation stops before the next record; rows already written stay.
        """
        descriptor = as_descriptor(target)
        names = _select_fields(descriptor, fields)
        labels = header_labels(names, self.config.human_readable_headers)
        sheet: XlsxSheet = self._book().create_sheet(self.config.sheet_name)

        sheet.write_row(0, labels)
        sheet.style_header(len(labels))
        widths = [max(len(label), len(name)) + 1 for label, name in zip(labels, names)]

        positions = [descriptor.field_names.index(name) for name in names]
        written = 0
        for record in records:
            if cancel is not None and cancel.is_set():
                logger.info("Write cancelled after %d records", written)
                break
            row = record_to_row(record, descriptor)
            cells = [row[pos] for pos in positions]
            written += 1
            sheet.write_row(written, cells)
            for col, text in enumerate(cells):
                widths[col] = max(widths[col], len(text))

        for col, width in enumerate(widths):
            sheet.set_column_width(col, self._column_width(width))
        logger.debug("Wrote %d records to sheet %r", written, sheet.title)
        return written

    def save(self, target: Target) -> Target:
        """Persist the workbook; streams are rewound to the start afterwards."""
        self._book().save(target)
        if not isinstance(target, (str, Path)) and target.seekable():
            target.seek(0)
        return target


def write_records(
    records: Iterable[T],
    target_type: type[T] | TypeDescriptor[T],
    output: Target,
    config: SheetConfig | None = None,
    *,
    fields: Sequence[str] | None = None,
    cancel: threading.Event | None = None,
) -> Target:
    """Write *records* to *output* (path or binary stream) and return *output*.

    An empty collection still produces the header row.
    """
    config = config or SheetConfig()
    if isinstance(output, (str, Path)) and config.workbook_format is None:
        config = replace(config, workbook_format=config.resolve_format(output))
    with SheetWriter(config) as writer:
        writer.write(records, target_type, fields=fields, cancel=cancel)
        return writer.save(output)
