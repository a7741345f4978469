"""Spreadsheet backends: open workbooks and move rows in and out as text.

xlsx goes through openpyxl; legacy .xls is read-only through xlrd.
"""

from __future__ import annotations

import json
import zipfile
from collections.abc import Iterator, Sequence
from datetime import date, datetime, time
from pathlib import Path
from typing import IO, Any, Protocol, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from sheetbind.coercion import stringify_value
from sheetbind.config import WorkbookFormat
from sheetbind.errors import ConfigurationError, UnsupportedFormatError

Source = Union[Path, str, IO[bytes]]

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

_WIDTH_UNITS_PER_CHAR = 256


def cell_text(value: Any) -> str | None:
    """Render a backend cell value as the text the coercion engine parses."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime) and value.time() == time.min and value.tzinfo is None:
        return value.date().isoformat()
    if isinstance(value, (int, float, date, time)) or hasattr(value, "total_seconds"):
        return stringify_value(value)
    return str(value)


class SheetHandle(Protocol):
    title: str

    def rows(self) -> Iterator[list[str | None]]: ...


class WorkbookHandle(Protocol):
    def sheet(self, name: str | None = None) -> SheetHandle: ...

    def close(self) -> None: ...


# ── xlsx (openpyxl) ──────────────────────────────────────────────


class XlsxSheet:
    def __init__(self, ws: Worksheet) -> None:
        self.ws = ws

    @property
    def title(self) -> str:
        return self.ws.title

    def rows(self) -> Iterator[list[str | None]]:
        for values in self.ws.iter_rows(values_only=True):
            yield [cell_text(v) for v in values]

    def write_row(self, index: int, cells: Sequence[str]) -> None:
        """Write *cells* as literal text into zero-based row *index*."""
        for col, text in enumerate(cells):
            cell = self.ws.cell(row=index + 1, column=col + 1, value=text)
            # openpyxl turns "=..." into a formula; keep the text literal.
            cell.data_type = "s"

    def set_column_width(self, column: int, width: int) -> None:
        """Set the width of zero-based *column* in 1/256ths of a character."""
        letter = get_column_letter(column + 1)
        self.ws.column_dimensions[letter].width = width / _WIDTH_UNITS_PER_CHAR

    def style_header(self, ncols: int) -> None:
        for c in range(1, ncols + 1):
            cell = self.ws.cell(row=1, column=c)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = HEADER_ALIGN
        self.ws.freeze_panes = "A2"


class XlsxWorkbook:
    def __init__(self, wb: Workbook, *, created: bool = False) -> None:
        self.wb = wb
        self._created = created
        self._default_claimed = False

    @classmethod
    def open(cls, source: Source) -> XlsxWorkbook:
        try:
            wb = load_workbook(source, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
            raise UnsupportedFormatError(f"Cannot open workbook as xlsx: {exc}") from exc
        return cls(wb)

    @classmethod
    def new(cls) -> XlsxWorkbook:
        return cls(Workbook(), created=True)

    def sheet(self, name: str | None = None) -> XlsxSheet:
        if not name:
            ws = self.wb.active
            if ws is None:
                ws = self.wb.worksheets[0]
            return XlsxSheet(ws)
        if name not in self.wb.sheetnames:
            raise ConfigurationError(f"Sheet not found: {name!r}")
        return XlsxSheet(self.wb[name])

    def create_sheet(self, name: str | None = None) -> XlsxSheet:
        """Return sheet *name*, creating it when missing.

        The first unnamed request on a new workbook reuses its default sheet.
        """
        if name and name in self.wb.sheetnames:
            return XlsxSheet(self.wb[name])
        if self._created and not self._default_claimed and self.wb.active is not None:
            self._default_claimed = True
            ws = self.wb.active
            if name:
                ws.title = name
            return XlsxSheet(ws)
        return XlsxSheet(self.wb.create_sheet(title=name))

    def save(self, target: Path | str | IO[bytes]) -> None:
        if isinstance(target, (str, Path)):
            path = Path(target)
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(f"{path.stem}.tmp{path.suffix}")
            self.wb.save(tmp_path)
            tmp_path.replace(path)
            return
        self.wb.save(target)

    def close(self) -> None:
        self.wb.close()


# ── xls (xlrd, read-only) ────────────────────────────────────────


class XlsSheet:
    def __init__(self, sheet: Any, datemode: int, xlrd: Any) -> None:
        self._sheet = sheet
        self._datemode = datemode
        self._xlrd = xlrd

    @property
    def title(self) -> str:
        return self._sheet.name

    def _cell_value(self, cell: Any) -> Any:
        xlrd = self._xlrd
        if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
            return None
        if cell.ctype == xlrd.XL_CELL_DATE:
            return xlrd.xldate.xldate_as_datetime(cell.value, self._datemode)
        if cell.ctype == xlrd.XL_CELL_BOOLEAN:
            return bool(cell.value)
        return cell.value

    def rows(self) -> Iterator[list[str | None]]:
        for idx in range(self._sheet.nrows):
            yield [cell_text(self._cell_value(c)) for c in self._sheet.row(idx)]


class XlsWorkbook:
    def __init__(self, book: Any, xlrd: Any) -> None:
        self.book = book
        self._xlrd = xlrd

    @classmethod
    def open(cls, source: Source) -> XlsWorkbook:
        try:
            import xlrd
        except ImportError as exc:
            raise UnsupportedFormatError(
                "Unsupported .xls input unless 'xlrd' is installed. "
                "Either convert to .xlsx or add dependency: pip install xlrd"
            ) from exc
        try:
            if isinstance(source, (str, Path)):
                book = xlrd.open_workbook(str(source))
            else:
                book = xlrd.open_workbook(file_contents=source.read())
        except xlrd.XLRDError as exc:
            raise UnsupportedFormatError(f"Cannot open workbook as xls: {exc}") from exc
        return cls(book, xlrd)

    def sheet(self, name: str | None = None) -> XlsSheet:
        if not name:
            # xlrd does not expose the active sheet; the first one is used.
            return XlsSheet(self.book.sheet_by_index(0), self.book.datemode, self._xlrd)
        if name not in self.book.sheet_names():
            raise ConfigurationError(f"Sheet not found: {name!r}")
        return XlsSheet(self.book.sheet_by_name(name), self.book.datemode, self._xlrd)

    def close(self) -> None:
        self.book.release_resources()


# ── Factories ────────────────────────────────────────────────────


def open_workbook(source: Source, workbook_format: WorkbookFormat) -> WorkbookHandle:
    """Open *source* for reading.

    Raises
    ------
    FileNotFoundError
        If *source* is a path that does not exist.
    UnsupportedFormatError
        If the content cannot be read as *workbook_format*.
    """
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise FileNotFoundError(f"Input file not found: {source}")
    if workbook_format is WorkbookFormat.xlsx:
        return XlsxWorkbook.open(source)
    if workbook_format is WorkbookFormat.xls:
        return XlsWorkbook.open(source)
    raise UnsupportedFormatError(f"Unsupported workbook format: {workbook_format!r}")


def new_workbook(workbook_format: WorkbookFormat) -> XlsxWorkbook:
    if workbook_format is WorkbookFormat.xlsx:
        return XlsxWorkbook.new()
    raise UnsupportedFormatError(
        f"Writing {workbook_format.value} workbooks is not supported. Use xlsx."
    )


# ── JSON ─────────────────────────────────────────────────────────


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
