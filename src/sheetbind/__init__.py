"""sheetbind: bind spreadsheet rows to typed records and back."""

__version__ = "0.1.0"

from sheetbind.coercion import TypeTag, parse_value, stringify_value  # noqa: E402
from sheetbind.config import SheetConfig, WorkbookFormat, load_alias_profile  # noqa: E402
from sheetbind.descriptor import FieldSpec, TypeDescriptor, descriptor_for  # noqa: E402
from sheetbind.errors import (  # noqa: E402
    ConfigurationError,
    SheetBindError,
    UnsupportedFormatError,
    ValueFormatError,
)
from sheetbind.headers import reconcile_headers  # noqa: E402
from sheetbind.reader import SheetIterator, SheetReader, read_records, read_rows  # noqa: E402
from sheetbind.writer import SheetWriter, write_records  # noqa: E402

__all__ = [
    "ConfigurationError",
    "FieldSpec",
    "SheetBindError",
    "SheetConfig",
    "SheetIterator",
    "SheetReader",
    "SheetWriter",
    "TypeDescriptor",
    "TypeTag",
    "UnsupportedFormatError",
    "ValueFormatError",
    "WorkbookFormat",
    "__version__",
    "descriptor_for",
    "load_alias_profile",
    "parse_value",
    "read_records",
    "read_rows",
    "reconcile_headers",
    "stringify_value",
    "write_records",
]
