"""DataFrame views over typed records and passthrough rows."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

import pandas as pd

from sheetbind.descriptor import TypeDescriptor
from sheetbind.reader import as_descriptor

T = TypeVar("T")


def records_to_frame(
    records: Iterable[T], target: type[T] | TypeDescriptor[T]
) -> pd.DataFrame:
    """One column per descriptor field (in field order), one row per record."""
    descriptor = as_descriptor(target)
    rows = [descriptor.values_of(record) for record in records]
    return pd.DataFrame(rows, columns=descriptor.field_names)


def rows_to_frame(rows: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Frame of untyped rows; columns keep first-seen order, cells stay text."""
    materialized = [dict(row) for row in rows]
    columns: list[str] = []
    for row in materialized:
        columns.extend(key for key in row if key not in columns)
    if not materialized:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(materialized, columns=columns).astype("string")
