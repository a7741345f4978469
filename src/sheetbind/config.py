"""Reader/writer configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from sheetbind.errors import ConfigurationError
from sheetbind.headers import DEFAULT_MATCHING_PERCENTAGE

DEFAULT_COLUMN_SIZE_COEFFICIENT = 280
"""Column width per character, in 1/256ths of a character."""


class WorkbookFormat(str, Enum):
    xlsx = "xlsx"
    xls = "xls"


_SUFFIX_FORMATS: dict[str, WorkbookFormat] = {
    ".xlsx": WorkbookFormat.xlsx,
    ".xlsm": WorkbookFormat.xlsx,
    ".xltx": WorkbookFormat.xlsx,
    ".xltm": WorkbookFormat.xlsx,
    ".xls": WorkbookFormat.xls,
}


def format_from_suffix(path: Path | str) -> WorkbookFormat | None:
    return _SUFFIX_FORMATS.get(Path(path).suffix.lower())


def _to_alias_map(value: Any) -> Mapping[str, str]:
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, Mapping):
        raise ConfigurationError("human_readable_headers must be a mapping of field -> label")
    for key, label in value.items():
        if not isinstance(key, str) or not isinstance(label, str):
            raise ConfigurationError("human_readable_headers keys and labels must be strings")
        if not label.strip():
            raise ConfigurationError(f"Empty header label for field {key!r}")
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class SheetConfig:
    """Options shared by :class:`~sheetbind.reader.SheetReader` and the writer.

    ``workbook_format`` of ``None`` means detect it from the file name,
    falling back to xlsx. ``sheet_name`` of ``None`` selects the active sheet
    on read and the default sheet on write.
    """

    workbook_format: WorkbookFormat | None = None
    sheet_name: str | None = None
    matching_percentage: int = DEFAULT_MATCHING_PERCENTAGE
    human_readable_headers: Mapping[str, str] = field(default_factory=dict)
    column_size_coefficient: int = DEFAULT_COLUMN_SIZE_COEFFICIENT

    def __post_init__(self) -> None:
        if self.workbook_format is not None:
            try:
                object.__setattr__(self, "workbook_format", WorkbookFormat(self.workbook_format))
            except ValueError:
                raise ConfigurationError(
                    f"Invalid workbook format: {self.workbook_format!r}. Use xlsx or xls."
                ) from None
        if isinstance(self.matching_percentage, bool) or not isinstance(
            self.matching_percentage, int
        ):
            raise ConfigurationError("matching_percentage must be an integer")
        if not 0 <= self.matching_percentage <= 100:
            raise ConfigurationError("matching_percentage must be between 0 and 100")
        if isinstance(self.column_size_coefficient, bool) or not isinstance(
            self.column_size_coefficient, int
        ):
            raise ConfigurationError("column_size_coefficient must be an integer")
        if self.column_size_coefficient <= 0:
            raise ConfigurationError("column_size_coefficient must be > 0")
        object.__setattr__(
            self, "human_readable_headers", _to_alias_map(self.human_readable_headers)
        )

    def resolve_format(self, path: Path | str | None = None) -> WorkbookFormat:
        if self.workbook_format is not None:
            return self.workbook_format
        if path is not None:
            detected = format_from_suffix(path)
            if detected is not None:
                return detected
        return WorkbookFormat.xlsx


# ── Alias profiles ───────────────────────────────────────────────


def parse_alias_pairs(raw: list[str] | None) -> dict[str, str]:
    """Parse ``field=Label`` pairs into ``{field: label}``."""
    if not raw:
        return {}
    aliases: dict[str, str] = {}
    for item in raw:
        if "=" not in item:
            raise ConfigurationError(f"Invalid alias {item!r} (expected field=Label)")
        name, label = item.split("=", 1)
        name, label = name.strip(), label.strip()
        if not name or not label:
            raise ConfigurationError("Alias entries need a non-empty field and label (field=Label)")
        aliases[name] = label
    return aliases


def load_alias_profile(profile: Path | None) -> dict[str, str]:
    """Read ``field=Label`` lines from *profile*; ``#`` comments are skipped."""
    if not profile:
        return {}
    profile = Path(profile)
    if not profile.exists():
        raise ConfigurationError(f"Profile not found: {profile} (expected lines like age=Age)")
    if profile.is_dir():
        raise ConfigurationError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read profile {profile}: {exc}") from exc

    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(stripped)
    return parse_alias_pairs(lines)
