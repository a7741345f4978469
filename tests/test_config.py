from __future__ import annotations

from pathlib import Path

import pytest

from sheetbind.config import (
    SheetConfig,
    WorkbookFormat,
    format_from_suffix,
    load_alias_profile,
    parse_alias_pairs,
)
from sheetbind.errors import ConfigurationError


def test_defaults() -> None:
    config = SheetConfig()

    assert config.matching_percentage == 80
    assert config.column_size_coefficient == 280
    assert config.sheet_name is None
    assert dict(config.human_readable_headers) == {}
    assert config.resolve_format() is WorkbookFormat.xlsx


def test_format_is_detected_from_suffix_unless_configured(tmp_path: Path) -> None:
    assert SheetConfig().resolve_format(tmp_path / "legacy.XLS") is WorkbookFormat.xls
    assert SheetConfig().resolve_format(tmp_path / "book.xlsm") is WorkbookFormat.xlsx
    assert SheetConfig().resolve_format(tmp_path / "data.bin") is WorkbookFormat.xlsx
    assert SheetConfig(workbook_format="xlsx").resolve_format("x.xls") is WorkbookFormat.xlsx
    assert format_from_suffix("notes.txt") is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"matching_percentage": 101},
        {"matching_percentage": -1},
        {"matching_percentage": True},
        {"column_size_coefficient": 0},
        {"workbook_format": "ods"},
        {"human_readable_headers": ["name"]},
        {"human_readable_headers": {"name": "  "}},
    ],
)
def test_invalid_values_raise_configuration_error(kwargs: dict[str, object]) -> None:
    with pytest.raises(ConfigurationError):
        SheetConfig(**kwargs)  # type: ignore[arg-type]


def test_alias_map_is_copied_and_read_only() -> None:
    aliases = {"name": "Full Name"}
    config = SheetConfig(human_readable_headers=aliases)
    aliases["name"] = "Changed"

    assert config.human_readable_headers["name"] == "Full Name"
    assert "age" not in config.human_readable_headers
    with pytest.raises(TypeError):
        config.human_readable_headers["age"] = "Age"  # type: ignore[index]


def test_parse_alias_pairs() -> None:
    assert parse_alias_pairs(["name = Full Name", "email=E-Mail"]) == {
        "name": "Full Name",
        "email": "E-Mail",
    }
    assert parse_alias_pairs(None) == {}
    with pytest.raises(ConfigurationError, match="field=Label"):
        parse_alias_pairs(["name"])
    with pytest.raises(ConfigurationError):
        parse_alias_pairs(["=Label"])


def test_load_alias_profile_skips_comments_and_blank_lines(tmp_path: Path) -> None:
    profile = tmp_path / "aliases.txt"
    profile.write_text("# contacts\n\nname=Full Name\n  age=Age  \n", encoding="utf-8")

    assert load_alias_profile(profile) == {"name": "Full Name", "age": "Age"}
    assert load_alias_profile(None) == {}


def test_load_alias_profile_reports_missing_and_directory(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Profile not found"):
        load_alias_profile(tmp_path / "missing.txt")
    with pytest.raises(ConfigurationError, match="directory"):
        load_alias_profile(tmp_path)
