"""CLI integration smoke tests for sheetbind."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
from openpyxl import Workbook
from typer.testing import CliRunner

from sheetbind import __version__
from sheetbind.cli import app

runner = CliRunner()

CONTACT_FIELDS = ["--field", "name", "--field", "email", "--field", "age"]


def _write_xlsx(tmp_path: Path, name: str, rows: list[list[object]]) -> Path:
    path = tmp_path / name
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


def _contacts(tmp_path: Path) -> Path:
    return _write_xlsx(
        tmp_path,
        "contacts.xlsx",
        [
            ["Full Name", "e-mail", "Age", "Notes"],
            ["Jane Doe", "jane@x.com", 30, "vip"],
            ["Bo", "bo@x.com", None, None],
        ],
    )


def test_headers_all_matched_exits_zero(tmp_path: Path) -> None:
    result = runner.invoke(app, ["headers", str(_contacts(tmp_path)), *CONTACT_FIELDS])

    assert result.exit_code == 0
    assert "All fields matched" in result.stdout
    assert "passthrough" in result.stdout


def test_headers_unmatched_field_exits_one(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["headers", str(_contacts(tmp_path)), *CONTACT_FIELDS, "--field", "zebra", "-q"]
    )

    assert result.exit_code == 1
    assert "Unmatched fields: zebra" in result.stdout


def test_headers_alias_option_matches_renamed_header(tmp_path: Path) -> None:
    path = _write_xlsx(tmp_path, "renamed.xlsx", [["Contact", "Mailbox"], ["Ann", "a@x.com"]])

    result = runner.invoke(
        app,
        [
            "headers", str(path),
            "--field", "name", "--field", "email",
            "--alias", "name=Contact", "--alias", "email=Mailbox",
            "--quiet",
        ],
    )

    assert result.exit_code == 0


def test_headers_profile_with_comments(tmp_path: Path) -> None:
    profile_path = tmp_path / "aliases.txt"
    profile_path.write_text("# contacts\n\nname=Contact\n")
    path = _write_xlsx(tmp_path, "renamed.xlsx", [["Contact"], ["Ann"]])

    result = runner.invoke(
        app, ["headers", str(path), "--field", "name", "--profile", str(profile_path), "-q"]
    )

    assert result.exit_code == 0


def test_headers_profile_not_found_error(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        [
            "headers", str(_contacts(tmp_path)), *CONTACT_FIELDS,
            "--profile", str(tmp_path / "nonexist.txt"),
        ],
    )

    assert result.exit_code == 2
    assert "Profile not found" in result.stdout


def test_headers_missing_sheet_error(tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["headers", str(_contacts(tmp_path)), *CONTACT_FIELDS, "--sheet", "Nope"]
    )

    assert result.exit_code == 2
    assert "Sheet not found" in result.stdout


def test_dump_preview_prints_rows(tmp_path: Path) -> None:
    result = runner.invoke(app, ["dump", str(_contacts(tmp_path)), "--limit", "1"])

    assert result.exit_code == 0
    assert "Jane Doe" in result.stdout
    assert "bo@x.com" not in result.stdout


def test_dump_writes_json(tmp_path: Path) -> None:
    out = tmp_path / "out" / "rows.json"

    result = runner.invoke(app, ["dump", str(_contacts(tmp_path)), "--out", str(out), "-q"])

    assert result.exit_code == 0
    rows = json.loads(out.read_text())
    assert rows == [
        {"Full Name": "Jane Doe", "e-mail": "jane@x.com", "Age": "30", "Notes": "vip"},
        {"Full Name": "Bo", "e-mail": "bo@x.com", "Age": None, "Notes": None},
    ]


def test_dump_writes_csv(tmp_path: Path) -> None:
    out = tmp_path / "rows.csv"

    result = runner.invoke(app, ["dump", str(_contacts(tmp_path)), "--out", str(out)])

    assert result.exit_code == 0
    assert "Dump" in result.stdout
    frame = pd.read_csv(out, dtype="string")
    assert list(frame.columns) == ["Full Name", "e-mail", "Age", "Notes"]
    assert frame.loc[0, "Full Name"] == "Jane Doe"


def test_dump_rejects_unknown_output_type(tmp_path: Path) -> None:
    out = tmp_path / "rows.parquet"

    result = runner.invoke(app, ["dump", str(_contacts(tmp_path)), "--out", str(out)])

    assert result.exit_code == 2
    assert not out.exists()


def test_version_flag_prints_and_exits() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "sheetbind" in result.stdout
    assert f"v{__version__}" in result.stdout
