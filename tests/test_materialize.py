from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from sheetbind.coercion import TypeTag
from sheetbind.descriptor import TypeDescriptor
from sheetbind.errors import ValueFormatError
from sheetbind.headers import reconcile_headers
from sheetbind.materialize import extract_row, is_blank_row, materialize_record, record_to_row


@dataclass
class Contact:
    name: str
    email: str
    age: int


@dataclass
class Member:
    name: str
    level: int = 1
    note: str | None = field(default=None, init=False)


class Person:
    def __init__(self, name: str, age: int) -> None:
        self.name = name
        self.age = age
        self.email: str | None = "unset"


def _contact_row(cells: list[str | None]) -> Contact:
    columns = reconcile_headers(["Full Name", "e-mail", "Age"], ["name", "email", "age"])
    descriptor = TypeDescriptor.from_dataclass(Contact)
    return materialize_record(extract_row(cells, columns), descriptor, row=2)


def test_scenario_absent_age_defaults_to_zero() -> None:
    record = _contact_row(["Jane Doe", "jane@x.com", ""])

    assert record == Contact(name="Jane Doe", email="jane@x.com", age=0)


def test_scenario_malformed_age_raises_with_field_and_row() -> None:
    with pytest.raises(ValueFormatError) as excinfo:
        _contact_row(["Jane Doe", "jane@x.com", "thirty"])

    err = excinfo.value
    assert err.field == "age"
    assert err.text == "thirty"
    assert err.type_tag is TypeTag.INT64
    assert err.row == 2
    assert "'thirty'" in str(err)
    assert "'age'" in str(err)


def test_extract_row_trims_text_and_tolerates_short_rows() -> None:
    raw = extract_row(["  Jane  "], {0: "name", 2: "age"})

    assert raw == {"name": "Jane", "age": None}


def test_unmapped_fields_fall_back_to_declared_defaults() -> None:
    descriptor = TypeDescriptor.from_dataclass(Member)

    record = materialize_record({"name": "Kim"}, descriptor)

    assert record.name == "Kim"
    assert record.level == 1
    assert record.note is None


def test_settable_fields_are_applied_after_construction() -> None:
    descriptor = TypeDescriptor.from_dataclass(Member)

    record = materialize_record({"name": "Kim", "level": "3", "note": " vip "}, descriptor)

    assert (record.level, record.note) == (3, "vip")


def test_builder_descriptor_materializes_plain_classes() -> None:
    descriptor = (
        TypeDescriptor.builder(Person)
        .field("name", TypeTag.TEXT)
        .field("age", TypeTag.SHORT, default=18)
        .attribute("email", TypeTag.TEXT, nullable=True)
        .build()
    )

    person = materialize_record({"name": "Lee", "age": None, "email": ""}, descriptor)

    assert (person.name, person.age, person.email) == ("Lee", 18, None)


def test_is_blank_row() -> None:
    assert is_blank_row([])
    assert is_blank_row([None, "", "  "])
    assert not is_blank_row([None, "x"])


def test_record_to_row_stringifies_in_field_order() -> None:
    descriptor = TypeDescriptor.from_dataclass(Member)
    member = Member(name="Kim", level=2)

    assert record_to_row(member, descriptor) == ["Kim", "2", ""]


def test_record_to_row_names_the_field_with_a_wrong_value_type() -> None:
    descriptor = TypeDescriptor.from_dataclass(Member)

    with pytest.raises(ValueFormatError) as excinfo:
        record_to_row(Member(name="Kim", level="high"), descriptor)  # type: ignore[arg-type]

    assert excinfo.value.field == "level"
    assert excinfo.value.type_tag is TypeTag.INT64
