"""Type descriptors: the ordered field list of a target record type.

A :class:`TypeDescriptor` is built once per record type, either derived from
a dataclass or registered explicitly with :class:`DescriptorBuilder`. It owns
construction: constructor inputs are passed in declaration order, remaining
settable fields are assigned afterwards.
"""

from __future__ import annotations

import dataclasses
import types
import typing
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from functools import lru_cache
from typing import Any, Generic, TypeVar

from sheetbind.coercion import (
    NO_DEFAULT,
    TypeTag,
    check_tag,
    is_absent,
    parse_value,
    stringify_value,
)
from sheetbind.errors import ConfigurationError, ErrorKind

T = TypeVar("T")

_ANNOTATION_TAGS: dict[Any, TypeTag] = {
    str: TypeTag.TEXT,
    int: TypeTag.INT64,
    float: TypeTag.FLOAT64,
    Decimal: TypeTag.DECIMAL,
    uuid.UUID: TypeTag.UUID,
    datetime: TypeTag.DATETIME,
    timedelta: TypeTag.TIMESPAN,
    date: TypeTag.DATE,
    time: TypeTag.TIME,
}

# Narrower widths are only valid on top of their Python base type.
_NARROWING: dict[TypeTag, Any] = {
    TypeTag.BYTE: int,
    TypeTag.SHORT: int,
    TypeTag.INT32: int,
    TypeTag.INT64: int,
    TypeTag.FLOAT32: float,
    TypeTag.FLOAT64: float,
}


@dataclass(frozen=True)
class FieldSpec:
    """One target field: its name, type tag and construction role."""

    name: str
    type_tag: TypeTag
    nullable: bool = False
    required: bool = True
    kw_only: bool = False
    default: Any = NO_DEFAULT
    default_factory: Callable[[], Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ConfigurationError("Field name must be a non-empty string")
        object.__setattr__(self, "type_tag", check_tag(self.type_tag))
        if self.default is not NO_DEFAULT and self.default_factory is not None:
            raise ConfigurationError(
                f"Field {self.name!r} cannot declare both default and default_factory"
            )

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT or self.default_factory is not None

    def default_value(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default

    def parse(self, text: str | None) -> Any:
        if is_absent(text) and self.has_default:
            return self.default_value()
        return parse_value(text, self.type_tag, nullable=self.nullable)

    def stringify(self, value: Any) -> str:
        return stringify_value(value, self.type_tag)


class TypeDescriptor(Generic[T]):
    """Ordered field specs for a record type plus the factory that builds it."""

    def __init__(self, factory: Callable[..., T], fields: Iterable[FieldSpec]) -> None:
        self.factory = factory
        self.fields: tuple[FieldSpec, ...] = tuple(fields)
        names = [f.name for f in self.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate field names: {', '.join(duplicates)}")
        self._by_name = {f.name: f for f in self.fields}

    def __repr__(self) -> str:
        factory = getattr(self.factory, "__name__", repr(self.factory))
        return f"TypeDescriptor({factory}, fields={list(self.field_names)})"

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def required_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields if f.required]

    @property
    def optional_fields(self) -> list[FieldSpec]:
        return [f for f in self.fields if not f.required]

    def __getitem__(self, name: str) -> FieldSpec:
        return self._by_name[name]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def construct(self, values: Mapping[str, Any]) -> T:
        """Build a record from already-coerced *values* (keyed by field name)."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for spec in self.required_fields:
            if spec.kw_only:
                kwargs[spec.name] = values[spec.name]
            else:
                args.append(values[spec.name])
        record = self.factory(*args, **kwargs)
        for spec in self.optional_fields:
            setattr(record, spec.name, values[spec.name])
        return record

    def values_of(self, record: Any) -> dict[str, Any]:
        if isinstance(record, Mapping):
            return {name: record.get(name) for name in self.field_names}
        return {name: getattr(record, name, None) for name in self.field_names}

    # ── Constructors ────────────────────────────────────────────

    @classmethod
    def builder(cls, factory: Callable[..., T]) -> DescriptorBuilder[T]:
        return DescriptorBuilder(factory)

    @classmethod
    def from_dataclass(cls, record_type: type[T]) -> TypeDescriptor[T]:
        """Derive a descriptor from a dataclass's fields and type hints.

        Raises
        ------
        ConfigurationError
            If *record_type* is not a dataclass or a field's annotation has
            no coercion rule.
        """
        if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
            raise ConfigurationError(f"{record_type!r} is not a dataclass type")
        hints = typing.get_type_hints(record_type, include_extras=True)

        specs: list[FieldSpec] = []
        for dc_field in dataclasses.fields(record_type):
            tag, nullable = resolve_annotation(hints[dc_field.name], dc_field.name)
            default = NO_DEFAULT if dc_field.default is dataclasses.MISSING else dc_field.default
            factory = (
                None
                if dc_field.default_factory is dataclasses.MISSING
                else dc_field.default_factory
            )
            specs.append(
                FieldSpec(
                    name=dc_field.name,
                    type_tag=tag,
                    nullable=nullable,
                    required=dc_field.init,
                    kw_only=bool(getattr(dc_field, "kw_only", False)),
                    default=default,
                    default_factory=factory,
                )
            )
        # Constructor inputs first, then the fields assigned after construction.
        specs.sort(key=lambda s: not s.required)
        return cls(record_type, specs)


class DescriptorBuilder(Generic[T]):
    """Explicit, registration-time descriptor for types that are not dataclasses.

    Usage::

        descriptor = (
            TypeDescriptor.builder(Person)
            .field("name", TypeTag.TEXT)
            .field("age", TypeTag.INT32, default=0)
            .attribute("email", TypeTag.TEXT, nullable=True)
            .build()
        )
    """

    def __init__(self, factory: Callable[..., T]) -> None:
        self._factory = factory
        self._required: list[FieldSpec] = []
        self._optional: list[FieldSpec] = []

    def field(
        self,
        name: str,
        type_tag: TypeTag,
        *,
        nullable: bool = False,
        keyword: bool = False,
        default: Any = NO_DEFAULT,
        default_factory: Callable[[], Any] | None = None,
    ) -> DescriptorBuilder[T]:
        """Add a constructor input; order of calls is the positional order."""
        self._required.append(
            FieldSpec(
                name,
                type_tag,
                nullable=nullable,
                required=True,
                kw_only=keyword,
                default=default,
                default_factory=default_factory,
            )
        )
        return self

    def attribute(
        self,
        name: str,
        type_tag: TypeTag,
        *,
        nullable: bool = False,
        default: Any = NO_DEFAULT,
        default_factory: Callable[[], Any] | None = None,
    ) -> DescriptorBuilder[T]:
        """Add a field assigned with ``setattr`` after construction."""
        self._optional.append(
            FieldSpec(
                name,
                type_tag,
                nullable=nullable,
                required=False,
                default=default,
                default_factory=default_factory,
            )
        )
        return self

    def build(self) -> TypeDescriptor[T]:
        return TypeDescriptor(self._factory, [*self._required, *self._optional])


# ── Annotation resolution ───────────────────────────────────────


def _unsupported(annotation: Any, field_name: str) -> ConfigurationError:
    return ConfigurationError(
        f"Field {field_name!r} has unsupported type {annotation!r}",
        kind=ErrorKind.UNSUPPORTED_TYPE,
    )


def resolve_annotation(annotation: Any, field_name: str = "?") -> tuple[TypeTag, bool]:
    """Map a type annotation to ``(type_tag, nullable)``."""
    nullable = False
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(members) != 1:
            raise _unsupported(annotation, field_name)
        nullable = True
        annotation = members[0]
        origin = typing.get_origin(annotation)

    if origin is typing.Annotated:
        base, *extras = typing.get_args(annotation)
        tags = [e for e in extras if isinstance(e, TypeTag)]
        if len(tags) != 1:
            raise _unsupported(annotation, field_name)
        tag = tags[0]
        expected = _NARROWING.get(tag, None)
        if expected is None:
            expected = next((k for k, v in _ANNOTATION_TAGS.items() if v is tag), None)
        if base is not expected:
            raise _unsupported(annotation, field_name)
        return tag, nullable

    # bool is an int subclass but has no coercion rule of its own.
    if annotation is bool or annotation not in _ANNOTATION_TAGS:
        raise _unsupported(annotation, field_name)
    return _ANNOTATION_TAGS[annotation], nullable


@lru_cache(maxsize=None)
def descriptor_for(record_type: type[T]) -> TypeDescriptor[T]:
    """Cached :meth:`TypeDescriptor.from_dataclass`."""
    return TypeDescriptor.from_dataclass(record_type)
