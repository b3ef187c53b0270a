"""Shape classification and member enumeration for values taking part in a comparison.

Every value is one of five mutually exclusive shapes, checked in this order:
null, dictionary, collection, composite, scalar. The comparator only ever
talks to a value through the accessor chosen for its shape.
"""
from __future__ import annotations

import dataclasses
import types
from collections.abc import Iterable, Mapping, Set
from enum import Enum
from typing import Any, Literal

Shape = Literal["null", "dictionary", "collection", "composite", "scalar"]

MemberTriple = tuple[Any, Any, Any]

_MISSING = object()


class UnreadableMember:
    """Stands in for a member whose getter raised something other than AttributeError."""

    __slots__ = ("name", "error")

    def __init__(self, name: str, error: Exception) -> None:
        self.name = name
        self.error = error

    def __repr__(self) -> str:
        return f"<could not read {self.name}: {type(self.error).__name__}>"

    def describe(self) -> str:
        return f"could not read member {self.name}: {type(self.error).__name__}: {self.error}"


def read_member(value: Any, name: str) -> Any:
    try:
        return getattr(value, name)
    except AttributeError:
        return _MISSING
    except Exception as exc:
        return UnreadableMember(name, exc)

_TEXT_TYPES = (str, bytes, bytearray, memoryview)
_OPAQUE_TYPES = (
    type,
    types.ModuleType,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    Enum,
    BaseException,
)


def is_named_tuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(type(value), "_fields")


def _has_attrs_members(value: Any) -> bool:
    return hasattr(type(value), "__attrs_attrs__")


def _overrides_eq(klass: type) -> bool:
    return getattr(klass, "__eq__", object.__eq__) is not object.__eq__


def _is_plain_object(value: Any) -> bool:
    if isinstance(value, _OPAQUE_TYPES):
        return False
    klass = type(value)
    if _overrides_eq(klass):
        return False
    return hasattr(value, "__dict__") or bool(_slot_names(klass))


def _slot_names(klass: type) -> list[str]:
    names: list[str] = []
    for base in reversed(klass.__mro__):
        slots = base.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__") or name in names:
                continue
            names.append(name)
    return names


def classify(
    value: Any,
    *,
    by_value: tuple[type, ...] = (),
    by_members: tuple[type, ...] = (),
) -> Shape:
    if value is None:
        return "null"
    if isinstance(value, type):
        return "scalar"
    if by_value and isinstance(value, by_value):
        return "scalar"
    if isinstance(value, Mapping):
        return "dictionary"
    if by_members and isinstance(value, by_members):
        return "composite"
    if is_named_tuple(value):
        return "composite"
    if isinstance(value, Iterable) and not isinstance(value, _TEXT_TYPES):
        return "collection"
    if dataclasses.is_dataclass(value):
        return "composite"
    if _has_attrs_members(value):
        return "composite"
    if _is_plain_object(value):
        return "composite"
    return "scalar"


class ValueAccessor:
    shape: Shape = "scalar"

    def members(self, value: Any) -> list[MemberTriple]:
        return []

    def lookup(self, value: Any, name: Any) -> Any:
        return _MISSING


class NullAccessor(ValueAccessor):
    shape: Shape = "null"


class ScalarAccessor(ValueAccessor):
    shape: Shape = "scalar"


class DictionaryAccessor(ValueAccessor):
    shape: Shape = "dictionary"

    def members(self, value: Any) -> list[MemberTriple]:
        return [(key, type(item), item) for key, item in value.items()]

    def lookup(self, value: Any, name: Any) -> Any:
        try:
            if name in value:
                return value[name]
        except TypeError:
            return _MISSING
        return _MISSING


class CollectionAccessor(ValueAccessor):
    shape: Shape = "collection"

    def elements(self, value: Any) -> list[Any]:
        if isinstance(value, list):
            return value
        return list(value)

    def is_unordered(self, value: Any) -> bool:
        return isinstance(value, Set)

    def members(self, value: Any) -> list[MemberTriple]:
        return [(index, type(item), item) for index, item in enumerate(self.elements(value))]

    def lookup(self, value: Any, name: Any) -> Any:
        elements = self.elements(value)
        if isinstance(name, int) and 0 <= name < len(elements):
            return elements[name]
        return _MISSING


class CompositeAccessor(ValueAccessor):
    shape: Shape = "composite"

    def member_names(self, value: Any) -> list[tuple[str, Any]]:
        klass = type(value)
        if dataclasses.is_dataclass(value):
            return [(field.name, field.type) for field in dataclasses.fields(value)]
        if is_named_tuple(value):
            hints = getattr(klass, "__annotations__", {})
            return [(name, hints.get(name)) for name in klass._fields]
        if _has_attrs_members(value):
            return [(attribute.name, attribute.type) for attribute in klass.__attrs_attrs__]

        names: list[tuple[str, Any]] = []
        seen: set[str] = set()
        instance_names = list(vars(value)) if hasattr(value, "__dict__") else []
        for name in [*_slot_names(klass), *instance_names]:
            if name.startswith("_") or name in seen:
                continue
            seen.add(name)
            names.append((name, None))
        for base in reversed(klass.__mro__):
            for name, attribute in vars(base).items():
                if isinstance(attribute, property) and not name.startswith("_") and name not in seen:
                    seen.add(name)
                    hint = getattr(attribute.fget, "__annotations__", {}).get("return")
                    names.append((name, hint))
        return names

    def members(self, value: Any) -> list[MemberTriple]:
        triples: list[MemberTriple] = []
        for name, declared in self.member_names(value):
            member = read_member(value, name)
            if member is _MISSING:
                continue
            triples.append((name, declared if declared is not None else type(member), member))
        return triples

    def lookup(self, value: Any, name: Any) -> Any:
        if not isinstance(name, str):
            return _MISSING
        return read_member(value, name)


_ACCESSORS: dict[Shape, ValueAccessor] = {
    "null": NullAccessor(),
    "scalar": ScalarAccessor(),
    "dictionary": DictionaryAccessor(),
    "collection": CollectionAccessor(),
    "composite": CompositeAccessor(),
}


def accessor_for(
    value: Any,
    *,
    by_value: tuple[type, ...] = (),
    by_members: tuple[type, ...] = (),
) -> ValueAccessor:
    return _ACCESSORS[classify(value, by_value=by_value, by_members=by_members)]


def members(value: Any) -> list[MemberTriple]:
    """Return ``(name, type, value)`` for every comparable member of ``value``."""
    return accessor_for(value).members(value)


def is_missing(value: Any) -> bool:
    return value is _MISSING


__all__ = [
    "CollectionAccessor",
    "CompositeAccessor",
    "DictionaryAccessor",
    "MemberTriple",
    "NullAccessor",
    "ScalarAccessor",
    "Shape",
    "UnreadableMember",
    "ValueAccessor",
    "accessor_for",
    "classify",
    "is_missing",
    "is_named_tuple",
    "members",
    "read_member",
]
