"""Type dump parser using Lark.

Reads the text printed by ``bpftool btf dump file <obj> format raw`` and
builds a :class:`TypeGraph` from it.
"""

import os
from dataclasses import dataclass, field
from typing import Any, TypeVar

from lark import Lark, UnexpectedInput
from lark.visitors import Transformer

from ..errors import ValidationError
from .types import (
    AliasType,
    ArrayType,
    EnumType,
    EnumValue,
    IntType,
    Member,
    OpaqueType,
    StructType,
    TypeDescriptor,
    TypeGraph,
    UnionType,
)

_g_parser: Lark | None = None

ALIAS_KINDS = frozenset(["TYPEDEF", "CONST", "VOLATILE", "RESTRICT", "TYPE_TAG"])
AGGREGATE_KINDS = frozenset(["STRUCT", "UNION"])
ANON_NAME = "(anon)"


@dataclass
class _Name:
    value: str


@dataclass
class _Attribute:
    key: str
    value: str


@dataclass
class _Reference:
    kind: str
    name: str


@dataclass
class _Item:
    name: str | None
    attributes: dict[str, str]
    reference: _Reference | None


@dataclass
class _Entry:
    type_id: int
    kind: str
    name: str
    attributes: dict[str, str]
    items: list[_Item] = field(default_factory=list)


TFilter = TypeVar("TFilter", bound=object)


def _filter(args: list[Any], class_type: type[TFilter]) -> list[TFilter]:
    return [v for v in args if isinstance(v, class_type)]


def _find_one(args: list[Any], class_type: type[TFilter]) -> TFilter | None:
    filtered = _filter(args, class_type)
    if len(filtered) > 1:
        raise RuntimeError(f"Found more than one {class_type}")
    return filtered[0] if filtered else None


def _attributes(args: list[Any]) -> dict[str, str]:
    return {attr.key: attr.value for attr in _filter(args, _Attribute)}


class TreeTransformer(Transformer):
    """Transform parse tree into raw type entries."""

    def start(self, args: list[Any]) -> list[_Entry]:
        return _filter(args, _Entry)

    def entry(self, args: list[Any]) -> _Entry:
        name = _find_one(args, _Name)
        return _Entry(
            type_id=int(args[0]),
            kind=str(args[1]),
            name=name.value if name else "",
            attributes=_attributes(args),
            items=_filter(args, _Item),
        )

    def item(self, args: list[Any]) -> _Item:
        name = _find_one(args, _Name)
        return _Item(
            name=name.value if name else None,
            attributes=_attributes(args),
            reference=_find_one(args, _Reference),
        )

    def name(self, args: list[Any]) -> _Name:
        value = str(args[0])[1:-1]
        return _Name(value="" if value == ANON_NAME else value)

    def attribute(self, args: list[Any]) -> _Attribute:
        return _Attribute(key=str(args[0]), value=str(args[1]))

    def paren_value(self, args: list[Any]) -> str:
        return f"({args[0]})"

    def reference(self, args: list[Any]) -> _Reference:
        name = _find_one(args, _Name)
        return _Reference(kind=str(args[0]), name=name.value if name else "")


def _int_attr(entry: _Entry, attributes: dict[str, str], key: str) -> int:
    if key not in attributes:
        raise ValidationError(f"[{entry.type_id}] {entry.kind} is missing '{key}'")
    try:
        return int(attributes[key], 0)
    except ValueError:
        raise ValidationError(
            f"[{entry.type_id}] {entry.kind} has non-integer {key}={attributes[key]}"
        ) from None


def validate(entries: list[_Entry]) -> None:
    """Validate parsed type entries."""
    seen: set[int] = set()

    for entry in entries:
        if entry.type_id <= 0:
            raise ValidationError(f"Type id {entry.type_id} is reserved")
        if entry.type_id in seen:
            raise ValidationError(f"Type id {entry.type_id} declared twice")
        seen.add(entry.type_id)

        if entry.kind in ("INT", "ARRAY") or entry.kind in ALIAS_KINDS:
            if entry.items:
                raise ValidationError(f"[{entry.type_id}] {entry.kind} cannot have members")

        if "vlen" in entry.attributes:
            vlen = _int_attr(entry, entry.attributes, "vlen")
            if vlen != len(entry.items):
                raise ValidationError(
                    f"[{entry.type_id}] {entry.kind} declares vlen={vlen} "
                    f"but lists {len(entry.items)} items"
                )

        if entry.kind in AGGREGATE_KINDS:
            for item in entry.items:
                if item.name is None:
                    raise ValidationError(f"[{entry.type_id}] {entry.kind} member has no name")


def _build_members(entry: _Entry) -> tuple[Member, ...]:
    return tuple(
        Member(
            name=item.name or "",
            type_id=_int_attr(entry, item.attributes, "type_id"),
            offset_bits=_int_attr(entry, item.attributes, "bits_offset"),
            bitfield_size=(
                _int_attr(entry, item.attributes, "bitfield_size")
                if "bitfield_size" in item.attributes
                else 0
            ),
        )
        for item in entry.items
    )


def _build(entry: _Entry) -> TypeDescriptor:
    attrs = entry.attributes

    if entry.kind == "INT":
        return IntType(
            type_id=entry.type_id,
            name=entry.name,
            signed="SIGNED" in attrs.get("encoding", ""),
            bits=_int_attr(entry, attrs, "nr_bits"),
            size=_int_attr(entry, attrs, "size"),
        )

    if entry.kind == "ARRAY":
        return ArrayType(
            type_id=entry.type_id,
            name=entry.name,
            element_type_id=_int_attr(entry, attrs, "type_id"),
            element_count=_int_attr(entry, attrs, "nr_elems"),
        )

    if entry.kind == "STRUCT":
        return StructType(
            type_id=entry.type_id,
            name=entry.name,
            members=_build_members(entry),
            size=_int_attr(entry, attrs, "size"),
        )

    if entry.kind == "UNION":
        return UnionType(
            type_id=entry.type_id,
            name=entry.name,
            members=_build_members(entry),
            size=_int_attr(entry, attrs, "size"),
        )

    if entry.kind == "ENUM":
        return EnumType(
            type_id=entry.type_id,
            name=entry.name,
            values=tuple(
                EnumValue(name=item.name or "", value=_int_attr(entry, item.attributes, "val"))
                for item in entry.items
            ),
            size=_int_attr(entry, attrs, "size"),
        )

    if entry.kind in ALIAS_KINDS:
        return AliasType(
            type_id=entry.type_id,
            name=entry.name,
            target_id=_int_attr(entry, attrs, "type_id"),
            qualifier=entry.kind,
        )

    return OpaqueType(
        type_id=entry.type_id,
        name=entry.name,
        opaque_kind=entry.kind,
        size=_int_attr(entry, attrs, "size") if "size" in attrs else None,
    )


def parse(text: str) -> TypeGraph:
    """Parse a raw BTF type dump into a type graph."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/btfdump.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar)

    try:
        tree = _g_parser.parse(text.strip() + "\n")
    except UnexpectedInput as exc:
        raise ValidationError(
            f"Malformed type dump at line {exc.line}, column {exc.column}"
        ) from exc

    entries = TreeTransformer().transform(tree)
    validate(entries)

    return TypeGraph([_build(entry) for entry in entries])
