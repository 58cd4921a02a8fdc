"""Type-directed decoder for fixed-layout C struct buffers.

The decoder walks a struct descriptor alongside a byte buffer. Every member
gets the bytes between its offset and the next member's offset, and is
decoded according to its alias-resolved type. Unions are decoded through
the member selected by an enum decoded earlier in the same struct.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from ..errors import (
    DecodeError,
    EnumIndexError,
    MemberLayoutError,
    MissingDiscriminantError,
    SchemaError,
    TruncatedBufferError,
    UnsupportedTypeError,
)
from ..graph.sizes import SizeCalculator, member_extents
from ..graph.types import (
    ArrayType,
    EnumType,
    IntType,
    OpaqueType,
    StructType,
    TypeDescriptor,
    TypeGraph,
    UnionType,
)
from .integers import decode_int
from .values import ArrayValue, EnumNameValue, IntegerValue, ObjectValue, StringValue, Value

log = logging.getLogger(__name__)

CHAR_TYPE_NAMES = frozenset(["char", "signed char", "unsigned char"])


@dataclass(frozen=True)
class DecodeOptions:
    """Decoder configuration.

    Attributes:
        strict_arrays: Fail instead of dropping array elements that do not
            fit in the member's extent.
        max_alias_depth: Longest alias chain followed before giving up.
        max_depth: Deepest struct nesting decoded before giving up.
        char_type_names: 8-bit integer names whose arrays may decode as text.
        hint_member: If set, only enum members with this name select union
            members. Otherwise every enum does.
        union_links: Union member name -> name of the enum member in the same
            struct that selects its active member.
    """

    strict_arrays: bool = False
    max_alias_depth: int = 64
    max_depth: int = 64
    char_type_names: frozenset[str] = CHAR_TYPE_NAMES
    hint_member: str | None = None
    union_links: Mapping[str, str] = field(default_factory=dict)


@dataclass
class DecodeContext:
    """Discriminant state of one struct traversal.

    A fresh context is created for each struct, so an enum only selects
    union members among its siblings.
    """

    depth: int = 0
    active_discriminant: int | None = None
    discriminants: dict[str, int] = field(default_factory=dict)

    def child(self) -> "DecodeContext":
        return DecodeContext(depth=self.depth + 1)

    def record(self, member: str, index: int, hint_member: str | None = None) -> None:
        self.discriminants[member] = index
        if hint_member is None or member == hint_member:
            self.active_discriminant = index


Handler = Callable[..., Value]


class Decoder:
    """Decode buffers against the structs of a type graph.

    A decoder keeps no per-buffer state, so one instance can decode any
    number of buffers, from any number of threads.
    """

    def __init__(self, graph: TypeGraph, options: DecodeOptions | None = None):
        self.graph = graph
        self.options = options or DecodeOptions()
        self.sizes = SizeCalculator(graph, self.options.max_alias_depth)
        self._handlers: dict[type[TypeDescriptor], Handler] = {
            IntType: self._decode_int,
            ArrayType: self._decode_array,
            StructType: self._decode_nested_struct,
            UnionType: self._decode_union,
            EnumType: self._decode_enum,
            OpaqueType: self._decode_opaque,
        }

    def decode(self, root_name: str, buffer: bytes | bytearray | memoryview) -> ObjectValue:
        """Decode ``buffer`` as the struct named ``root_name``."""
        struct = self.graph.struct_by_name(root_name, self.options.max_alias_depth)
        return self.decode_struct(struct, buffer)

    def decode_struct(
        self, struct: StructType, buffer: bytes | bytearray | memoryview
    ) -> ObjectValue:
        """Decode ``buffer`` as ``struct``.

        Raises:
            DecodeError: The buffer does not match the struct. No partial
                result is returned.
        """
        data = memoryview(buffer)
        if len(data) < struct.size:
            raise TruncatedBufferError(
                "Buffer is shorter than the struct",
                expected=struct.size,
                actual=len(data),
                type_name=struct.display_name,
            )
        return self._decode_struct(struct, data[: struct.size], DecodeContext(), 0)

    def _decode_type(
        self, t: TypeDescriptor, data: memoryview, ctx: DecodeContext, member: str, offset: int
    ) -> Value:
        t = self.graph.resolve(t, self.options.max_alias_depth)

        handler = self._handlers.get(type(t))
        if handler is None:
            raise UnsupportedTypeError("Unsupported type kind", type_name=t.display_name)

        try:
            return handler(t, data, ctx, member, offset)
        except DecodeError as exc:
            if exc.type_name is None:
                exc.type_name = t.display_name
            raise

    def _decode_struct(
        self, struct: StructType, data: memoryview, ctx: DecodeContext, offset: int
    ) -> ObjectValue:
        if ctx.depth > self.options.max_depth:
            raise SchemaError(
                f"Struct nesting deeper than {self.options.max_depth}",
                type_name=struct.display_name,
            )

        fields: dict[str, Value] = {}
        for extent in member_extents(struct):
            span = (offset + extent.start, offset + extent.end)
            log.debug("%s: %d-%d", extent.name or "(anon)", *span)

            try:
                if extent.end > len(data):
                    raise TruncatedBufferError(
                        "Member extends past the end of its struct",
                        expected=extent.end,
                        actual=len(data),
                    )
                member_type = self.graph.type_by_id(extent.type_id)
                value = self._decode_type(
                    member_type, data[extent.start : extent.end], ctx, extent.name, span[0]
                )
            except DecodeError as exc:
                exc.add_context(extent.name or "(anon)", span)
                raise

            # Anonymous struct and union members are accessed through their parent
            if not extent.name and isinstance(value, ObjectValue):
                fields.update(value.fields)
            else:
                fields[extent.name] = value

        return ObjectValue(fields)

    def _decode_nested_struct(
        self, t: StructType, data: memoryview, ctx: DecodeContext, member: str, offset: int
    ) -> Value:
        return self._decode_struct(t, data, ctx.child(), offset)

    def _decode_int(
        self, t: IntType, data: memoryview, ctx: DecodeContext, member: str, offset: int
    ) -> Value:
        # Bytes past the integer's width are padding before the next member
        value = decode_int(data[: t.bits // 8], t.signed, t.bits)
        return IntegerValue(value, t.signed, t.bits)

    def _decode_enum(
        self, t: EnumType, data: memoryview, ctx: DecodeContext, member: str, offset: int
    ) -> Value:
        index = decode_int(data[:4], True, 32)
        if not 0 <= index < len(t.values):
            raise EnumIndexError(f"Enum index {index} out of range for {len(t.values)} values")

        ctx.record(member, index, self.options.hint_member)
        return EnumNameValue(t.values[index].name, index)

    def _decode_union(
        self, t: UnionType, data: memoryview, ctx: DecodeContext, member: str, offset: int
    ) -> Value:
        for m in t.members:
            if m.offset_bits != 0:
                raise MemberLayoutError(f"Union member '{m.name}' does not start at offset 0")

        link = self.options.union_links.get(member)
        if link is not None:
            if link not in ctx.discriminants:
                raise MissingDiscriminantError(f"Enum member '{link}' not decoded before union")
            index = ctx.discriminants[link]
        elif ctx.active_discriminant is not None:
            index = ctx.active_discriminant
        else:
            raise MissingDiscriminantError("No enum decoded before union")

        if index >= len(t.members):
            raise EnumIndexError(
                f"Discriminant {index} out of range for {len(t.members)} union members"
            )

        selected = t.members[index]
        log.debug("%s: union member %s", member, selected.name)
        try:
            return self._decode_type(
                self.graph.type_by_id(selected.type_id), data, ctx, member, offset
            )
        except DecodeError as exc:
            exc.add_context(selected.name, (offset, offset + len(data)))
            raise

    def _decode_array(
        self, t: ArrayType, data: memoryview, ctx: DecodeContext, member: str, offset: int
    ) -> Value:
        element = self.graph.resolve(
            self.graph.type_by_id(t.element_type_id), self.options.max_alias_depth
        )
        count = t.element_count

        if (
            isinstance(element, IntType)
            and element.bits == 8
            and element.name in self.options.char_type_names
        ):
            if self.options.strict_arrays and len(data) < count:
                raise TruncatedBufferError(
                    "Character array does not fit", expected=count, actual=len(data)
                )
            return self._decode_chars(element, data[:count] if count else data)

        size = self.sizes.size_of(element)
        if size <= 0:
            raise SchemaError("Array element has no size", type_name=element.display_name)

        fitting = len(data) // size
        n = min(count, fitting) if count else fitting
        if self.options.strict_arrays and (
            (count and n < count) or (not count and len(data) % size)
        ):
            raise TruncatedBufferError(
                "Array elements do not fit",
                expected=(count or fitting + 1) * size,
                actual=len(data),
            )

        items = []
        for i in range(n):
            start = i * size
            try:
                items.append(
                    self._decode_type(
                        element, data[start : start + size], ctx, member, offset + start
                    )
                )
            except DecodeError as exc:
                exc.add_context(f"[{i}]", (offset + start, offset + start + size))
                raise
        return ArrayValue(items)

    def _decode_chars(self, element: IntType, data: memoryview) -> Value:
        raw = bytes(data)
        end = raw.find(b"\x00")
        prefix = raw if end < 0 else raw[:end]
        # Printability is judged per byte; the text itself is UTF-8
        if prefix.decode("latin-1").isprintable():
            return StringValue(prefix.decode("utf-8", errors="replace"))

        items: list[Value] = []
        for i in range(len(raw)):
            value = decode_int(raw[i : i + 1], element.signed, 8)
            items.append(IntegerValue(value, element.signed, 8))
        return ArrayValue(items)

    def _decode_opaque(
        self, t: OpaqueType, data: memoryview, ctx: DecodeContext, member: str, offset: int
    ) -> Value:
        raise UnsupportedTypeError(f"Unsupported type kind {t.opaque_kind}")


def decode(
    graph: TypeGraph,
    root_name: str,
    buffer: bytes | bytearray | memoryview,
    options: DecodeOptions | None = None,
) -> ObjectValue:
    """Decode ``buffer`` as the struct named ``root_name`` in ``graph``."""
    return Decoder(graph, options).decode(root_name, buffer)
