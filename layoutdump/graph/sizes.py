"""Size and member extent calculation for type descriptors."""

from dataclasses import dataclass

from dataclasses_json import DataClassJsonMixin

from ..errors import MemberLayoutError, SchemaError, UnsupportedTypeError
from .types import (
    AliasType,
    ArrayType,
    EnumType,
    IntType,
    StructType,
    TypeDescriptor,
    TypeGraph,
    UnionType,
)


@dataclass(frozen=True)
class MemberExtent(DataClassJsonMixin):
    """Half-open byte range ``[start, end)`` owned by a struct member."""

    name: str
    start: int
    end: int
    type_id: int

    @property
    def length(self) -> int:
        return self.end - self.start


def member_extents(struct: StructType) -> list[MemberExtent]:
    """Calculate the byte range each member of ``struct`` owns.

    A member extends up to the next member's offset, so padding after a
    member belongs to it. The last member extends to the struct's size.

    Raises:
        UnsupportedTypeError: A member is a bitfield or not byte aligned.
        MemberLayoutError: Offsets decrease or run past the struct size.
    """
    extents: list[MemberExtent] = []
    members = struct.members

    for i, member in enumerate(members):
        if member.bitfield_size or member.offset_bits % 8:
            raise UnsupportedTypeError(
                f"Bitfield member '{member.name}' at bit {member.offset_bits}",
                type_name=struct.display_name,
            )

        start = member.offset_bits // 8
        if i == len(members) - 1:
            length = struct.size - start
            if length < 0:
                raise MemberLayoutError(
                    f"Member '{member.name}' starts at byte {start}, "
                    f"past the struct size {struct.size}",
                    type_name=struct.display_name,
                )
        else:
            length = (members[i + 1].offset_bits - member.offset_bits) // 8
            if length < 0:
                raise MemberLayoutError(
                    f"Member '{members[i + 1].name}' is placed before '{member.name}'",
                    type_name=struct.display_name,
                )

        extents.append(MemberExtent(member.name, start, start + length, member.type_id))

    return extents


class SizeCalculator:
    """Calculate byte sizes of descriptors in a type graph."""

    def __init__(self, graph: TypeGraph, max_alias_depth: int = 64):
        self.graph = graph
        self.max_alias_depth = max_alias_depth
        self._cache: dict[int, int] = {}

    def size_of(self, t: TypeDescriptor) -> int:
        """Return the size in bytes of a decodable type (with caching)."""
        if t.type_id in self._cache:
            return self._cache[t.type_id]

        size = self._calc_size(t, depth=0)
        self._cache[t.type_id] = size
        return size

    def _calc_size(self, t: TypeDescriptor, depth: int) -> int:
        if depth > self.max_alias_depth:
            raise SchemaError("Array nesting too deep", type_name=t.display_name)

        if isinstance(t, AliasType):
            t = self.graph.resolve(t, self.max_alias_depth)

        if isinstance(t, IntType):
            return t.bits // 8
        if isinstance(t, (EnumType, StructType, UnionType)):
            return t.size
        if isinstance(t, ArrayType):
            element = self.graph.type_by_id(t.element_type_id)
            return t.element_count * self._calc_size(element, depth + 1)

        raise UnsupportedTypeError("Type has no decodable size", type_name=t.display_name)
