"""Type descriptors and the type graph that owns them.

Descriptors mirror the kinds found in a BTF type section. They reference
each other by type id, so a graph may contain forward references and even
alias cycles; both are only detected when a reference is followed.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import ClassVar, TypeVar

from dataclasses_json import DataClassJsonMixin

from ..errors import AliasCycleError, SchemaError, UnresolvedTypeError

VOID_TYPE_ID = 0


@dataclass(frozen=True)
class TypeDescriptor(DataClassJsonMixin):
    """Base class for all type descriptors."""

    kind: ClassVar[str] = ""

    type_id: int
    name: str

    @property
    def display_name(self) -> str:
        return f"{self.kind.lower()} {self.name or '(anon)'}"


@dataclass(frozen=True)
class IntType(TypeDescriptor):
    """A fixed-width integer, including character types."""

    kind: ClassVar[str] = "INT"

    signed: bool
    bits: int
    size: int


@dataclass(frozen=True)
class ArrayType(TypeDescriptor):
    """A fixed-length array of a single element type."""

    kind: ClassVar[str] = "ARRAY"

    element_type_id: int
    element_count: int


@dataclass(frozen=True)
class Member(DataClassJsonMixin):
    """A named member of a struct or union."""

    name: str
    type_id: int
    offset_bits: int
    bitfield_size: int = 0


@dataclass(frozen=True)
class StructType(TypeDescriptor):
    """A struct; members are ordered by offset."""

    kind: ClassVar[str] = "STRUCT"

    members: tuple[Member, ...]
    size: int


@dataclass(frozen=True)
class UnionType(TypeDescriptor):
    """A union; all members start at offset zero."""

    kind: ClassVar[str] = "UNION"

    members: tuple[Member, ...]
    size: int


@dataclass(frozen=True)
class EnumValue(DataClassJsonMixin):
    """A single enumerator."""

    name: str
    value: int


@dataclass(frozen=True)
class EnumType(TypeDescriptor):
    """An enumeration."""

    kind: ClassVar[str] = "ENUM"

    values: tuple[EnumValue, ...]
    size: int = 4


@dataclass(frozen=True)
class AliasType(TypeDescriptor):
    """A typedef or type qualifier that stands for another type.

    ``qualifier`` is the BTF kind (TYPEDEF, CONST, VOLATILE, RESTRICT or
    TYPE_TAG). All of them are transparent to decoding.
    """

    kind: ClassVar[str] = "TYPEDEF"

    target_id: int
    qualifier: str = "TYPEDEF"

    @property
    def display_name(self) -> str:
        return f"{self.qualifier.lower()} {self.name or '(anon)'}"


@dataclass(frozen=True)
class OpaqueType(TypeDescriptor):
    """A type kind the graph records but the decoder does not interpret."""

    kind: ClassVar[str] = "OPAQUE"

    opaque_kind: str
    size: int | None = None

    @property
    def display_name(self) -> str:
        if self.opaque_kind == "VOID":
            return "void"
        return f"{self.opaque_kind.lower()} {self.name or '(anon)'}"


VOID = OpaqueType(type_id=VOID_TYPE_ID, name="void", opaque_kind="VOID", size=0)

TDescriptor = TypeVar("TDescriptor", bound=TypeDescriptor)


class TypeGraph:
    """Immutable, queryable collection of type descriptors."""

    def __init__(self, types: list[TypeDescriptor]):
        self._by_id: dict[int, TypeDescriptor] = {VOID_TYPE_ID: VOID}
        self._by_name: dict[str, list[TypeDescriptor]] = {}
        for t in types:
            self._by_id[t.type_id] = t
            if t.name:
                self._by_name.setdefault(t.name, []).append(t)

    def __len__(self) -> int:
        return len(self._by_id) - 1

    def __iter__(self) -> Iterator[TypeDescriptor]:
        return (t for type_id, t in sorted(self._by_id.items()) if type_id != VOID_TYPE_ID)

    def type_by_id(self, type_id: int) -> TypeDescriptor:
        """Look up a descriptor by its id."""
        try:
            return self._by_id[type_id]
        except KeyError:
            raise UnresolvedTypeError(f"Type id {type_id} does not exist") from None

    def types_by_name(self, name: str) -> list[TypeDescriptor]:
        """Return every descriptor carrying ``name``."""
        return list(self._by_name.get(name, []))

    def type_by_name(
        self, name: str, kind: type[TDescriptor] = TypeDescriptor  # type: ignore[assignment]
    ) -> TDescriptor:
        """Look up the single descriptor named ``name``, optionally of one class."""
        found = [t for t in self._by_name.get(name, []) if isinstance(t, kind)]
        if not found:
            raise UnresolvedTypeError(f"No type named '{name}'")
        if len(found) > 1:
            raise SchemaError(f"Type name '{name}' is ambiguous ({len(found)} matches)")
        return found[0]  # type: ignore[return-value]

    def resolve(self, t: TypeDescriptor, max_depth: int = 64) -> TypeDescriptor:
        """Follow an alias chain to the first concrete descriptor.

        Raises:
            UnresolvedTypeError: A target id is missing from the graph.
            AliasCycleError: The chain revisits a type or exceeds ``max_depth``.
        """
        seen: set[int] = set()
        while isinstance(t, AliasType):
            if t.type_id in seen:
                raise AliasCycleError(
                    f"Alias cycle through type id {t.type_id}", type_name=t.display_name
                )
            if len(seen) >= max_depth:
                raise AliasCycleError(
                    f"Alias chain longer than {max_depth}", type_name=t.display_name
                )
            seen.add(t.type_id)
            t = self.type_by_id(t.target_id)
        return t

    def struct_by_name(self, name: str, max_depth: int = 64) -> StructType:
        """Find the struct named ``name``, directly or through a typedef."""
        candidates = self.types_by_name(name)
        structs = [t for t in candidates if isinstance(t, StructType)]
        if len(structs) == 1:
            return structs[0]
        if len(structs) > 1:
            raise SchemaError(f"Struct name '{name}' is ambiguous ({len(structs)} matches)")

        resolved = []
        for t in candidates:
            if isinstance(t, AliasType):
                target = self.resolve(t, max_depth)
                if isinstance(target, StructType):
                    resolved.append(target)
        if len(resolved) == 1:
            return resolved[0]
        if len(resolved) > 1:
            raise SchemaError(f"Struct name '{name}' is ambiguous ({len(resolved)} matches)")
        raise UnresolvedTypeError(f"No struct named '{name}'")
