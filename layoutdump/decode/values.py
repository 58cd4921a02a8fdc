"""Value tree produced by the decoder.

Every node converts to plain Python data with ``to_python()`` so any
structured encoder (json, yaml, ...) can serialize the tree.
"""

from dataclasses import dataclass, field
from typing import Any


class Value:
    """Base class for value tree nodes."""

    def to_python(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class IntegerValue(Value):
    """A decoded integer with the width and signedness it was read with."""

    value: int
    signed: bool = False
    bits: int = 32

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class StringValue(Value):
    """A printable, zero-terminated character array."""

    text: str

    def to_python(self) -> str:
        return self.text


@dataclass(frozen=True)
class EnumNameValue(Value):
    """The symbolic name of an enumerator."""

    name: str
    index: int

    def to_python(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayValue(Value):
    """Decoded array elements in index order."""

    items: list[Value] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)

    def to_python(self) -> list[Any]:
        return [item.to_python() for item in self.items]


@dataclass(frozen=True)
class ObjectValue(Value):
    """Decoded struct members keyed by name, in declaration order."""

    fields: dict[str, Value] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Value:
        return self.fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def to_python(self) -> dict[str, Any]:
        return {name: value.to_python() for name, value in self.fields.items()}
