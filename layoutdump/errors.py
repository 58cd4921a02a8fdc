"""Exceptions raised while loading type graphs and decoding buffers."""


class LayoutError(RuntimeError):
    """Base class for all layoutdump errors."""


class ValidationError(LayoutError):
    """Raised when a type dump is malformed."""


class DecodeError(LayoutError):
    """Raised when a buffer cannot be decoded against a type graph.

    Errors are raised where the problem is detected and pick up context as
    they propagate: every enclosing struct prepends the member name to
    ``path``, and the innermost member records the absolute byte range.
    """

    def __init__(
        self,
        message: str,
        *,
        path: tuple[str, ...] = (),
        span: tuple[int, int] | None = None,
        type_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.span = span
        self.type_name = type_name

    def add_context(
        self,
        member: str,
        span: tuple[int, int] | None = None,
        type_name: str | None = None,
    ) -> None:
        """Record the enclosing member, keeping the innermost span and type."""
        self.path = (member, *self.path)
        if self.span is None:
            self.span = span
        if self.type_name is None:
            self.type_name = type_name

    @property
    def field_path(self) -> str:
        """Dotted member path, with array indices attached to their array."""
        return "".join(
            part if part.startswith("[") or i == 0 else f".{part}"
            for i, part in enumerate(self.path)
        )

    def __str__(self) -> str:
        details = []
        if self.path:
            details.append(f"field {self.field_path}")
        if self.span is not None:
            details.append(f"bytes {self.span[0]}-{self.span[1]}")
        if self.type_name:
            details.append(f"type {self.type_name}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class SchemaError(DecodeError):
    """The type graph cannot describe the buffer."""


class UnresolvedTypeError(SchemaError):
    """A type id or name does not resolve in the type graph."""


class AliasCycleError(SchemaError):
    """An alias chain loops back on itself or is too long."""


class MemberLayoutError(SchemaError):
    """Struct or union member offsets are inconsistent."""


class TruncatedBufferError(DecodeError):
    """The buffer is shorter than the type requires."""

    def __init__(self, message: str, *, expected: int, actual: int, **kwargs) -> None:
        super().__init__(f"{message}: expected {expected} bytes, got {actual}", **kwargs)
        self.expected = expected
        self.actual = actual


class UnsupportedTypeError(DecodeError):
    """The type kind, width or signedness is not decodable."""


class DiscriminantError(DecodeError):
    """A union cannot be matched with the enum that selects its member."""


class MissingDiscriminantError(DiscriminantError):
    """A union was reached before any enum established its discriminant."""


class EnumIndexError(DiscriminantError):
    """An enum or union index is outside the declared values."""
