"""C header rendering of the types a struct depends on."""

import re

from jinja2 import Environment, PackageLoader

from ..graph.types import (
    AliasType,
    ArrayType,
    EnumType,
    IntType,
    OpaqueType,
    StructType,
    TypeDescriptor,
    TypeGraph,
    UnionType,
)

env = Environment(
    loader=PackageLoader("layoutdump.render", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("header.h.j2")

INDENT = "    "


class _HeaderBuilder:
    """Order named declarations so every type is declared before use."""

    def __init__(self, graph: TypeGraph):
        self.graph = graph
        self.declarations: list[TypeDescriptor] = []
        self._visited: set[int] = set()

    def visit(self, type_id: int) -> None:
        if type_id in self._visited:
            return
        self._visited.add(type_id)

        t = self.graph.type_by_id(type_id)
        if isinstance(t, AliasType):
            self.visit(t.target_id)
        elif isinstance(t, ArrayType):
            self.visit(t.element_type_id)
        elif isinstance(t, (StructType, UnionType)):
            for member in t.members:
                self.visit(member.type_id)

        if not t.name:
            return
        if isinstance(t, (StructType, UnionType, EnumType)) or (
            isinstance(t, AliasType) and t.qualifier == "TYPEDEF"
        ):
            self.declarations.append(t)

    def type_expr(self, type_id: int, declarator: str, indent: str = "") -> str:
        """C declaration of ``declarator`` with the given type."""
        t = self.graph.type_by_id(type_id)

        if isinstance(t, AliasType):
            if t.qualifier == "TYPEDEF":
                return f"{t.name} {declarator}".rstrip()
            if t.qualifier == "TYPE_TAG":
                return self.type_expr(t.target_id, declarator, indent)
            return f"{t.qualifier.lower()} {self.type_expr(t.target_id, declarator, indent)}"

        if isinstance(t, ArrayType):
            return self.type_expr(t.element_type_id, f"{declarator}[{t.element_count}]", indent)

        if isinstance(t, (StructType, UnionType)):
            keyword = "struct" if isinstance(t, StructType) else "union"
            if t.name:
                return f"{keyword} {t.name} {declarator}".rstrip()
            body = self.member_body(t, indent)
            return f"{keyword} {{\n{body}\n{indent}}} {declarator}".rstrip()

        if isinstance(t, EnumType):
            if t.name:
                return f"enum {t.name} {declarator}".rstrip()
            return f"enum {{\n{self.enum_body(t, indent)}\n{indent}}} {declarator}".rstrip()

        if isinstance(t, IntType):
            return f"{t.name} {declarator}".rstrip()

        if isinstance(t, OpaqueType) and t.opaque_kind == "PTR":
            return f"void *{declarator}"
        if t.name:
            return f"{t.name} {declarator}".rstrip()
        return f"void {declarator}".rstrip()

    def member_body(self, t: StructType | UnionType, indent: str = "") -> str:
        inner = indent + INDENT
        return "\n".join(
            f"{inner}{self.type_expr(m.type_id, m.name, inner)}; /* offset {m.offset_bits // 8} */"
            for m in t.members
        )

    def enum_body(self, t: EnumType, indent: str = "") -> str:
        inner = indent + INDENT
        return "\n".join(f"{inner}{v.name} = {v.value}," for v in t.values)


def render(graph: TypeGraph, root_name: str) -> str:
    """Render C declarations for the struct ``root_name`` and its dependencies."""
    root = graph.struct_by_name(root_name)

    builder = _HeaderBuilder(graph)
    builder.visit(root.type_id)
    for t in graph.types_by_name(root_name):
        builder.visit(t.type_id)

    guard = "LAYOUTDUMP_" + re.sub(r"[^A-Za-z0-9]", "_", root_name).upper() + "_H"

    return template.render(
        root=root,
        root_name=root_name,
        guard=guard,
        declarations=builder.declarations,
        type_expr=builder.type_expr,
        member_body=builder.member_body,
        enum_body=builder.enum_body,
    )
