"""Textual presenters for decoded value trees."""

import json

from rich.markup import escape
from rich.tree import Tree

from ..decode.values import ArrayValue, EnumNameValue, IntegerValue, ObjectValue, StringValue, Value


def render_json(value: Value, indent: int | None = 2) -> str:
    """Serialize a value tree to JSON, keeping member declaration order."""
    return json.dumps(value.to_python(), indent=indent)


def _scalar(value: Value) -> str:
    if isinstance(value, StringValue):
        return f"[green]{escape(json.dumps(value.text))}[/green]"
    if isinstance(value, EnumNameValue):
        return f"[magenta]{escape(value.name)}[/magenta] [dim]({value.index})[/dim]"
    if isinstance(value, IntegerValue):
        return f"[yellow]{value.value}[/yellow]"
    raise TypeError(f"Not a scalar value: {value!r}")


def _add_children(tree: Tree, value: ObjectValue | ArrayValue) -> None:
    if isinstance(value, ObjectValue):
        children = [
            (f"[bold]{escape(name)}[/bold]", child) for name, child in value.fields.items()
        ]
    else:
        children = [(f"[dim]\\[{i}][/dim]", child) for i, child in enumerate(value.items)]

    for label, child in children:
        if isinstance(child, ArrayValue) and all(
            isinstance(item, IntegerValue) for item in child.items
        ):
            numbers = ", ".join(str(item.value) for item in child.items)
            tree.add(f"{label}: [yellow]\\[{numbers}][/yellow]")
        elif isinstance(child, (ObjectValue, ArrayValue)):
            _add_children(tree.add(label), child)
        else:
            tree.add(f"{label}: {_scalar(child)}")


def render_tree(value: ObjectValue, label: str) -> Tree:
    """Build a rich tree of a decoded struct for console output."""
    tree = Tree(f"[bold cyan]{escape(label)}[/bold cyan]")
    _add_children(tree, value)
    return tree
