"""Command-line interface for decoding struct buffers."""

from __future__ import annotations

import json
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from layoutdump.decode import Decoder, DecodeOptions
from layoutdump.errors import LayoutError
from layoutdump.graph import TypeGraph, member_extents, parse
from layoutdump.render import render_header, render_json, render_tree

DEFAULT_STRUCT_NAME = "event"


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _load_graph(input_file: str) -> TypeGraph:
    with open(input_file, encoding="utf-8") as f:
        return parse(f.read())


def _fail(error: LayoutError) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _parse_links(links: tuple[str, ...]) -> dict[str, str]:
    union_links = {}
    for link in links:
        union, sep, enum = link.partition("=")
        if not sep or not union or not enum:
            raise click.BadParameter(f"expected UNION=ENUM, got '{link}'", param_hint="--link")
        union_links[union] = enum
    return union_links


@click.group()
def cli() -> None:
    """Decode raw C struct buffers using a BTF type dump."""


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Raw BTF type dump (bpftool)",
)
@click.option(
    "--data",
    "-d",
    "data_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, allow_dash=True),
    help="Buffer to decode, - for stdin",
)
@click.option("--type", "-t", "type_name", default=DEFAULT_STRUCT_NAME, help="Root struct name")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["json", "tree"]),
    default="json",
    help="Output format",
)
@click.option("--strict", is_flag=True, default=False, help="Fail on truncated arrays")
@click.option(
    "--hint-member", default=None, help="Only enums with this member name select unions"
)
@click.option(
    "--link",
    "links",
    multiple=True,
    help="UNION=ENUM: the enum member that selects the union member's variant",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log member extents")
def decode(
    input_file: str,
    data_file: str,
    type_name: str,
    output_format: str,
    strict: bool,
    hint_member: str | None,
    links: tuple[str, ...],
    verbose: bool,
) -> None:
    """Decode a buffer into JSON or a tree."""
    _setup_logging(verbose)
    options = DecodeOptions(
        strict_arrays=strict,
        hint_member=hint_member,
        union_links=_parse_links(links),
    )

    if data_file == "-":
        data = sys.stdin.buffer.read()
    else:
        with open(data_file, "rb") as f:
            data = f.read()

    try:
        graph = _load_graph(input_file)
        value = Decoder(graph, options).decode(type_name, data)
    except LayoutError as exc:
        _fail(exc)
        return

    if output_format == "tree":
        Console().print(render_tree(value, type_name))
    else:
        click.echo(render_json(value))


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Raw BTF type dump (bpftool)",
)
@click.option("--type", "-t", "type_name", default=DEFAULT_STRUCT_NAME, help="Root struct name")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, type_name: str, output_json: bool) -> None:
    """Display the byte range each member of a struct owns."""
    try:
        graph = _load_graph(input_file)
        struct = graph.struct_by_name(type_name)
        extents = member_extents(struct)
        member_types = [graph.type_by_id(extent.type_id) for extent in extents]
    except LayoutError as exc:
        _fail(exc)
        return

    if output_json:
        data = {
            "name": type_name,
            "size": struct.size,
            "members": [
                {**extent.to_dict(), "type": t.display_name}
                for extent, t in zip(extents, member_types)
            ],
        }
        click.echo(json.dumps(data, indent=2))
        return

    console = Console()
    console.print(f"[bold cyan]{type_name}[/bold cyan] [dim]({struct.size} bytes)[/dim]")

    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Member", style="white")
    table.add_column("Bytes", style="yellow", justify="right")
    table.add_column("Length", style="yellow", justify="right")
    table.add_column("Type", style="dim")

    for extent, t in zip(extents, member_types):
        table.add_row(
            extent.name or "(anon)",
            f"{extent.start}-{extent.end}",
            str(extent.length),
            t.display_name,
        )

    console.print(table)


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Raw BTF type dump (bpftool)",
)
@click.option("--type", "-t", "type_name", default=DEFAULT_STRUCT_NAME, help="Root struct name")
@click.option("--output", "-o", "output_file", default=None, help="Output file (default stdout)")
def header(input_file: str, type_name: str, output_file: str | None) -> None:
    """Generate C declarations for a struct and its dependencies."""
    try:
        generated = render_header(_load_graph(input_file), type_name)
    except LayoutError as exc:
        _fail(exc)
        return

    if output_file is None:
        click.echo(generated, nl=False)
        return

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
