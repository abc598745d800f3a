"""
Argot usage and help rendering (rich).

render_usage() returns the one-line synopsis as rich Text; render_help()
returns a Group with the synopsis, the description and one grid per section
(positional arguments, options, commands). write_usage()/write_help() print
them to a file (stdout by default). Styles follow one palette and collapse to
plain text when colorful=False or the file is not a terminal.
"""
import sys
from collections import defaultdict

from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from .parser import ArgKind
from .utils import Unset

styles = defaultdict(str, {
    "usage-label": "bold #00E6FF",
    "program-name": "bold #FF4D94",
    "description-section": "italic #A3A3A3",
    "group-label": "bold #FFFFFF",
    "option-name": "bold #00E6FF",
    "flag-name": "bold #22C55E",
    "metavar": "bold #FFD600",
    "greedy-metavar": "bold italic #FFD600",
    "argument-description": "#9CA3AF",
    "annotation": "dim",
    "children": "bold #36C5F0",
})


def _show(value):
    match value:
        case bool():
            return "true" if value else "false"
        case list() | tuple():
            return ",".join(map(_show, value))
    return str(value)


def _names(field, text):
    parts = []
    if field.short:
        parts.append(f"-{field.short}")
    if field.long:
        parts.append(f"--{field.long}")
    style = "flag-name" if field.has_arg == ArgKind.NO_ARGUMENT else "option-name"
    names = Text(", ").join(text(part, style) for part in parts)
    if field.has_arg != ArgKind.NO_ARGUMENT:
        names.append(" ").append(text(field.metavar, "metavar"))
    return names


def render_usage(metadata, program, /, path=(), *, colorful=True):
    def text(fragment, style=""):
        return Text(str(fragment), styles[style] if colorful else "")

    inputs = [text(program, "program-name"), *(text(step, "program-name") for step in path)]
    for field in metadata.options:
        synopsis = Text(f"--{field.long}" if field.long else f"-{field.short}")
        if field.has_arg != ArgKind.NO_ARGUMENT:
            synopsis.append(" ").append(text(field.metavar, "metavar"))
        inputs.append(synopsis if field.required else Text.assemble("[", synopsis, "]"))
    for field in metadata.positionals:
        if field.sequence:
            synopsis = Text.assemble(text(field.metavar, "greedy-metavar"), " ...")
        else:
            synopsis = text(field.metavar, "metavar")
        inputs.append(synopsis if field.required else Text.assemble("[", synopsis, "]"))
    if metadata.subcommands:
        inputs.append(Text("<command> [<args>]"))
    return Text.assemble(text("Usage:", "usage-label"), " ", Text(" ").join(inputs))


def _annotations(field):
    notes = []
    if field.default is not Unset:
        notes.append(f"[default: {_show(field.default)}]")
    if field.env:
        notes.append(f"[env: {field.env}]")
    return " ".join(notes)


def render_help(metadata, program, /, path=(), *, ancestors=(), description="", version="", colorful=True):
    def text(fragment, style=""):
        return Text(str(fragment), styles[style] if colorful else "")

    def grid(title, rows):
        table = Table.grid(padding=(0, 2))
        table.add_column(no_wrap=True)
        table.add_column()
        for names, help in rows:
            table.add_row(Text("  ") + names, help)
        return Group(Text.assemble(text(title, "group-label"), ":"), table)

    def describe(field):
        help = text(field.help, "argument-description")
        if notes := _annotations(field):
            help.append(" " if field.help else "").append(text(notes, "annotation"))
        return help

    renders = []
    if version:
        renders.append(text(version, "program-name"))
    renders.append(render_usage(metadata, program, path, colorful=colorful))
    if description:
        renders.extend([Text(""), text(description, "description-section")])

    if positionals := metadata.positionals:
        rows = [(text(field.metavar, "metavar"), describe(field)) for field in positionals]
        renders.extend([Text(""), grid("Positional arguments", rows)])

    rows = [(_names(field, text), describe(field)) for field in metadata.options]
    # -h/--help live on the root parser; any record on the path declaring the name shadows them
    scope = (*ancestors, metadata)
    names = [flag for name, flag in (("h", "-h"), ("help", "--help")) if all(s.lookup(name) is None for s in scope)]
    if names:
        rows.append((text(", ".join(names), "flag-name"), text("display this help and exit", "argument-description")))
    renders.extend([Text(""), grid("Options", rows)])

    if commands := [field for field in metadata.fields if field.is_subcommand]:
        rows = [(text(field.subcommand, "children"), text(field.help, "argument-description")) for field in commands]
        renders.extend([Text(""), grid("Commands", rows)])

    return Group(*renders)


def write_usage(metadata, program, /, file=None, path=(), *, colorful=True):
    console = Console(file=file if file is not None else sys.stdout, highlight=False)
    console.print(render_usage(metadata, program, path, colorful=colorful))


def write_help(metadata, program, /, file=None, path=(), *, ancestors=(), description="", version="", colorful=True):
    console = Console(file=file if file is not None else sys.stdout, highlight=False)
    console.print(
        render_help(
            metadata,
            program,
            path,
            ancestors=ancestors,
            description=description,
            version=version,
            colorful=colorful,
        )
    )


__all__ = (
    "render_usage",
    "render_help",
    "write_usage",
    "write_help",
)
