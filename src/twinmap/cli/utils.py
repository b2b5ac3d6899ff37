"""
CLI Utilities - Shared helper functions for command line operations.

Formatted printing, input file loading and row rendering used by every
command.
"""

import json
import sys
from pathlib import Path
from typing import Any, Iterable, List

import click

from ..config import Settings
from ..core.errors import NormalizeError
from ..core.types import Node, NodeKind
from ..tree import TreeController

INDENT = "  "

KIND_COLORS = {
    NodeKind.INTERFACE: "cyan",
    NodeKind.MODEL: "cyan",
    NodeKind.NAMESPACE: "cyan",
    NodeKind.COMPONENT: "magenta",
    NodeKind.RELATIONSHIP: "blue",
    NodeKind.SEPARATOR: "yellow",
}


def echo_success(message: str) -> None:
    """
    Print a success message with a green checkmark.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(f"✅ {message}", fg="green"))


def echo_error(message: str) -> None:
    """
    Print an error message with a red cross.

    Args:
        message (str): The error message to display.
    """
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_warning(message: str) -> None:
    """Print a warning in yellow. Used for input that was accepted with gaps."""
    click.echo(click.style(f"⚠️  {message}", fg="yellow"))


def echo_info(message: str) -> None:
    """
    Print an informational message, dimmed.

    Args:
        message (str): The info message to display.
    """
    click.echo(click.style(f"   {message}", dim=True))


def echo_json(status: str, data: Any = None, error: str | None = None) -> None:
    """Print a `{"meta": ..., "data": ...}` envelope for machine consumers."""
    payload: dict = {"meta": {"status": status}}
    if error is not None:
        payload["error"] = {"message": error}
    else:
        payload["data"] = data
    click.echo(json.dumps(payload, indent=2))


def load_json(path: str) -> Any:
    """
    Read a JSON input file.

    Unreadable or malformed files are reported and the command exits with status 1.
    """
    try:
        return json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        echo_error(str(NormalizeError.invalid_input(str(e))))
        sys.exit(1)


def fail(error: NormalizeError | str, as_json: bool = False) -> None:
    """Report a rejected input and exit with status 1."""
    if as_json:
        echo_json("error", error=str(error))
    else:
        echo_error(str(error))
    sys.exit(1)


def describe(node: Node) -> str:
    """Trailing detail shown after a row label."""
    if node.kind == NodeKind.PROPERTY and node.descriptor is not None:
        return f"({node.descriptor.summary()})"
    if node.kind == NodeKind.TAG and node.data_type:
        return f"({node.data_type}) {node.source_id}"
    if node.kind in (NodeKind.COMPONENT, NodeKind.RELATIONSHIP) and node.target:
        suffix = " [unresolved]" if node.unresolved else ""
        return f"-> {node.target}{suffix}"
    if node.kind == NodeKind.TWIN and node.name != node.source_id:
        return node.source_id or ""
    return ""


def echo_rows(rows: Iterable[Node | None], selected: Iterable[str] = ()) -> int:
    """
    Print rows as an indented tree. None entries are shimmer placeholders.

    Returns:
        int: Number of real rows printed.
    """
    selected = set(selected)
    count = 0
    for row in rows:
        if row is None:
            click.echo(click.style("  ...", dim=True))
            continue
        count += 1
        icon = ("+" if row.collapsed else "-") if row.is_parent else " "
        mark = "*" if row.key in selected else " "
        label = click.style(row.label, fg=KIND_COLORS.get(row.kind), bold=row.is_parent)
        if row.is_synthetic:
            label = click.style(row.label, fg="yellow", italic=True)
        detail = describe(row)
        line = f"{mark}{INDENT * row.depth}{icon} {label}"
        if detail:
            line += " " + click.style(detail, dim=True)
        click.echo(line)
        for depth, name, data_type in row.struct:
            click.echo(click.style(f"{INDENT * (row.depth + depth + 2)}{name}: {data_type}", dim=True))
    return count


def rows_payload(rows: Iterable[Node]) -> List[dict]:
    """Rows serialized for --json output."""
    return [row.model_dump(mode="json", exclude_defaults=True) for row in rows]


def build_controller(rows: Iterable[Node], settings: Settings, expand: bool = False) -> TreeController:
    """
    Feed rows to a TreeController one page at a time, the way a lazily
    loading view receives them, then apply the initial collapse choice.
    """
    rows = list(rows)
    size = max(settings.page_size, 1)

    def fetch_page(cursor: int, generation: int) -> None:
        start = cursor * size
        controller.receive_page(rows[start:start + size], generation, has_next_page=start + size < len(rows))

    controller = TreeController(
        rows[:size],
        select_descendants_with_parent=settings.select_descendants_with_parent,
        has_next_page=len(rows) > size,
        fetch_page=fetch_page,
    )
    while controller.on_sentinel_visible():
        pass

    if expand:
        controller.expand_all()
    elif settings.start_collapsed:
        controller.collapse_all()
    return controller
