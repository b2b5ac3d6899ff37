"""
Models Command - Show the model tree of a DTDL export.

Components and relationships are printed inline, under the interface that
uses them.
"""

import click

from ...config import load_settings
from ...models import normalize_models
from ..utils import (
    build_controller, echo_info, echo_json, echo_rows, echo_warning, fail, load_json, rows_payload,
)


@click.command()
@click.argument("models_file", type=click.Path(exists=True, dir_okay=False))
@click.option("-s", "--search", default=None, help="Show only rows whose id or name contains this text")
@click.option("--all", "expand", is_flag=True, help="Expand every row")
@click.option("--json", "as_json", is_flag=True, help="Output rows as JSON")
def models(models_file: str, search: str | None, expand: bool, as_json: bool):
    """
    Show the model tree for MODELS_FILE.
    """
    result = normalize_models(load_json(models_file))
    if result.is_err():
        fail(result.unwrap_err(), as_json)

    tree = result.unwrap()
    controller = build_controller(tree.rows, load_settings(), expand)

    rows = controller.render_rows(search)

    if as_json:
        echo_json("success", {"roots": tree.roots, "rows": rows_payload(rows)})
        return

    click.echo(f"📐 {click.style('Models', bold=True)} ({len(tree.roots)} top-level)")
    click.echo()
    if not echo_rows(rows):
        echo_info("No rows to show")

    unresolved = [row for row in tree.rows if row.unresolved]
    if unresolved:
        click.echo()
        echo_warning(f"{len(unresolved)} unresolved reference(s)")
        for row in unresolved:
            echo_info(f"{row.name} -> {row.target}")
