"""
Twins Command - Show twins grouped by model.

A draft twin can be staged with --draft-model/--draft-twin; it is shown
under a "Future Twins" separator of its model.
"""

import sys
from typing import Tuple

import click

from ...config import load_settings
from ...core.types import DraftTwin, ParentRelationship
from ...tree import filter_by_model
from ...twins import normalize_twins
from ..utils import build_controller, echo_error, echo_info, echo_json, echo_rows, fail, load_json, rows_payload


def parse_parent(value: str) -> ParentRelationship:
    """Parse a SOURCE:RELATIONSHIP option value."""
    source, sep, name = value.partition(":")
    if not sep or not source or not name:
        raise click.BadParameter(f"expected SOURCE:RELATIONSHIP, got {value!r}")
    return ParentRelationship(name=name, source=source)


@click.command()
@click.argument("twins_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--draft-model", default=None, help="Model id of a twin to stage")
@click.option("--draft-twin", default=None, help="Id of the twin to stage")
@click.option("--parent", "parents", multiple=True, help="Incoming relationship of the staged twin (SOURCE:RELATIONSHIP)")
@click.option("-m", "--model", "model_id", default=None, help="Only show twins of this model")
@click.option("-s", "--search", default=None, help="Show only rows whose id, name or model contains this text")
@click.option("--all", "expand", is_flag=True, help="Expand every model")
@click.option("--json", "as_json", is_flag=True, help="Output rows as JSON")
def twins(
    twins_file: str,
    draft_model: str | None,
    draft_twin: str | None,
    parents: Tuple[str, ...],
    model_id: str | None,
    search: str | None,
    expand: bool,
    as_json: bool,
):
    """
    Show the twins in TWINS_FILE grouped by model.
    """
    draft = None
    if draft_model or draft_twin:
        if not (draft_model and draft_twin):
            echo_error("--draft-model and --draft-twin must be given together")
            sys.exit(2)
        draft = DraftTwin(
            twin_id=draft_twin,
            model_id=draft_model,
            parent_relationships=[parse_parent(p) for p in parents],
        )

    result = normalize_twins(load_json(twins_file), draft)
    if result.is_err():
        fail(result.unwrap_err(), as_json)

    tree = result.unwrap()
    controller = build_controller(filter_by_model(tree.rows, model_id), load_settings(), expand)

    rows = controller.render_rows(search)

    if as_json:
        echo_json("success", {"groups": tree.groups, "rows": rows_payload(rows)})
        return

    twin_count = sum(len(keys) for keys in tree.groups.values())
    click.echo(f"🧩 {click.style('Twins', bold=True)} ({twin_count} across {len(tree.groups)} models)")
    click.echo()
    if not echo_rows(rows):
        echo_info("No rows to show")
