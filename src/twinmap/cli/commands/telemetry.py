"""
Telemetry Command - Show the tag tree of an OPC-UA export.
"""

import click

from ...config import load_settings
from ...telemetry import normalize_telemetry
from ..utils import build_controller, echo_info, echo_json, echo_rows, fail, load_json, rows_payload


@click.command()
@click.argument("telemetry_file", type=click.Path(exists=True, dir_okay=False))
@click.option("-s", "--search", default=None, help="Show only rows whose node id or name contains this text")
@click.option("--all", "expand", is_flag=True, help="Expand every namespace")
@click.option("--json", "as_json", is_flag=True, help="Output rows as JSON")
def telemetry(telemetry_file: str, search: str | None, expand: bool, as_json: bool):
    """
    Show the namespaces and tags in TELEMETRY_FILE.
    """
    result = normalize_telemetry(load_json(telemetry_file))
    if result.is_err():
        fail(result.unwrap_err(), as_json)

    tree = result.unwrap()
    controller = build_controller(tree.rows, load_settings(), expand)

    rows = controller.render_rows(search)

    if as_json:
        echo_json("success", {"rows": rows_payload(rows)})
        return

    click.echo(f"📡 {click.style('Telemetry', bold=True)} ({len(tree.tags)} tags)")
    click.echo()
    if not echo_rows(rows):
        echo_info("No rows to show")
