"""
Map Command - Map a telemetry tag onto a twin property.

Loads the three exports, resolves the selected tag, twin and property rows,
and builds a mapping entry. With --output the entry is added to (or
replaces the matching entry in) a mapping file.
"""

from pathlib import Path

import click

from ...core.errors import MappingError
from ...core.types import NodeKind
from ...mapping import MappingTable, build_mapping_entry
from ...models import ModelTree, normalize_models
from ...telemetry import normalize_telemetry
from ...twins import normalize_twins, twin_key
from ..utils import echo_error, echo_json, echo_success, fail, load_json


def find_property_key(model_tree: ModelTree, property_path: str, model_id: str | None) -> str | None:
    """Key of the property row with this component-qualified path on the given model."""
    for row in model_tree.rows:
        if row.kind != NodeKind.PROPERTY:
            continue
        if model_tree.property_path(row.key) != property_path:
            continue
        if model_tree.owning_model_id(row.key) == model_id:
            return row.key
    return None


@click.command(name="map")
@click.option("--models", "models_file", required=True, type=click.Path(exists=True, dir_okay=False), help="DTDL models export")
@click.option("--twins", "twins_file", required=True, type=click.Path(exists=True, dir_okay=False), help="Twin listing")
@click.option("--telemetry", "telemetry_file", required=True, type=click.Path(exists=True, dir_okay=False), help="OPC-UA tag export")
@click.option("--tag", "node_id", required=True, help="OPC-UA node id of the tag")
@click.option("--twin", "twin_id", required=True, help="Id of the target twin")
@click.option("--property", "property_path", required=True, help="Property path, e.g. thermostat1/temperature")
@click.option("-o", "--output", default=None, help="Mapping file to add the entry to")
@click.option("--json", "as_json", is_flag=True, help="Output the entry as JSON")
def map_command(
    models_file: str,
    twins_file: str,
    telemetry_file: str,
    node_id: str,
    twin_id: str,
    property_path: str,
    output: str | None,
    as_json: bool,
):
    """
    Map one telemetry tag onto one twin property.
    """
    model_result = normalize_models(load_json(models_file))
    if model_result.is_err():
        fail(model_result.unwrap_err(), as_json)
    twin_result = normalize_twins(load_json(twins_file))
    if twin_result.is_err():
        fail(twin_result.unwrap_err(), as_json)
    telemetry_result = normalize_telemetry(load_json(telemetry_file))
    if telemetry_result.is_err():
        fail(telemetry_result.unwrap_err(), as_json)

    model_tree = model_result.unwrap()
    tag = telemetry_result.unwrap().find_tag(node_id)
    twin = twin_result.unwrap().get(twin_key(twin_id))

    try:
        if tag is None:
            raise MappingError(f"Tag not found: {node_id}")
        if twin is None:
            raise MappingError(f"Twin not found: {twin_id}")
        property_key = find_property_key(model_tree, property_path, twin.model_id)
        if property_key is None:
            raise MappingError(f"Model {twin.model_id} has no property {property_path}")
        entry = build_mapping_entry(tag, property_key, model_tree, twin)
    except MappingError as e:
        fail(str(e), as_json)

    if output:
        path = Path(output)
        table = MappingTable.load(path) if path.exists() else MappingTable()
        if entry.key in table:
            table.update(entry.key, entry)
        else:
            table.add(entry)
        table.save(path)

    payload = entry.model_dump(by_alias=True, exclude_none=True)
    if as_json:
        echo_json("success", payload)
        return

    echo_success(f"Mapped {node_id} -> {twin_id}/{entry.dt_property_path}")
    if output:
        click.echo(f"   Saved to: {click.style(output, dim=True)}")
