"""Unit tests for mapping entries and the mapping table."""

import json

import pytest

from twinmap.core.errors import MappingError
from twinmap.mapping import MappingEntry, MappingTable, TelemetryItem, build_mapping_entry
from twinmap.models import interface_key, normalize_models
from twinmap.telemetry import normalize_telemetry
from twinmap.twins import normalize_twins, twin_key

ROOM = "dtmi:example:Room;1"
THERMOSTAT = "dtmi:example:Thermostat;1"


@pytest.fixture
def trees(room_models, twins_raw, telemetry_raw):
    return (
        normalize_models(room_models).unwrap(),
        normalize_twins(twins_raw).unwrap(),
        normalize_telemetry(telemetry_raw).unwrap(),
    )


@pytest.fixture
def entry(trees):
    model_tree, twin_tree, telemetry_tree = trees
    return build_mapping_entry(
        telemetry_tree.find_tag("ns=2;s=Line1.Temp"),
        f"{interface_key(ROOM)}/thermostat1/targetTemperature",
        model_tree,
        twin_tree.get(twin_key("room-1")),
    )


class TestBuildMappingEntry:
    def test_component_qualified_path(self, entry):
        assert entry.opcua_node_id == "ns=2;s=Line1.Temp"
        assert entry.opcua_path == ["Plant", "Line1"]
        assert entry.dt_twin_id == "room-1"
        assert entry.dt_twin_name == "Lobby"
        assert entry.dt_property_name == "targetTemperature"
        assert entry.dt_property_path == "thermostat1/targetTemperature"
        assert entry.dt_component == "thermostat1"
        assert entry.dt_model_id == ROOM

    def test_serializes_with_camel_case_keys(self, entry):
        data = entry.model_dump(by_alias=True)
        for key in ("opcuaNodeId", "dtTwinId", "dtPropertyPath", "dtModelId", "dtParentRelationships"):
            assert key in data

    def test_parent_relationships_are_carried(self, trees):
        model_tree, twin_tree, telemetry_tree = trees
        thermostat = normalize_models([{
            "@id": THERMOSTAT, "@type": "Interface",
            "contents": [{"@type": "Property", "name": "setpoint", "schema": "double"}],
        }]).unwrap()

        entry = build_mapping_entry(
            telemetry_tree.find_tag("ns=2;s=Line1.Temp"),
            f"{interface_key(THERMOSTAT)}/setpoint",
            thermostat,
            twin_tree.get(twin_key("thermo-1")),
        )
        assert entry.dt_parent_relationships[0].source == "room-1"
        assert entry.dt_component is None

    def test_twin_of_other_model_is_rejected(self, trees):
        model_tree, twin_tree, telemetry_tree = trees
        with pytest.raises(MappingError, match="implements"):
            build_mapping_entry(
                telemetry_tree.find_tag("ns=2;s=Line1.Temp"),
                f"{interface_key(ROOM)}/name",
                model_tree,
                twin_tree.get(twin_key("thermo-1")),
            )

    def test_wrong_row_kinds_are_rejected(self, trees):
        model_tree, twin_tree, telemetry_tree = trees
        tag = telemetry_tree.find_tag("ns=2;s=Line1.Temp")
        room = twin_tree.get(twin_key("room-1"))

        with pytest.raises(MappingError):
            build_mapping_entry(room, f"{interface_key(ROOM)}/name", model_tree, room)
        with pytest.raises(MappingError):
            build_mapping_entry(tag, f"{interface_key(ROOM)}/thermostat1", model_tree, room)
        with pytest.raises(MappingError):
            build_mapping_entry(tag, "interface:missing/prop", model_tree, room)
        with pytest.raises(MappingError):
            build_mapping_entry(tag, f"{interface_key(ROOM)}/name", model_tree, tag)

    def test_telemetry_item_from_namespace_row(self, trees):
        _, _, telemetry_tree = trees
        with pytest.raises(MappingError):
            TelemetryItem.from_node(telemetry_tree.rows[0])


class TestMappingTable:
    def test_add_and_duplicate(self, entry):
        table = MappingTable()
        table.add(entry)

        assert len(table) == 1
        assert entry.key in table
        with pytest.raises(MappingError):
            table.add(entry)

    def test_update_keeps_position(self, entry):
        other = entry.model_copy(update={"key": "other", "opcua_node_id": "ns=2;s=Other"})
        table = MappingTable([entry, other])

        replacement = entry.model_copy(update={"key": "replaced"})
        table.update(entry.key, replacement)

        assert [e.key for e in table] == ["replaced", "other"]

    def test_update_unknown_key(self, entry):
        with pytest.raises(MappingError):
            MappingTable().update("missing", entry)

    def test_remove(self, entry):
        table = MappingTable([entry])
        assert table.remove(entry.key) is True
        assert table.remove(entry.key) is False

    def test_filter_is_case_insensitive(self, entry):
        other = entry.model_copy(update={"key": "other", "dt_twin_id": "room-2"})
        table = MappingTable([entry, other])

        assert [e.key for e in table.filter("ROOM-2")] == ["other"]
        assert len(table.filter("thermostat1/")) == 2
        assert len(table.filter("")) == 2
        assert table.filter("nothing-matches") == []

    def test_save_and_load(self, entry, tmp_path):
        path = tmp_path / "out" / "mapping.json"
        MappingTable([entry]).save(path)

        data = json.loads(path.read_text())
        assert data[0]["opcuaNodeId"] == "ns=2;s=Line1.Temp"
        assert data[0]["dtPropertyPath"] == "thermostat1/targetTemperature"

        loaded = MappingTable.load(path)
        assert loaded.get(entry.key) == entry

    def test_entry_roundtrip_from_aliases(self, entry):
        restored = MappingEntry.model_validate(entry.model_dump(by_alias=True))
        assert restored == entry
