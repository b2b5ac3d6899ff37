"""
Unit tests for the models, twins, telemetry and map commands.
"""

import json

import pytest
from click.testing import CliRunner

from twinmap.cli.main import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every command from an empty directory so no project config is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def files(write_json, room_models, twins_raw, telemetry_raw):
    return {
        "models": write_json("models.json", room_models),
        "twins": write_json("twins.json", twins_raw),
        "telemetry": write_json("telemetry.json", telemetry_raw),
    }


class TestModelsCommand:
    def test_prints_tree(self, runner, files):
        result = runner.invoke(main, ["models", files["models"]])

        assert result.exit_code == 0
        assert "dtmi:example:Room;1" in result.output or "Room" in result.output
        assert "thermostat1" in result.output or "Thermostat" in result.output
        assert "targetTemperature" in result.output

    def test_json_output(self, runner, files):
        result = runner.invoke(main, ["models", files["models"], "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["meta"]["status"] == "success"
        assert payload["data"]["roots"] == ["interface:dtmi:example:Room;1"]
        assert len(payload["data"]["rows"]) == 4

    def test_search(self, runner, files):
        result = runner.invoke(main, ["models", files["models"], "--json", "--search", "target"])

        rows = json.loads(result.output)["data"]["rows"]
        assert [row["name"] for row in rows] == ["targetTemperature"]

    def test_invalid_file(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")

        result = runner.invoke(main, ["models", str(bad)])

        assert result.exit_code == 1
        assert "Invalid input file" in result.output

    def test_rejected_models(self, runner, write_json):
        path = write_json("telemetry_only.json", [{"@type": "Telemetry"}])

        result = runner.invoke(main, ["models", path, "--json"])

        assert result.exit_code == 1
        payload = json.loads(result.output)
        assert payload["meta"]["status"] == "error"
        assert payload["error"]["message"].startswith("Invalid input file (")


    def test_warns_about_unresolved_references(self, runner, write_json):
        room = {
            "@id": "dtmi:example:Room;1",
            "@type": "Interface",
            "contents": [{"@type": "Component", "name": "thermostat1", "schema": "dtmi:example:Missing;1"}],
        }
        path = write_json("partial.json", [room])

        result = runner.invoke(main, ["models", path])

        assert result.exit_code == 0
        assert "1 unresolved reference(s)" in result.output
        assert "thermostat1 -> dtmi:example:Missing;1" in result.output

    def test_no_warning_when_all_references_resolve(self, runner, files):
        result = runner.invoke(main, ["models", files["models"]])
        assert "unresolved" not in result.output


class TestTwinsCommand:
    def test_groups_by_model(self, runner, files):
        result = runner.invoke(main, ["twins", files["twins"], "--all"])

        assert result.exit_code == 0
        assert "3 across 2 models" in result.output
        assert "Lobby" in result.output

    def test_collapsed_models_hide_twins(self, runner, files):
        result = runner.invoke(main, ["twins", files["twins"]])

        assert result.exit_code == 0
        assert "Lobby" not in result.output

    def test_draft_twin(self, runner, files):
        result = runner.invoke(main, [
            "twins", files["twins"],
            "--draft-model", "dtmi:example:Sensor;1",
            "--draft-twin", "sensor-42",
            "--parent", "room-1:contains",
            "--json",
        ])

        assert result.exit_code == 0
        rows = json.loads(result.output)["data"]["rows"]
        keys = [row["key"] for row in rows]
        assert "newtwins-dtmi:example:Sensor;1" in keys
        assert "future:dtmi:example:Sensor;1/sensor-42" in keys

    def test_model_filter(self, runner, files):
        result = runner.invoke(main, ["twins", files["twins"], "--model", "dtmi:example:Thermostat;1", "--json"])

        rows = json.loads(result.output)["data"]["rows"]
        assert {row.get("model_id") for row in rows} == {"dtmi:example:Thermostat;1"}

    def test_draft_needs_both_options(self, runner, files):
        result = runner.invoke(main, ["twins", files["twins"], "--draft-twin", "sensor-42"])
        assert result.exit_code == 2

    def test_bad_parent_option(self, runner, files):
        result = runner.invoke(main, [
            "twins", files["twins"],
            "--draft-model", "dtmi:example:Sensor;1",
            "--draft-twin", "sensor-42",
            "--parent", "nocolon",
        ])
        assert result.exit_code == 2


class TestTelemetryCommand:
    def test_prints_tags(self, runner, files):
        result = runner.invoke(main, ["telemetry", files["telemetry"], "--all"])

        assert result.exit_code == 0
        assert "3 tags" in result.output
        assert "Temp" in result.output
        assert "limits: complex" in result.output

    def test_search(self, runner, files):
        result = runner.invoke(main, ["telemetry", files["telemetry"], "--search", "Speed", "--json"])

        rows = json.loads(result.output)["data"]["rows"]
        assert [row["source_id"] for row in rows] == ["ns=2;s=Line1.Speed"]


class TestMapCommand:
    def _args(self, files, twin="room-1", prop="thermostat1/targetTemperature"):
        return [
            "map",
            "--models", files["models"],
            "--twins", files["twins"],
            "--telemetry", files["telemetry"],
            "--tag", "ns=2;s=Line1.Temp",
            "--twin", twin,
            "--property", prop,
        ]

    def test_json_entry(self, runner, files):
        result = runner.invoke(main, [*self._args(files), "--json"])

        assert result.exit_code == 0
        entry = json.loads(result.output)["data"]
        assert entry["opcuaNodeId"] == "ns=2;s=Line1.Temp"
        assert entry["dtTwinId"] == "room-1"
        assert entry["dtPropertyPath"] == "thermostat1/targetTemperature"
        assert entry["dtModelId"] == "dtmi:example:Room;1"

    def test_output_file_is_updated_not_duplicated(self, runner, files, tmp_path):
        out = tmp_path / "mapping.json"

        first = runner.invoke(main, [*self._args(files), "-o", str(out)])
        second = runner.invoke(main, [*self._args(files), "-o", str(out)])

        assert first.exit_code == 0
        assert second.exit_code == 0
        assert "Mapped" in first.output
        assert len(json.loads(out.read_text())) == 1

    def test_property_of_other_model(self, runner, files):
        result = runner.invoke(main, self._args(files, twin="thermo-1", prop="name"))

        assert result.exit_code == 1
        assert "has no property" in result.output

    def test_unknown_twin(self, runner, files):
        result = runner.invoke(main, self._args(files, twin="ghost"))

        assert result.exit_code == 1
        assert "Twin not found" in result.output
