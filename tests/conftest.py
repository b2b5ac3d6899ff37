"""Shared sample exports for twinmap tests."""

import json

import pytest

THERMOSTAT = "dtmi:example:Thermostat;1"
ROOM = "dtmi:example:Room;1"
SENSOR = "dtmi:example:Sensor;1"


@pytest.fixture
def thermostat_interface():
    return {
        "@id": THERMOSTAT,
        "@type": "Interface",
        "displayName": {"en": "Thermostat"},
        "contents": [
            {"@type": "Property", "name": "targetTemperature", "schema": "double"},
            {"@type": "Telemetry", "name": "temperature", "schema": "double"},
        ],
    }


@pytest.fixture
def room_models(thermostat_interface):
    """A Room interface that inlines the Thermostat through a component."""
    room = {
        "@id": ROOM,
        "@type": "Interface",
        "displayName": "Room",
        "contents": [
            {"@type": "Property", "name": "name", "schema": "string"},
            {"@type": "Component", "name": "thermostat1", "schema": THERMOSTAT},
        ],
    }
    return [room, thermostat_interface]


@pytest.fixture
def twins_raw():
    return [
        {"$dtId": "room-1", "$metadata": {"$model": ROOM}, "name": "Lobby"},
        {"$dtId": "room-2", "$metadata": {"$model": ROOM}},
        {
            "$dtId": "thermo-1",
            "$metadata": {"$model": THERMOSTAT},
            "relationships": [{"$relationshipName": "contains", "$sourceId": "room-1"}],
        },
    ]


@pytest.fixture
def telemetry_raw():
    return {
        "Plant": {
            "Line1": {
                "tags": [
                    {"nodeId": "ns=2;s=Line1.Temp", "name": "Temp", "type": "double"},
                    {"nodeId": "ns=2;s=Line1.Speed", "name": "Speed", "type": "int"},
                ]
            },
            "Line2": {
                "tags": [
                    {
                        "nodeId": "ns=2;s=Line2.State",
                        "name": "State",
                        "type": "complex",
                        "properties": [
                            {"name": "mode", "type": "string"},
                            {
                                "name": "limits",
                                "type": "complex",
                                "properties": [{"name": "max", "type": "double"}],
                            },
                        ],
                    }
                ]
            },
        }
    }


@pytest.fixture
def write_json(tmp_path):
    """Write an object to a JSON file under tmp_path and return its path as a string."""
    def _write(name, data):
        path = tmp_path / name
        path.write_text(json.dumps(data))
        return str(path)
    return _write
