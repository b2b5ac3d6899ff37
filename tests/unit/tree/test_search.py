"""Unit tests for the search filter."""

from twinmap.core.types import Node, NodeKind
from twinmap.tree import filter_by_model, filter_rows, visible_rows


def rows():
    return [
        Node(key="m", kind=NodeKind.MODEL, name="dtmi:example:Pump;1", source_id="dtmi:example:Pump;1",
             model_id="dtmi:example:Pump;1", child_keys=("t",), collapsed=True),
        Node(key="t", kind=NodeKind.TWIN, name="Pump A", source_id="pump-a",
             model_id="dtmi:example:Pump;1", parent_key="m", depth=1, hidden=True),
        Node(key="v", kind=NodeKind.TWIN, name="valve-1", source_id="valve-1", model_id="dtmi:example:Valve;1"),
    ]


class TestFilterRows:
    def test_empty_substring_returns_everything(self):
        assert len(filter_rows(rows(), "")) == 3
        assert len(filter_rows(rows(), None)) == 3

    def test_matches_id_name_and_model(self):
        assert [r.key for r in filter_rows(rows(), "pump-a")] == ["t"]
        assert [r.key for r in filter_rows(rows(), "Pump A")] == ["t"]
        assert [r.key for r in filter_rows(rows(), "Valve")] == ["v"]

    def test_match_is_case_sensitive(self):
        assert filter_rows(rows(), "PUMP") == []

    def test_filter_does_not_touch_flags(self):
        original = rows()
        filter_rows(original, "pump")
        assert original[1].hidden is True
        assert original[0].collapsed is True


class TestVisibleRows:
    def test_hidden_rows_are_dropped(self):
        assert [r.key for r in visible_rows(rows())] == ["m", "v"]

    def test_search_shows_hidden_matches(self):
        assert [r.key for r in visible_rows(rows(), "pump-a")] == ["t"]

    def test_filter_by_model(self):
        assert [r.key for r in filter_by_model(rows(), "dtmi:example:Valve;1")] == ["v"]
        assert len(filter_by_model(rows(), None)) == 3
