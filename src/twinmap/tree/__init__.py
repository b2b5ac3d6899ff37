"""
Collapsible, selectable tree rows.

- controller: reducer-driven TreeState and the TreeController wrapper
- search: stateless row filters
"""

from .controller import (
    AppendPage, ClearSelection, CollapseAll, ExpandAll, Initialize,
    RequestNextPage, Select, SelectRange, SelectionState, SetDefaultSelection,
    ToggleCollapse, TreeController, TreeState, apply_visibility,
    descendant_keys, initial_state, reduce, select_children, subtree_range,
)
from .search import filter_by_model, filter_rows, matches, visible_rows

__all__ = [
    # State
    "TreeState", "SelectionState", "TreeController", "initial_state", "reduce",
    # Actions
    "Initialize", "ToggleCollapse", "Select", "SelectRange", "ClearSelection",
    "SetDefaultSelection", "CollapseAll", "ExpandAll", "RequestNextPage", "AppendPage",
    # Helpers
    "apply_visibility", "select_children", "descendant_keys", "subtree_range",
    # Search
    "filter_rows", "visible_rows", "filter_by_model", "matches",
]
