"""
Tree-Row Controller.

A reducer over TreeState shared by every normalizer's output. It tracks:
- per-parent collapse state, and the resulting `hidden` flag of every row
- multi-row selection, optionally propagating a parent's selection to all of
  its descendants
- the lazy-paging cursor used by virtualized scrolling

Every transition is a pure function `TreeState x Action -> TreeState`. Rows
are immutable Node snapshots held in a key -> Node arena; a transition
produces new snapshots only for rows whose flags actually changed.

Collapse and selection entries are keyed by row key, so re-initializing with
rebuilt rows keeps the operator's choices for every key that still exists.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, FrozenSet, Iterable, List, Set, Tuple

from ..config import NUM_SHIMMER_ROWS
from ..core.types import Node
from .search import visible_rows

logger = logging.getLogger(__name__)


# --- State ---

@dataclass(frozen=True)
class SelectionState:
    """Selected row keys plus the anchor used for range (shift-click) selection."""
    selected_keys: FrozenSet[str] = frozenset()
    last_anchor_key: str | None = None

    def is_selected(self, key: str | None) -> bool:
        return key is not None and key in self.selected_keys

    @property
    def count(self) -> int:
        return len(self.selected_keys)


@dataclass(frozen=True)
class TreeState:
    """
    Complete controller state.

    Attributes:
        nodes: Arena of row snapshots by key.
        order: Row keys in render order.
        parent_collapse: Collapse flag per parent row key.
        selection: Current selection.
        page_cursor: Number of extra pages requested since the last initialize.
        generation: Bumped by every initialize; page results carry it back.
        has_next_page: Whether the data source can supply more rows.
        loading: A page request is in flight.
        select_descendants_with_parent: Keep every selected parent's subtree selected after each change.
    """

    nodes: Dict[str, Node] = field(default_factory=dict)
    order: Tuple[str, ...] = ()
    parent_collapse: Dict[str, bool] = field(default_factory=dict)
    selection: SelectionState = field(default_factory=SelectionState)
    page_cursor: int = 0
    generation: int = 0
    has_next_page: bool = False
    loading: bool = False
    select_descendants_with_parent: bool = True

    @property
    def rows(self) -> List[Node]:
        return [self.nodes[key] for key in self.order]

    def index_of(self, key: str) -> int:
        try:
            return self.order.index(key)
        except ValueError:
            return -1

    @property
    def selected_rows(self) -> List[Node]:
        return [self.nodes[key] for key in self.order if key in self.selection.selected_keys]


# --- Actions ---

@dataclass(frozen=True)
class Initialize:
    """Replace the rows after a normalizer rebuild."""
    rows: Tuple[Node, ...]
    has_next_page: bool = False


@dataclass(frozen=True)
class ToggleCollapse:
    key: str


@dataclass(frozen=True)
class Select:
    """Click on a row checkbox (index into the full row order)."""
    index: int


@dataclass(frozen=True)
class SelectRange:
    """Shift-click: select from the anchor row to index."""
    index: int


@dataclass(frozen=True)
class ClearSelection:
    pass


@dataclass(frozen=True)
class SetDefaultSelection:
    """Select a row only if nothing is selected yet."""
    key: str


@dataclass(frozen=True)
class CollapseAll:
    pass


@dataclass(frozen=True)
class ExpandAll:
    pass


@dataclass(frozen=True)
class RequestNextPage:
    pass


@dataclass(frozen=True)
class AppendPage:
    """Rows fetched for a page request, tagged with the generation that requested them."""
    rows: Tuple[Node, ...]
    generation: int
    has_next_page: bool = False


# --- Helpers ---

def descendant_keys(nodes: Dict[str, Node], key: str) -> List[str]:
    """All transitive children of a row present in the arena, in pre-order."""
    result = []
    node = nodes.get(key)
    if node is None:
        return result
    stack = [k for k in reversed(node.child_keys)]
    while stack:
        current = stack.pop()
        child = nodes.get(current)
        if child is None:
            continue
        result.append(current)
        stack.extend(reversed(child.child_keys))
    return result


def subtree_range(state: TreeState, index: int) -> Tuple[int, int]:
    """(start, count) of the contiguous pre-order block rooted at order[index]."""
    return index, len(descendant_keys(state.nodes, state.order[index])) + 1


def _has_children(nodes: Dict[str, Node], node: Node) -> bool:
    return any(k in nodes for k in node.child_keys)


def _is_hidden(nodes: Dict[str, Node], parent_collapse: Dict[str, bool], node: Node) -> bool:
    parent_key = node.parent_key
    seen = set()
    while parent_key and parent_key not in seen:
        seen.add(parent_key)
        if parent_collapse.get(parent_key):
            return True
        parent = nodes.get(parent_key)
        if parent is None:
            return False
        parent_key = parent.parent_key
    return False


def apply_visibility(nodes: Dict[str, Node], parent_collapse: Dict[str, bool]) -> Dict[str, Node]:
    """
    Recompute `collapsed` and `hidden` for every row.

    A row is hidden iff any ancestor is collapsed. Rows whose flags did not
    change keep their snapshot.
    """
    result = {}
    for key, node in nodes.items():
        collapsed = bool(parent_collapse.get(key)) and _has_children(nodes, node)
        hidden = _is_hidden(nodes, parent_collapse, node)
        if node.collapsed != collapsed or node.hidden != hidden:
            node = node.model_copy(update={"collapsed": collapsed, "hidden": hidden})
        result[key] = node
    return result


def select_children(nodes: Dict[str, Node], selected: Iterable[str]) -> FrozenSet[str]:
    """
    Extend a selection so every selected parent has all of its descendants selected.

    Range (shift-click) selections can cover part of a subtree; this pass
    completes them.
    """
    result: Set[str] = set(selected)
    for key in list(result):
        node = nodes.get(key)
        if node is not None and node.child_keys:
            result.update(descendant_keys(nodes, key))
    return frozenset(result)


def _with_selection(state: TreeState, selected: Iterable[str], anchor: str | None) -> TreeState:
    keys = frozenset(k for k in selected if k in state.nodes)
    if state.select_descendants_with_parent:
        keys = select_children(state.nodes, keys)
    return replace(state, selection=SelectionState(selected_keys=keys, last_anchor_key=anchor))


def _seed_collapse(nodes: Dict[str, Node], previous: Dict[str, bool]) -> Dict[str, bool]:
    """Keep collapse entries for surviving parents; seed new parents from their rows."""
    return {
        key: previous.get(key, node.collapsed)
        for key, node in nodes.items()
        if node.child_keys
    }


# --- Transitions ---

def _initialize(state: TreeState, action: Initialize) -> TreeState:
    nodes = {row.key: row for row in action.rows}
    parent_collapse = _seed_collapse(nodes, state.parent_collapse)
    anchor = state.selection.last_anchor_key
    new_state = replace(
        state,
        nodes=apply_visibility(nodes, parent_collapse),
        order=tuple(nodes),
        parent_collapse=parent_collapse,
        page_cursor=0,
        generation=state.generation + 1,
        has_next_page=action.has_next_page,
        loading=False,
    )
    return _with_selection(
        new_state,
        state.selection.selected_keys,
        anchor if anchor in nodes else None,
    )


def _toggle_collapse(state: TreeState, action: ToggleCollapse) -> TreeState:
    node = state.nodes.get(action.key)
    if node is None or not _has_children(state.nodes, node):
        logger.debug(f"Ignoring collapse toggle for unknown or leaf row {action.key}")
        return state

    parent_collapse = {**state.parent_collapse, action.key: not state.parent_collapse.get(action.key, False)}
    return replace(
        state,
        nodes=apply_visibility(state.nodes, parent_collapse),
        parent_collapse=parent_collapse,
    )


def _set_all_collapsed(state: TreeState, collapsed: bool) -> TreeState:
    parent_collapse = {key: collapsed for key in state.parent_collapse}
    return replace(
        state,
        nodes=apply_visibility(state.nodes, parent_collapse),
        parent_collapse=parent_collapse,
    )


def _select(state: TreeState, action: Select) -> TreeState:
    if not 0 <= action.index < len(state.order):
        return state

    key = state.order[action.index]
    node = state.nodes[key]
    selected = set(state.selection.selected_keys)

    if node.child_keys:
        # Toggle the whole subtree at once: deselect if fully selected, else select all
        subtree = [key, *descendant_keys(state.nodes, key)]
        if all(k in selected for k in subtree):
            selected.difference_update(subtree)
        else:
            selected.update(subtree)
    elif state.selection.is_selected(node.parent_key):
        # Parent selection implies this row
        return state
    else:
        selected.symmetric_difference_update({key})

    return _with_selection(state, selected, key)


def _select_range(state: TreeState, action: SelectRange) -> TreeState:
    if not 0 <= action.index < len(state.order):
        return state

    anchor = state.selection.last_anchor_key
    anchor_index = state.index_of(anchor) if anchor else -1
    if anchor_index < 0:
        return _select(state, Select(action.index))

    start, end = sorted((anchor_index, action.index))
    selected = set(state.selection.selected_keys) | set(state.order[start:end + 1])
    return _with_selection(state, selected, anchor)


def _clear_selection(state: TreeState, action: ClearSelection) -> TreeState:
    return replace(state, selection=SelectionState())


def _set_default_selection(state: TreeState, action: SetDefaultSelection) -> TreeState:
    if state.selection.count or action.key not in state.nodes:
        return state
    return _with_selection(state, {action.key}, action.key)


def _request_next_page(state: TreeState, action: RequestNextPage) -> TreeState:
    if not state.has_next_page or state.loading:
        return state
    return replace(state, page_cursor=state.page_cursor + 1, loading=True)


def _append_page(state: TreeState, action: AppendPage) -> TreeState:
    if action.generation != state.generation:
        logger.debug(
            f"Discarding stale page (generation {action.generation}, current {state.generation})"
        )
        return state

    nodes = dict(state.nodes)
    order = list(state.order)
    for row in action.rows:
        if row.key not in nodes:
            order.append(row.key)
        nodes[row.key] = row
        # Attach the row to a parent loaded on an earlier page
        parent = nodes.get(row.parent_key) if row.parent_key else None
        if parent is not None and row.key not in parent.child_keys:
            nodes[parent.key] = parent.model_copy(update={"child_keys": (*parent.child_keys, row.key)})

    parent_collapse = _seed_collapse(nodes, state.parent_collapse)
    new_state = replace(
        state,
        nodes=apply_visibility(nodes, parent_collapse),
        order=tuple(order),
        parent_collapse=parent_collapse,
        has_next_page=action.has_next_page,
        loading=False,
    )
    return _with_selection(new_state, state.selection.selected_keys, state.selection.last_anchor_key)


REDUCERS: Dict[type, Callable[[TreeState, object], TreeState]] = {
    Initialize: _initialize,
    ToggleCollapse: _toggle_collapse,
    Select: _select,
    SelectRange: _select_range,
    ClearSelection: _clear_selection,
    SetDefaultSelection: _set_default_selection,
    CollapseAll: lambda state, _: _set_all_collapsed(state, True),
    ExpandAll: lambda state, _: _set_all_collapsed(state, False),
    RequestNextPage: _request_next_page,
    AppendPage: _append_page,
}


def reduce(state: TreeState, action: object) -> TreeState:
    """Apply one action to a state and return the next state."""
    reducer = REDUCERS.get(type(action))
    if reducer is None:
        raise TypeError(f"Unknown tree action: {type(action).__name__}")
    return reducer(state, action)


def initial_state(
    rows: Iterable[Node] = (),
    select_descendants_with_parent: bool = True,
    has_next_page: bool = False,
) -> TreeState:
    """Build a state from freshly normalized rows."""
    state = TreeState(select_descendants_with_parent=select_descendants_with_parent)
    state = reduce(state, Initialize(rows=tuple(rows), has_next_page=has_next_page))
    # Generation 0 belongs to the empty state; the first rows are generation 1
    return state


# --- Stateful wrapper ---

PageFetcher = Callable[[int, int], None]


class TreeController:
    """
    Holds the current TreeState and dispatches actions against it.

    The page fetcher is injected and called as fetch_page(page_cursor,
    generation) after a successful next-page request. Its result must come
    back through receive_page() with the same generation; results for an
    older generation are dropped.
    """

    def __init__(
        self,
        rows: Iterable[Node] = (),
        select_descendants_with_parent: bool = True,
        has_next_page: bool = False,
        fetch_page: PageFetcher | None = None,
        num_shimmer_rows: int = NUM_SHIMMER_ROWS,
    ):
        self._state = initial_state(rows, select_descendants_with_parent, has_next_page)
        self._fetch_page = fetch_page
        self.num_shimmer_rows = num_shimmer_rows

    @property
    def state(self) -> TreeState:
        return self._state

    @property
    def rows(self) -> List[Node]:
        return self._state.rows

    def dispatch(self, action: object) -> TreeState:
        self._state = reduce(self._state, action)
        return self._state

    def initialize(self, rows: Iterable[Node], has_next_page: bool = False) -> TreeState:
        return self.dispatch(Initialize(rows=tuple(rows), has_next_page=has_next_page))

    def toggle_collapse(self, key: str) -> TreeState:
        return self.dispatch(ToggleCollapse(key))

    def select(self, index: int) -> TreeState:
        return self.dispatch(Select(index))

    def select_key(self, key: str) -> TreeState:
        index = self._state.index_of(key)
        return self.select(index) if index >= 0 else self._state

    def select_range(self, index: int) -> TreeState:
        return self.dispatch(SelectRange(index))

    def clear_selection(self) -> TreeState:
        return self.dispatch(ClearSelection())

    def collapse_all(self) -> TreeState:
        return self.dispatch(CollapseAll())

    def expand_all(self) -> TreeState:
        return self.dispatch(ExpandAll())

    def request_next_page(self) -> bool:
        """Advance the page cursor and ask the data source for more rows. Returns True if a fetch was issued."""
        before = self._state
        after = self.dispatch(RequestNextPage())
        if after is before:
            return False
        if self._fetch_page is not None:
            self._fetch_page(after.page_cursor, after.generation)
        return True

    def receive_page(self, rows: Iterable[Node], generation: int, has_next_page: bool = False) -> bool:
        """Apply fetched rows. Returns False when the result was stale and discarded."""
        before = self._state
        after = self.dispatch(AppendPage(rows=tuple(rows), generation=generation, has_next_page=has_next_page))
        return after is not before

    def on_sentinel_visible(self) -> bool:
        """Intersection callback for the first shimmer row."""
        return self.request_next_page()

    def render_rows(self, search: str | None = None) -> List[Node | None]:
        """
        Rows to draw, followed by shimmer placeholders (None) while more pages exist.

        Searching shows every match regardless of collapse state and disables
        the shimmer trigger.
        """
        rows: List[Node | None] = list(visible_rows(self._state.rows, search))
        if self._state.has_next_page and not search:
            rows.extend([None] * self.num_shimmer_rows)
        return rows
