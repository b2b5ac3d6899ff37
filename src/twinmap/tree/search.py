"""
Search Filter.

Stateless projections over controller rows. Filtering never touches the
collapse or visibility flags of the underlying rows; a search simply shows
every match, including rows under collapsed ancestors.
"""

from typing import Iterable, List

from ..core.types import Node


def matches(row: Node, substring: str) -> bool:
    """Case-sensitive substring match on the row's id, name and model."""
    return any(
        value is not None and substring in value
        for value in (row.source_id, row.name, row.model_id)
    )


def filter_rows(rows: Iterable[Node], substring: str | None) -> List[Node]:
    """Return the rows matching substring, or all rows when substring is empty."""
    rows = list(rows)
    if not substring:
        return rows
    return [row for row in rows if matches(row, substring)]


def visible_rows(rows: Iterable[Node], substring: str | None = None) -> List[Node]:
    """
    Rows the renderer should draw.

    Without a search this honours collapse state (hidden rows are dropped).
    With a search, matches are shown regardless of collapse state.
    """
    if substring:
        return filter_rows(rows, substring)
    return [row for row in rows if not row.hidden]


def filter_by_model(rows: Iterable[Node], model_id: str | None) -> List[Node]:
    """Restrict rows to one model id; all rows when model_id is empty."""
    rows = list(rows)
    if not model_id:
        return rows
    return [row for row in rows if row.model_id == model_id]
