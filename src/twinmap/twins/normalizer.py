"""
Twin Normalizer.

Groups raw digital-twin instances by model and produces one Model row per
model followed by its twin rows. Draft ("future") twins that the operator is
staging are spliced in under a per-model separator row:

    Model: dtmi:example:Thermostat;1
      Twin: thermostat-1
      Twin: thermostat-2
      Future Twins for dtmi:example:Thermostat;1
        Future Twin: thermostat-3
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from ..core.errors import NormalizeError
from ..core.result import Err, Ok, Result
from ..core.types import DraftTwin, Node, NodeKind, ParentRelationship, index_nodes

logger = logging.getLogger(__name__)

SEPARATOR_PREFIX = "newtwins-"


def model_key(model_id: str) -> str:
    return f"model:{model_id}"


def twin_key(twin_id: str) -> str:
    return f"twin:{twin_id}"


def separator_key(model_id: str) -> str:
    return f"{SEPARATOR_PREFIX}{model_id}"


def future_twin_key(model_id: str, twin_id: str) -> str:
    return f"future:{model_id}/{twin_id}"


@dataclass
class TwinTree:
    """
    Result of a twin normalization pass.

    Attributes:
        rows: Model rows, each followed by its twins, its separator and future twins.
        nodes: key -> Node for every row.
        groups: model id -> ordered twin keys (existing twins first, then future twins).
    """

    rows: List[Node] = field(default_factory=list)
    nodes: Dict[str, Node] = field(default_factory=dict)
    groups: Dict[str, List[str]] = field(default_factory=dict)

    def get(self, key: str) -> Node | None:
        return self.nodes.get(key)

    @property
    def model_ids(self) -> List[str]:
        return list(self.groups)

    def twins(self, model_id: str) -> List[Node]:
        return [self.nodes[k] for k in self.groups.get(model_id, [])]

    def future_twins(self, model_id: str) -> List[Node]:
        return [n for n in self.twins(model_id) if n.is_synthetic]

    def separator(self, model_id: str) -> Node | None:
        return self.nodes.get(separator_key(model_id))


def parse_relationships(raw_twin: Dict[str, Any]) -> tuple:
    """Read incoming relationships from either the query shape or the normalized shape."""
    relationships = []
    for rel in raw_twin.get("relationships") or []:
        relationships.append(
            ParentRelationship(name=rel.get("$relationshipName", ""), source=rel.get("$sourceId", ""))
        )
    for rel in raw_twin.get("incomingRelationships") or []:
        relationships.append(
            ParentRelationship(name=rel.get("name", ""), source=rel.get("sourceId", ""))
        )
    return tuple(relationships)


class TwinNormalizer:
    """
    Normalizer for digital-twin instance listings.
    """

    def normalize(self, raw: Any, draft: DraftTwin | None = None) -> Result[TwinTree, NormalizeError]:
        """
        Normalize raw twin JSON, optionally splicing in a draft twin.

        Never raises: malformed input is returned as Err(NormalizeError).
        """
        if raw is None:
            tree = TwinTree()
        else:
            try:
                tree = self._build(self._extract_twins(raw))
            except (ValueError, TypeError, KeyError, AttributeError) as e:
                logger.error(f"Rejected twin input: {e}")
                return Err(NormalizeError.invalid_input(str(e)))

        if draft is not None:
            tree = self.add_draft(tree, draft)
        return Ok(tree)

    def _extract_twins(self, raw: Any) -> List[Dict[str, Any]]:
        if isinstance(raw, (str, bytes)):
            raw = json.loads(raw)

        if isinstance(raw, dict):
            if isinstance(raw.get("value"), list):
                raw = raw["value"]
            elif raw.get("$dtId"):
                raw = [raw]
            else:
                raise ValueError("expected an array of twins")

        if not isinstance(raw, list):
            raise ValueError("expected an array of twins")

        # Entries without a twin id (e.g. relationship rows of a query result) are skipped
        return [item for item in raw if isinstance(item, dict) and item.get("$dtId")]

    def _build(self, raw_twins: List[Dict[str, Any]]) -> TwinTree:
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for raw_twin in raw_twins:
            model_id = (raw_twin.get("$metadata") or {}).get("$model")
            if not model_id:
                raise ValueError(f"twin {raw_twin['$dtId']} has no $metadata.$model")
            grouped.setdefault(model_id, []).append(raw_twin)

        # A single model starts expanded, several models start collapsed
        collapsed = len(grouped) > 1

        rows: List[Node] = []
        groups: Dict[str, List[str]] = {}
        seen: set = set()
        for model_id, raw_group in grouped.items():
            mkey = model_key(model_id)
            twin_rows = []
            for raw_twin in raw_group:
                key = _unique(twin_key(raw_twin["$dtId"]), seen)
                twin_rows.append(
                    Node(
                        key=key,
                        source_id=raw_twin["$dtId"],
                        kind=NodeKind.TWIN,
                        name=raw_twin.get("name") or raw_twin["$dtId"],
                        parent_key=mkey,
                        depth=1,
                        namespace=(model_id,),
                        hidden=collapsed,
                        model_id=model_id,
                        parent_relationships=parse_relationships(raw_twin),
                    )
                )
            rows.append(
                Node(
                    key=mkey,
                    source_id=model_id,
                    kind=NodeKind.MODEL,
                    name=model_id,
                    child_keys=tuple(t.key for t in twin_rows),
                    collapsed=collapsed,
                    model_id=model_id,
                )
            )
            rows.extend(twin_rows)
            groups[model_id] = [t.key for t in twin_rows]

        logger.debug(f"Grouped {len(raw_twins)} twins under {len(groups)} models")
        return TwinTree(rows=rows, nodes=index_nodes(rows), groups=groups)

    def add_draft(self, tree: TwinTree, draft: DraftTwin) -> TwinTree:
        """
        Return a new TwinTree with the draft twin staged under its model's separator.

        Reuses an existing separator and replaces an existing future twin with
        the same id, so applying the same draft twice is a no-op.
        """
        rows = list(tree.rows)
        groups = {model_id: list(keys) for model_id, keys in tree.groups.items()}
        model_id = draft.model_id
        mkey = model_key(model_id)

        # 1. Model row (synthesized when no twin of this model exists yet)
        model_idx = _find(rows, mkey)
        if model_idx < 0:
            rows.append(
                Node(
                    key=mkey,
                    source_id=model_id,
                    kind=NodeKind.MODEL,
                    name=model_id,
                    model_id=model_id,
                    is_synthetic=True,
                )
            )
            model_idx = len(rows) - 1
        model_row = rows[model_idx]
        groups.setdefault(model_id, [])

        # 2. Separator (inserted after the last existing twin of the model)
        skey = separator_key(model_id)
        sep_idx = _find(rows, skey)
        if sep_idx < 0:
            sep_idx = _block_end(rows, model_idx)
            rows.insert(
                sep_idx,
                Node(
                    key=skey,
                    kind=NodeKind.SEPARATOR,
                    name="separator",
                    display_name=f"Future Twins for {model_id}",
                    parent_key=mkey,
                    depth=model_row.depth + 1,
                    namespace=(model_id,),
                    hidden=model_row.collapsed or model_row.hidden,
                    model_id=model_id,
                    is_synthetic=True,
                ),
            )
            rows[model_idx] = model_row.model_copy(
                update={"child_keys": (*model_row.child_keys, skey)}
            )
        separator = rows[sep_idx]

        # 3. Future twin under the separator
        fkey = future_twin_key(model_id, draft.twin_id)
        twin = Node(
            key=fkey,
            source_id=draft.twin_id,
            kind=NodeKind.TWIN,
            name=draft.twin_id,
            parent_key=skey,
            depth=separator.depth + 1,
            namespace=(model_id, separator.name),
            hidden=separator.hidden or separator.collapsed,
            model_id=model_id,
            is_synthetic=True,
            parent_relationships=tuple(draft.parent_relationships),
        )
        twin_idx = _find(rows, fkey)
        if twin_idx >= 0:
            rows[twin_idx] = twin
        else:
            rows.insert(_block_end(rows, sep_idx), twin)
            rows[sep_idx] = separator.model_copy(
                update={"child_keys": (*separator.child_keys, fkey)}
            )
            groups[model_id].append(fkey)

        logger.debug(f"Staged future twin {draft.twin_id} for {model_id}")
        return TwinTree(rows=rows, nodes=index_nodes(rows), groups=groups)


def _find(rows: List[Node], key: str) -> int:
    return next((i for i, row in enumerate(rows) if row.key == key), -1)


def _block_end(rows: List[Node], index: int) -> int:
    """Index just past the subtree rooted at rows[index]."""
    depth = rows[index].depth
    end = index + 1
    while end < len(rows) and rows[end].depth > depth:
        end += 1
    return end


def _unique(key: str, seen: set) -> str:
    candidate, n = key, 1
    while candidate in seen:
        n += 1
        candidate = f"{key}#{n}"
    if n > 1:
        logger.warning(f"Duplicate twin id {key}; keyed as {candidate}")
    seen.add(candidate)
    return candidate


def normalize_twins(raw: Any, draft: DraftTwin | None = None) -> Result[TwinTree, NormalizeError]:
    """Convenience wrapper around TwinNormalizer."""
    return TwinNormalizer().normalize(raw, draft)


def apply_drafts(tree: TwinTree, drafts: Iterable[DraftTwin]) -> TwinTree:
    normalizer = TwinNormalizer()
    for draft in drafts:
        tree = normalizer.add_draft(tree, draft)
    return tree
