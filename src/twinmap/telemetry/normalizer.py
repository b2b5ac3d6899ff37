"""
Telemetry Normalizer.

Turns an OPC-UA tag export into namespace/tag rows. The export is a single
root namespace object whose keys are nested namespaces; a `tags` key holds
the leaf tags of the namespace it appears in:

    {"Plant": {"Line1": {"tags": [{"nodeId": "ns=2;s=T1", "name": "Temp", "type": "double"}]}}}

Rows are emitted in pre-order with siblings sorted by id. Namespaces with
more than one child start collapsed (and so does everything beneath them),
except the first namespace that branches, which is expanded so the tree
opens on something useful.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from ..core.errors import NormalizeError
from ..core.result import Err, Ok, Result
from ..core.types import Node, NodeKind, index_nodes

logger = logging.getLogger(__name__)

COMPLEX_TYPE = "complex"


def namespace_key(path: Tuple[str, ...]) -> str:
    return "ns:" + ".".join(path)


def tag_key(node_id: str) -> str:
    return f"tag:{node_id}"


@dataclass
class TelemetryTree:
    """Rows of a telemetry export plus a key index."""

    rows: List[Node] = field(default_factory=list)
    nodes: Dict[str, Node] = field(default_factory=dict)
    root_key: str | None = None

    def get(self, key: str) -> Node | None:
        return self.nodes.get(key)

    @property
    def tags(self) -> List[Node]:
        return [row for row in self.rows if row.kind == NodeKind.TAG]

    def find_tag(self, node_id: str) -> Node | None:
        return self.nodes.get(tag_key(node_id))


def flatten_struct(properties: List[Dict[str, Any]], depth: int = 0) -> List[Tuple[int, str, str]]:
    """Flatten nested complex-tag properties into (depth, name, type) entries."""
    result = []
    for prop in properties or []:
        result.append((depth, prop.get("name", ""), prop.get("type", "")))
        if prop.get("type") == COMPLEX_TYPE:
            result.extend(flatten_struct(prop.get("properties") or [], depth + 1))
    return result


class TelemetryNormalizer:
    """
    Normalizer for OPC-UA telemetry exports.
    """

    def normalize(self, raw: Any) -> Result[TelemetryTree, NormalizeError]:
        """Normalize a telemetry export. Never raises."""
        if raw is None:
            return Ok(TelemetryTree())

        try:
            return Ok(self._build(self._root(raw)))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.error(f"Rejected telemetry input: {e}")
            return Err(NormalizeError.invalid_input(str(e)))

    def _root(self, raw: Any) -> Tuple[str, Dict[str, Any]]:
        if isinstance(raw, (str, bytes)):
            raw = json.loads(raw)
        if isinstance(raw, list):
            raw = raw[0] if raw else None
        if not isinstance(raw, dict) or len(raw) != 1:
            raise ValueError("expected a single root namespace")

        name, body = next(iter(raw.items()))
        if not isinstance(body, dict):
            raise ValueError(f"namespace {name} must be an object")
        return name, body

    def _build(self, root: Tuple[str, Dict[str, Any]]) -> TelemetryTree:
        name, body = root
        rows: List[Node] = []
        self._seen: set = set()
        self._walk(name, body, (), None, False, rows)

        rows = self._expand_first_branch(rows)
        logger.debug(f"Normalized telemetry export into {len(rows)} rows")
        return TelemetryTree(rows=rows, nodes=index_nodes(rows), root_key=rows[0].key)

    def _walk(
        self,
        name: str,
        body: Dict[str, Any],
        namespace: Tuple[str, ...],
        parent_key: str | None,
        hidden: bool,
        rows: List[Node],
    ) -> str:
        path = (*namespace, name)
        key = namespace_key(path)
        children: List[Tuple[str, bool, Any]] = []
        for child_name, child in body.items():
            if child_name.lower() == "tags":
                if not isinstance(child, list):
                    raise ValueError(f"tags of {'.'.join(path)} must be an array")
                children.extend((self._tag_id(tag, path), True, tag) for tag in child)
            else:
                if not isinstance(child, dict):
                    raise ValueError(f"namespace {child_name} must be an object")
                children.append((child_name, False, child))
        children.sort(key=lambda item: item[0])

        # Collapse is inherited: once a namespace branches, everything below starts folded
        collapsed = bool(children) and (hidden or len(children) > 1)

        index = len(rows)
        rows.append(
            Node(
                key=key,
                source_id=name,
                kind=NodeKind.NAMESPACE,
                name=name,
                parent_key=parent_key,
                depth=len(namespace),
                namespace=namespace,
                collapsed=collapsed,
                hidden=hidden,
            )
        )

        child_keys = []
        for child_id, is_tag, child in children:
            if is_tag:
                child_keys.append(self._tag(child, path, key, collapsed, rows))
            else:
                child_keys.append(self._walk(child_id, child, path, key, collapsed, rows))

        rows[index] = rows[index].model_copy(update={"child_keys": tuple(child_keys)})
        return key

    def _tag(
        self,
        tag: Dict[str, Any],
        namespace: Tuple[str, ...],
        parent_key: str,
        hidden: bool,
        rows: List[Node],
    ) -> str:
        node_id = tag["nodeId"]
        key = _unique(tag_key(node_id), self._seen)
        data_type = tag.get("type")
        struct = flatten_struct(tag.get("properties") or []) if data_type == COMPLEX_TYPE else []
        rows.append(
            Node(
                key=key,
                source_id=node_id,
                kind=NodeKind.TAG,
                name=tag.get("name") or node_id,
                parent_key=parent_key,
                depth=len(namespace),
                namespace=namespace,
                hidden=hidden,
                data_type=data_type,
                struct=tuple(struct),
            )
        )
        return key

    @staticmethod
    def _tag_id(tag: Any, path: Tuple[str, ...]) -> str:
        if not isinstance(tag, dict) or not tag.get("nodeId"):
            raise ValueError(f"tag under {'.'.join(path)} has no nodeId")
        return tag["nodeId"]

    def _expand_first_branch(self, rows: List[Node]) -> List[Node]:
        """Expand the first namespace with more than one child and reveal its children."""
        nodes = index_nodes(rows)
        current = rows[0]
        while len(current.child_keys) == 1:
            child = nodes[current.child_keys[0]]
            if not child.child_keys:
                break
            current = child
        if not current.child_keys:
            return rows

        expand = current.key
        reveal = set(current.child_keys)
        return [
            row.model_copy(update={"collapsed": False}) if row.key == expand
            else row.model_copy(update={"hidden": False}) if row.key in reveal
            else row
            for row in rows
        ]


def _unique(key: str, seen: set) -> str:
    candidate, n = key, 1
    while candidate in seen:
        n += 1
        candidate = f"{key}#{n}"
    if n > 1:
        logger.warning(f"Duplicate tag node id {key}; keyed as {candidate}")
    seen.add(candidate)
    return candidate


def normalize_telemetry(raw: Any) -> Result[TelemetryTree, NormalizeError]:
    """Convenience wrapper around TelemetryNormalizer."""
    return TelemetryNormalizer().normalize(raw)
