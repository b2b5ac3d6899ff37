"""
Model Normalizer.

Builds a renderable tree from raw DTDL interface definitions:
- Every top-level interface becomes an Interface row.
- Properties become Property rows with a resolved PropertyDescriptor.
- Components and Relationships are inlined: their children are the contents
  of the interface they reference, rebuilt under the new parent so depth,
  namespace and visibility are relative to it.
- Interfaces that are referenced by another interface only appear nested.

The walk runs in two phases (index every interface, then expand) so the
input may list interfaces in any order.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set, Tuple

from ..config import MAX_MODEL_DEPTH
from ..core.errors import ModelCycleError, NormalizeError, TwinmapError
from ..core.result import Err, Ok, Result
from ..core.types import INLINED_KINDS, Node, NodeKind, index_nodes
from ..schema.resolver import resolve_schema

logger = logging.getLogger(__name__)

CONTENT_KINDS = {
    "property": NodeKind.PROPERTY,
    "component": NodeKind.COMPONENT,
    "relationship": NodeKind.RELATIONSHIP,
}


@dataclass
class ModelTree:
    """
    Result of a model normalization pass.

    Attributes:
        rows: Pre-order rows, starting from the non-inlined interfaces.
        nodes: key -> Node for every row.
        model_index: interface id -> root key. Covers every interface in the
            input, including those that only appear inlined.
        roots: Keys of the top-level interface rows.
        inlined_ids: Interface ids referenced by a component or relationship.
    """

    rows: List[Node] = field(default_factory=list)
    nodes: Dict[str, Node] = field(default_factory=dict)
    model_index: Dict[str, str] = field(default_factory=dict)
    roots: List[str] = field(default_factory=list)
    inlined_ids: Set[str] = field(default_factory=set)

    def get(self, key: str) -> Node | None:
        return self.nodes.get(key)

    def children(self, key: str) -> List[Node]:
        node = self.nodes.get(key)
        if node is None:
            return []
        return [self.nodes[k] for k in node.child_keys if k in self.nodes]

    def ancestors(self, key: str) -> List[Node]:
        """Ancestors of a row, nearest first."""
        result = []
        node = self.nodes.get(key)
        while node is not None and node.parent_key:
            node = self.nodes.get(node.parent_key)
            if node is not None:
                result.append(node)
        return result

    def property_path(self, key: str) -> str | None:
        """
        Component-qualified path of a property row, e.g. 'thermostat1/temperature'.

        Components between the owning model (an interface root or a
        relationship target) and the property become path segments.
        """
        node = self.nodes.get(key)
        if node is None or node.kind != NodeKind.PROPERTY:
            return None

        segments = [node.name]
        for ancestor in self.ancestors(key):
            if ancestor.kind == NodeKind.COMPONENT:
                segments.append(ancestor.name)
            else:
                break
        return "/".join(reversed(segments))

    def component_name(self, key: str) -> str | None:
        path = self.property_path(key)
        if path is None or "/" not in path:
            return None
        return path.rsplit("/", 1)[0]

    def owning_model_id(self, key: str) -> str | None:
        """Id of the model a twin must implement to carry this row's property."""
        for ancestor in self.ancestors(key):
            if ancestor.kind in (NodeKind.INTERFACE, NodeKind.RELATIONSHIP):
                return ancestor.source_id
        node = self.nodes.get(key)
        return node.source_id if node is not None and node.kind == NodeKind.INTERFACE else None


def interface_key(interface_id: str) -> str:
    return f"interface:{interface_id}"


def localized(value: Any) -> str | None:
    """Return a display string from a plain string or a DTDL language map."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, dict) and value:
        return value.get("en") or next(iter(value.values()))
    return str(value)


def content_kind(raw_type: Any) -> NodeKind | None:
    """Map a DTDL @type (string or list of co-types) to a NodeKind."""
    types = raw_type if isinstance(raw_type, list) else [raw_type]
    for t in types:
        if isinstance(t, str) and t.lower() in CONTENT_KINDS:
            return CONTENT_KINDS[t.lower()]
    return None


class ModelNormalizer:
    """
    Normalizer for DTDL model definitions.
    """

    def normalize(self, raw: Any) -> Result[ModelTree, NormalizeError]:
        """
        Normalize raw model JSON into a ModelTree.

        Never raises: malformed input is returned as Err(NormalizeError).
        """
        if raw is None:
            return Ok(ModelTree())

        try:
            interfaces = self._extract_interfaces(raw)
            tree = self._build(interfaces)
        except (TwinmapError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.error(f"Rejected model input: {e}")
            return Err(NormalizeError.invalid_input(str(e)))

        logger.debug(
            f"Normalized {len(interfaces)} interfaces into {len(tree.rows)} rows "
            f"({len(tree.roots)} top-level)"
        )
        return Ok(tree)

    # --- Phase 1: input shapes ---

    def _extract_interfaces(self, raw: Any) -> List[Dict[str, Any]]:
        if isinstance(raw, (str, bytes)):
            raw = json.loads(raw)

        # API responses hold the interfaces under 'value'; a single interface is allowed too
        if isinstance(raw, dict):
            if isinstance(raw.get("value"), list):
                raw = raw["value"]
            elif raw.get("@type") == "Interface" or isinstance(raw.get("model"), dict):
                raw = [raw]
            else:
                raise ValueError("expected an array of interfaces")

        if not isinstance(raw, list):
            raise ValueError("expected an array of interfaces")

        interfaces = []
        for item in raw:
            if not isinstance(item, dict):
                raise ValueError(f"unexpected entry {item!r}")
            # Model list API wraps each definition in {'model': {...}}
            definition = item["model"] if isinstance(item.get("model"), dict) else item
            if definition.get("@type") != "Interface":
                continue
            if not definition.get("@id"):
                raise ValueError("interface without @id")
            contents = definition.get("contents", [])
            if not isinstance(contents, list):
                raise ValueError(f"contents of {definition['@id']} must be an array")
            interfaces.append(definition)

        if raw and not interfaces:
            raise ValueError("no Interface definitions found")
        return interfaces

    # --- Phase 2: expansion ---

    def _build(self, interfaces: List[Dict[str, Any]]) -> ModelTree:
        by_id: Dict[str, Dict[str, Any]] = {}
        for definition in interfaces:
            by_id.setdefault(definition["@id"], definition)

        _check_reference_cycles(by_id)

        inlined_ids = {
            target
            for definition in by_id.values()
            for _, target in _references(definition)
            if target in by_id
        }
        top_level = [iid for iid in by_id if iid not in inlined_ids]

        # A lone top-level interface starts expanded; otherwise everything starts collapsed
        collapsed = len(top_level) != 1

        rows: List[Node] = []
        for iid in top_level:
            rows.extend(self._expand_interface(by_id, iid, collapsed))

        return ModelTree(
            rows=rows,
            nodes=index_nodes(rows),
            model_index={iid: interface_key(iid) for iid in by_id},
            roots=[interface_key(iid) for iid in top_level],
            inlined_ids=inlined_ids,
        )

    def _expand_interface(self, by_id: Dict[str, Dict[str, Any]], iid: str, collapsed: bool) -> List[Node]:
        definition = by_id[iid]
        key = interface_key(iid)
        subtree = self._expand_contents(
            by_id, definition, key, depth=1, namespace=(iid,), hidden=collapsed, collapsed=collapsed
        )
        root = Node(
            key=key,
            source_id=iid,
            kind=NodeKind.INTERFACE,
            name=iid,
            display_name=localized(definition.get("displayName")),
            child_keys=tuple(n.key for n in subtree if n.parent_key == key),
            depth=0,
            collapsed=collapsed if subtree else False,
            model_id=iid,
        )
        return [root, *subtree]

    def _expand_contents(
        self,
        by_id: Dict[str, Dict[str, Any]],
        definition: Dict[str, Any],
        parent_key: str,
        depth: int,
        namespace: Tuple[str, ...],
        hidden: bool,
        collapsed: bool,
    ) -> List[Node]:
        """Return the pre-order rows for the contents of one interface."""
        if depth > MAX_MODEL_DEPTH:
            raise ModelCycleError(f"model nesting exceeds {MAX_MODEL_DEPTH} levels under {parent_key}")

        rows: List[Node] = []
        owner = definition.get("@id")
        for index, content in enumerate(definition.get("contents", [])):
            if not isinstance(content, dict):
                raise ValueError(f"unexpected content {content!r} in {owner}")

            kind = content_kind(content.get("@type"))
            if kind is None:
                # Telemetry and Command contents are not mappable targets
                continue

            name = content.get("name") or content.get("@id") or str(index)
            key = f"{parent_key}/{name}"
            base = dict(
                key=key,
                source_id=content.get("@id"),
                kind=kind,
                name=name,
                display_name=localized(content.get("displayName")),
                parent_key=parent_key,
                depth=depth,
                namespace=namespace,
                hidden=hidden,
                model_id=owner,
            )

            if kind == NodeKind.PROPERTY:
                if "schema" not in content:
                    raise ValueError(f"property '{name}' of {owner} has no schema")
                rows.append(Node(descriptor=resolve_schema(content["schema"], name), **base))
                continue

            rows.extend(
                self._inline(by_id, base, reference_target(kind, content), depth, namespace, hidden, collapsed)
            )
        return rows

    def _inline(
        self,
        by_id: Dict[str, Dict[str, Any]],
        base: Dict[str, Any],
        target: Any,
        depth: int,
        namespace: Tuple[str, ...],
        hidden: bool,
        collapsed: bool,
    ) -> List[Node]:
        """Replace a component/relationship row with the subtree of the interface it references."""
        if isinstance(target, dict) and target.get("@type") == "Interface":
            # Component schema declared inline rather than by id
            referenced, target = target, target.get("@id")
        elif isinstance(target, str):
            referenced = by_id.get(target)
        else:
            # Relationships may omit a target
            return [Node(**base)]

        if referenced is None:
            logger.warning(f"Unresolved {base['kind']} '{base['name']}' -> {target}")
            return [Node(target=target, **{**base, "source_id": target}, unresolved=True)]

        key = base["key"]
        subtree = self._expand_contents(
            by_id,
            referenced,
            key,
            depth=depth + 1,
            namespace=(*namespace, base["name"]),
            hidden=hidden or collapsed,
            collapsed=collapsed,
        )
        display_name = base["display_name"] or localized(referenced.get("displayName"))
        node = Node(
            **{**base, "source_id": target, "display_name": display_name},
            target=target,
            child_keys=tuple(n.key for n in subtree if n.parent_key == key),
            collapsed=collapsed if subtree else False,
        )
        return [node, *subtree]


def reference_target(kind: NodeKind, content: Dict[str, Any]) -> Any:
    """Interface id an inlined content points at: a Component's schema or a Relationship's target."""
    return content.get("schema") if kind == NodeKind.COMPONENT else content.get("target")


def _references(definition: Dict[str, Any]) -> List[Tuple[NodeKind, Any]]:
    refs = []
    for content in definition.get("contents", []):
        if not isinstance(content, dict):
            continue
        kind = content_kind(content.get("@type"))
        if kind in INLINED_KINDS:
            refs.append((kind, reference_target(kind, content)))
    return [(k, t) for k, t in refs if isinstance(t, str)]


def _check_reference_cycles(by_id: Dict[str, Dict[str, Any]]) -> None:
    """
    Reject interfaces that inline themselves, directly or through other interfaces.

    Iterative DFS over the component/relationship reference graph.
    """
    state: Dict[str, int] = {}  # 1 = on stack, 2 = done
    for start in by_id:
        if state.get(start):
            continue
        stack = [(start, iter(_references(by_id[start])))]
        path = [start]
        state[start] = 1
        while stack:
            current, refs = stack[-1]
            advanced = False
            for _, target in refs:
                if target not in by_id:
                    continue
                if state.get(target) == 1:
                    cycle = path[path.index(target):] + [target]
                    raise ModelCycleError("reference cycle " + " -> ".join(cycle))
                if not state.get(target):
                    state[target] = 1
                    path.append(target)
                    stack.append((target, iter(_references(by_id[target]))))
                    advanced = True
                    break
            if not advanced:
                state[current] = 2
                path.pop()
                stack.pop()


def normalize_models(raw: Any) -> Result[ModelTree, NormalizeError]:
    """Convenience wrapper around ModelNormalizer."""
    return ModelNormalizer().normalize(raw)


__all__ = ["ModelNormalizer", "ModelTree", "normalize_models", "interface_key", "localized"]
