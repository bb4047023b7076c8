"""
In-process graph store for development and tests.

Writes are staged on the transaction and applied to the committed graph
only on commit; a failed block discards the staged writes. Transactions
are serialized by a store-wide lock.
"""

import copy
import itertools
import json
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .models import EntityKind, EntityRef
from .relationship_types import RelationshipSpec
from .store import GraphStore, GraphTransaction

logger = logging.getLogger(__name__)


@dataclass
class StoredNode:
    handle: str
    kind: EntityKind
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"handle": self.handle, "kind": self.kind.value, "properties": self.properties}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredNode":
        return cls(
            handle=data["handle"],
            kind=EntityKind(data["kind"]),
            properties=dict(data.get("properties", {})),
        )


@dataclass
class StoredEdge:
    edge_type: str
    source: str  # source node handle
    target: str  # target node handle
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.edge_type,
            "source": self.source,
            "target": self.target,
            "properties": self.properties,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredEdge":
        return cls(
            edge_type=data["type"],
            source=data["source"],
            target=data["target"],
            properties=dict(data.get("properties", {})),
        )


class InMemoryTransaction(GraphTransaction):
    """Staged writes over the committed graph of an InMemoryGraphStore."""

    def __init__(self, store: "InMemoryGraphStore"):
        self.store = store
        self.new_nodes: Dict[str, StoredNode] = {}
        self.updates: Dict[str, Dict[str, Any]] = {}
        self.new_edges: List[StoredEdge] = []

    def _node(self, handle: str) -> Optional[StoredNode]:
        return self.new_nodes.get(handle) or self.store.nodes.get(handle)

    def find_by_key(self, kind: EntityKind, key: str) -> List[str]:
        handles = set(self.store.handles_by_key.get((kind, key), ()))
        for node in self.new_nodes.values():
            if node.kind is kind and node.properties.get("name") == key:
                handles.add(node.handle)
        return sorted(handles)

    def create_entity(self, kind: EntityKind, attributes: Dict[str, Any], created_at: datetime) -> str:
        handle = self.store.next_handle(kind)
        properties = copy.deepcopy(attributes)
        properties["createdAt"] = created_at
        self.new_nodes[handle] = StoredNode(handle=handle, kind=kind, properties=properties)
        return handle

    def update_entity(
        self, kind: EntityKind, handle: str, attributes: Dict[str, Any], updated_at: datetime
    ) -> None:
        node = self._node(handle)
        if node is None or node.kind is not kind:
            raise KeyError(f"No {kind.value} with handle {handle}")
        attributes = copy.deepcopy(attributes)
        if handle in self.new_nodes:
            node.properties.update(attributes)
            node.properties["updatedAt"] = updated_at
            return
        staged = self.updates.setdefault(handle, {})
        staged.update(attributes)
        staged["updatedAt"] = updated_at

    def create_edge(
        self,
        spec: RelationshipSpec,
        source: EntityRef,
        target: EntityRef,
        created_at: datetime,
        evidence: Optional[str] = None,
    ) -> None:
        for ref in (source, target):
            if self._node(ref.handle) is None:
                raise KeyError(f"No node with handle {ref.handle}")
        properties: Dict[str, Any] = {"createdAt": created_at}
        if spec.carries_evidence and evidence is not None:
            properties["evidence"] = evidence
        self.new_edges.append(
            StoredEdge(
                edge_type=spec.edge_type,
                source=source.handle,
                target=target.handle,
                properties=properties,
            )
        )


class InMemoryGraphStore(GraphStore):
    """
    Transactional in-memory graph.

    Example:
        store = InMemoryGraphStore()
        with store.transaction() as tx:
            handle = tx.create_entity(EntityKind.PERSON, {"name": "Ada"}, now)
        store.nodes_of_kind(EntityKind.PERSON)
    """

    def __init__(self):
        self.nodes: Dict[str, StoredNode] = {}
        self.edges: List[StoredEdge] = []

        # Index for dedup lookups: (kind, name) -> handles
        self.handles_by_key: Dict[Tuple[EntityKind, str], Set[str]] = {}

        self._lock = threading.RLock()
        self._counter = itertools.count(1)

        logger.info("Initialized InMemoryGraphStore")

    def next_handle(self, kind: EntityKind) -> str:
        return f"{kind.value.lower()}-{next(self._counter):06d}"

    def _new_transaction(self) -> InMemoryTransaction:
        return InMemoryTransaction(self)

    @contextmanager
    def transaction(self) -> Iterator[InMemoryTransaction]:
        with self._lock:
            tx = self._new_transaction()
            try:
                yield tx
            except BaseException:
                logger.debug(
                    f"Rolling back: discarding {len(tx.new_nodes)} nodes, "
                    f"{len(tx.updates)} updates, {len(tx.new_edges)} edges"
                )
                raise
            self._commit(tx)

    def _commit(self, tx: InMemoryTransaction) -> None:
        for node in tx.new_nodes.values():
            self.nodes[node.handle] = node
            self._index(node)
        for handle, attributes in tx.updates.items():
            self.nodes[handle].properties.update(attributes)
        self.edges.extend(tx.new_edges)

    def _index(self, node: StoredNode) -> None:
        if node.kind.has_dedup_key and node.properties.get("name") is not None:
            self.handles_by_key.setdefault((node.kind, node.properties["name"]), set()).add(
                node.handle
            )

    def ensure_schema(self) -> None:
        """No-op: the resolver's lookup is the only dedup guard here."""

    def clear(self) -> None:
        with self._lock:
            self.nodes.clear()
            self.edges.clear()
            self.handles_by_key.clear()
        logger.info("Cleared in-memory graph")

    # ==================== READ HELPERS ====================
    # Readers take the store lock so they never observe a half-applied commit

    def get_node(self, handle: str) -> Optional[StoredNode]:
        with self._lock:
            return self.nodes.get(handle)

    def nodes_of_kind(self, kind: EntityKind) -> List[StoredNode]:
        with self._lock:
            return [node for node in self.nodes.values() if node.kind is kind]

    def edges_of_type(self, edge_type: str) -> List[StoredEdge]:
        with self._lock:
            return [edge for edge in self.edges if edge.edge_type == edge_type]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            node_counts: Dict[str, int] = {}
            for node in self.nodes.values():
                node_counts[node.kind.value] = node_counts.get(node.kind.value, 0) + 1

            edge_counts: Dict[str, int] = {}
            for edge in self.edges:
                edge_counts[edge.edge_type] = edge_counts.get(edge.edge_type, 0) + 1

            return {
                "total_nodes": len(self.nodes),
                "total_edges": len(self.edges),
                "node_counts": node_counts,
                "edge_counts": edge_counts,
            }

    # ==================== JSON EXPORT ====================

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the committed graph (detached copies, safe to mutate)."""
        with self._lock:
            return copy.deepcopy(
                {
                    "nodes": [node.to_dict() for node in self.nodes.values()],
                    "edges": [edge.to_dict() for edge in self.edges],
                    "stats": self.get_stats(),
                }
            )

    def save_json(self, output_path: str) -> None:
        """Save graph to JSON file (temporal values as ISO-8601 strings)."""
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False, default=_json_default)
        logger.info(f"Saved graph to {output_path}")

    @classmethod
    def load_json(cls, input_path: str) -> "InMemoryGraphStore":
        """Load a graph saved with save_json. Temporal values stay as strings."""
        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        store = cls()
        for item in data.get("nodes", []):
            node = StoredNode.from_dict(item)
            store.nodes[node.handle] = node
            store._index(node)
        store.edges = [StoredEdge.from_dict(item) for item in data.get("edges", [])]

        # Continue numbering after the highest loaded handle
        highest = max(
            (int(handle.rsplit("-", 1)[-1]) for handle in store.nodes if handle[-1:].isdigit()),
            default=0,
        )
        store._counter = itertools.count(highest + 1)
        return store


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
