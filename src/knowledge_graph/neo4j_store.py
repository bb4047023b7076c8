"""
Neo4j-backed graph store.

Each entity kind is a node label (Person, Organisation, ...), each
relationship kind an edge type (MENTIONS_PERSON, ...). Persisted handles
are Neo4j element ids. Dedup lookups match on the ``name`` property.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from .config import Neo4jConfig
from .models import DEDUP_KINDS, EntityKind, EntityRef
from .neo4j_manager import Neo4jManager
from .relationship_types import RelationshipSpec
from .store import GraphStore, GraphTransaction

logger = logging.getLogger(__name__)


class Neo4jTransaction(GraphTransaction):
    """GraphTransaction over an open Neo4j explicit transaction."""

    def __init__(self, manager: Neo4jManager, tx):
        self.manager = manager
        self.tx = tx

    def find_by_key(self, kind: EntityKind, key: str) -> List[str]:
        rows = self.manager.run(
            self.tx,
            f"MATCH (n:{kind.label} {{name: $key}}) "
            "RETURN elementId(n) AS handle ORDER BY handle",
            {"key": key},
        )
        return [row["handle"] for row in rows]

    def create_entity(self, kind: EntityKind, attributes: Dict[str, Any], created_at: datetime) -> str:
        rows = self.manager.run(
            self.tx,
            f"CREATE (n:{kind.label}) SET n = $props, n.createdAt = $created_at "
            "RETURN elementId(n) AS handle",
            {"props": attributes, "created_at": created_at},
        )
        return rows[0]["handle"]

    def update_entity(
        self, kind: EntityKind, handle: str, attributes: Dict[str, Any], updated_at: datetime
    ) -> None:
        self.manager.run(
            self.tx,
            f"MATCH (n:{kind.label}) WHERE elementId(n) = $handle "
            "SET n += $props, n.updatedAt = $updated_at",
            {"handle": handle, "props": attributes, "updated_at": updated_at},
        )

    def create_edge(
        self,
        spec: RelationshipSpec,
        source: EntityRef,
        target: EntityRef,
        created_at: datetime,
        evidence: Optional[str] = None,
    ) -> None:
        props: Dict[str, Any] = {"createdAt": created_at}
        if spec.carries_evidence and evidence is not None:
            props["evidence"] = evidence

        self.manager.run(
            self.tx,
            f"MATCH (a:{spec.source_kind.label}) WHERE elementId(a) = $source "
            f"MATCH (b:{spec.target_kind.label}) WHERE elementId(b) = $target "
            f"CREATE (a)-[r:{spec.edge_type}]->(b) SET r = $props",
            {"source": source.handle, "target": target.handle, "props": props},
        )


class Neo4jGraphStore(GraphStore):
    """
    Graph store on a Neo4j database.

    Example:
        store = Neo4jGraphStore(Neo4jConfig.from_env())
        store.ensure_schema()
        with store.transaction() as tx:
            ...
        store.close()
    """

    def __init__(self, config: Neo4jConfig, manager: Optional[Neo4jManager] = None):
        self.config = config
        self.manager = manager or Neo4jManager(config)

        if config.create_constraints:
            self.ensure_schema()

        logger.info("Initialized Neo4jGraphStore")

    @contextmanager
    def transaction(self) -> Iterator[Neo4jTransaction]:
        with self.manager.transaction() as tx:
            yield Neo4jTransaction(self.manager, tx)

    def ensure_schema(self) -> None:
        """Create uniqueness constraints on name for the dedup-keyed labels."""
        for kind in sorted(DEDUP_KINDS, key=lambda k: k.value):
            self.manager.execute(
                f"CREATE CONSTRAINT {kind.value.lower()}_name_unique IF NOT EXISTS "
                f"FOR (n:{kind.label}) REQUIRE n.name IS UNIQUE"
            )
        logger.info("Ensured uniqueness constraints on dedup keys")

    def clear(self) -> None:
        self.manager.execute("MATCH (n) DETACH DELETE n")
        logger.warning("Deleted all nodes and edges")

    def get_stats(self) -> Dict[str, Any]:
        node_rows = self.manager.execute(
            "MATCH (n) UNWIND labels(n) AS label RETURN label, COUNT(*) AS count"
        )
        edge_rows = self.manager.execute(
            "MATCH ()-[r]->() RETURN type(r) AS type, COUNT(*) AS count"
        )
        node_counts = {row["label"]: row["count"] for row in node_rows}
        edge_counts = {row["type"]: row["count"] for row in edge_rows}
        return {
            "total_nodes": sum(node_counts.values()),
            "total_edges": sum(edge_counts.values()),
            "node_counts": node_counts,
            "edge_counts": edge_counts,
        }

    def close(self) -> None:
        if self.manager:
            self.manager.close()
