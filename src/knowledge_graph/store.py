"""
Graph store abstraction used by the materializer and resolver.

A batch talks to the store through one GraphTransaction:
- find_by_key / create_entity / update_entity for entity upserts
- create_edge for directed, typed edges

Entity writes and edge writes are separate operations; an entity record
never holds its own edge list.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from .models import EntityKind, EntityRef
from .relationship_types import RelationshipSpec

logger = logging.getLogger(__name__)


class GraphTransaction(ABC):
    """Operations available inside one batch transaction."""

    @abstractmethod
    def find_by_key(self, kind: EntityKind, key: str) -> List[str]:
        """
        Handles of records of ``kind`` whose dedup key equals ``key`` exactly.

        Ordered by handle so callers can pick the first deterministically.
        """

    @abstractmethod
    def create_entity(self, kind: EntityKind, attributes: Dict[str, Any], created_at: datetime) -> str:
        """Insert a new record and return its persisted handle."""

    @abstractmethod
    def update_entity(
        self, kind: EntityKind, handle: str, attributes: Dict[str, Any], updated_at: datetime
    ) -> None:
        """Overwrite the given attributes on an existing record; others stay as they are."""

    @abstractmethod
    def create_edge(
        self,
        spec: RelationshipSpec,
        source: EntityRef,
        target: EntityRef,
        created_at: datetime,
        evidence: Optional[str] = None,
    ) -> None:
        """Create a directed edge of ``spec.edge_type`` from source to target."""


class GraphStore(ABC):
    """Base class for graph storage backends."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[GraphTransaction]:
        """
        Yield a transaction that commits on normal exit and rolls back
        when the block raises. Nothing written inside is visible to
        readers until commit.
        """

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create uniqueness constraints on dedup keys (idempotent)."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every node and edge."""

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Node/edge counts per label/type."""

    def close(self) -> None:
        """Release store resources."""


def create_graph_store(config) -> GraphStore:
    """
    Factory function to create a graph store from KnowledgeGraphConfig.

    Raises:
        ConfigurationError: If the neo4j backend is selected without neo4j config
    """
    from .config import GraphBackend
    from .exceptions import ConfigurationError

    if config.backend == GraphBackend.MEMORY:
        from .memory_store import InMemoryGraphStore

        return InMemoryGraphStore()

    if config.backend == GraphBackend.NEO4J:
        if config.neo4j is None:
            raise ConfigurationError("neo4j config required when backend is neo4j")
        from .neo4j_store import Neo4jGraphStore

        return Neo4jGraphStore(config.neo4j)

    raise ConfigurationError(f"Unsupported backend: {config.backend}")
