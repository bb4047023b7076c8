"""
Graph materialization of extraction batches.

A batch is written in one store transaction, in this order:
1. the article (always a new node)
2. people, organisations, locations (dedup by name)
3. events, knowledge (always new nodes)
4. relationships, with ephemeral ids rewritten to persisted handles

Relationships are filtered, never raised on:
- an endpoint id missing from the batch → dropped (unresolved)
- endpoint kinds not matching the typing table → dropped (type mismatch)

Store failures (StoreUnavailable, QueryError) abort the batch; the
transaction rolls back so nothing from the batch becomes visible.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .exceptions import GraphStoreError
from .models import (
    CandidateRelationship,
    ExtractionBatch,
    IdentifierMap,
    MaterializationStats,
)
from .relationship_types import get_relationship_spec
from .resolver import IdentityResolver
from .store import GraphStore, GraphTransaction

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GraphMaterializer:
    """
    Persists extraction batches into a graph store.

    Example:
        materializer = GraphMaterializer(InMemoryGraphStore())
        stats = materializer.materialize(ExtractionBatch.from_dict(payload))
        print(stats.edges_created, stats.relationships_dropped)
    """

    def __init__(
        self,
        store: GraphStore,
        resolver: Optional[IdentityResolver] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.resolver = resolver or IdentityResolver()
        self.clock = clock

    def materialize(self, batch: ExtractionBatch) -> MaterializationStats:
        """
        Materialize one batch as a single transaction.

        Returns:
            MaterializationStats with created/updated/dropped counts

        Raises:
            StoreUnavailable: Store unreachable; nothing from the batch is committed
            QueryError: Store rejected a statement; nothing from the batch is committed
        """
        now = self.clock()
        stats = MaterializationStats()
        identifiers = IdentifierMap()

        try:
            with self.store.transaction() as tx:
                self._resolve_entities(tx, batch, identifiers, stats, now)
                for relationship in batch.relationships:
                    self._materialize_relationship(tx, relationship, identifiers, stats, now)
        except GraphStoreError as e:
            logger.error(f"Batch for article '{batch.article.title}' rolled back: {e}")
            raise

        logger.info(
            f"Materialized article '{batch.article.title}': "
            f"{stats.entities_created} entities created, "
            f"{stats.entities_updated} updated, "
            f"{stats.edges_created} edges, "
            f"dropped {stats.dropped_unresolved} unresolved / "
            f"{stats.dropped_type_mismatch} mistyped relationships"
        )
        return stats

    def _resolve_entities(
        self,
        tx: GraphTransaction,
        batch: ExtractionBatch,
        identifiers: IdentifierMap,
        stats: MaterializationStats,
        now: datetime,
    ) -> None:
        for candidate in batch.candidates():
            resolution = self.resolver.resolve(tx, candidate, now)
            identifiers.record(candidate.id, resolution.ref)

            if resolution.created:
                stats.entities_created += 1
            else:
                stats.entities_updated += 1

            if candidate is batch.article:
                stats.article_handle = resolution.ref.handle

    def _materialize_relationship(
        self,
        tx: GraphTransaction,
        relationship: CandidateRelationship,
        identifiers: IdentifierMap,
        stats: MaterializationStats,
        now: datetime,
    ) -> None:
        source = identifiers.resolve(relationship.start_id)
        target = identifiers.resolve(relationship.end_id)
        if source is None or target is None:
            stats.dropped_unresolved += 1
            logger.debug(
                f"Dropped {relationship.kind.value} {relationship.start_id} -> "
                f"{relationship.end_id}: endpoint not in batch"
            )
            return

        spec = get_relationship_spec(relationship.kind)
        if not spec.accepts(source.kind, target.kind):
            stats.dropped_type_mismatch += 1
            logger.debug(
                f"Dropped {relationship.kind.value} {relationship.start_id} -> "
                f"{relationship.end_id}: expected {spec.source_kind.value} -> "
                f"{spec.target_kind.value}, got {source.kind.value} -> {target.kind.value}"
            )
            return

        evidence = relationship.evidence if spec.carries_evidence else None
        tx.create_edge(spec, source, target, now, evidence=evidence)
        stats.edges_created += 1
