"""
Article knowledge graph.

Write path: extraction batches are materialized into a typed property
graph (Person, Organisation, Location, Event, Knowledge, Article) with
name-based dedup for people, organisations and locations.

Read path: a query is executed against the graph and its rows are
assembled into an insight report.

Usage:
    from src.knowledge_graph import (
        ExtractionBatch, GraphMaterializer, KnowledgeGraphConfig, create_graph_store,
    )

    config = KnowledgeGraphConfig.from_env()
    store = create_graph_store(config)
    stats = GraphMaterializer(store).materialize(ExtractionBatch.from_dict(payload))
"""

from .config import GraphBackend, KnowledgeGraphConfig, Neo4jConfig, ReasoningConfig
from .exceptions import (
    ConfigurationError,
    ExtractionFormatError,
    GraphStoreError,
    KnowledgeGraphError,
    QueryError,
    QueryTimeoutError,
    ReasoningError,
    StoreAuthenticationError,
    StoreUnavailable,
)
from .insight import CypherQuery, InsightAssembler, InsightReport, row_key_findings
from .materializer import GraphMaterializer
from .memory_store import InMemoryGraphStore
from .models import (
    ArticleCandidate,
    CandidateRelationship,
    EntityKind,
    EntityRef,
    EventCandidate,
    ExtractionBatch,
    IdentifierMap,
    KnowledgeCandidate,
    LocationCandidate,
    MaterializationStats,
    OrganisationCandidate,
    PersonCandidate,
    RelationshipKind,
)
from .query_executor import QueryExecutor
from .read_pipeline import GraphQuestionAnswerer, QueryGenerator, clean_generated_query
from .reasoning import ClaudeReasoningProvider, ReasoningProvider
from .relationship_types import RELATIONSHIP_TYPES, RelationshipSpec
from .resolver import IdentityResolver, Resolution
from .store import GraphStore, GraphTransaction, create_graph_store

__all__ = [
    # Config
    "GraphBackend",
    "KnowledgeGraphConfig",
    "Neo4jConfig",
    "ReasoningConfig",
    # Errors
    "KnowledgeGraphError",
    "ConfigurationError",
    "ExtractionFormatError",
    "GraphStoreError",
    "StoreUnavailable",
    "StoreAuthenticationError",
    "QueryError",
    "QueryTimeoutError",
    "ReasoningError",
    # Models
    "EntityKind",
    "RelationshipKind",
    "ArticleCandidate",
    "PersonCandidate",
    "OrganisationCandidate",
    "LocationCandidate",
    "EventCandidate",
    "KnowledgeCandidate",
    "CandidateRelationship",
    "ExtractionBatch",
    "EntityRef",
    "IdentifierMap",
    "MaterializationStats",
    "RelationshipSpec",
    "RELATIONSHIP_TYPES",
    # Write path
    "GraphStore",
    "GraphTransaction",
    "InMemoryGraphStore",
    "create_graph_store",
    "IdentityResolver",
    "Resolution",
    "GraphMaterializer",
    # Read path
    "QueryExecutor",
    "CypherQuery",
    "InsightAssembler",
    "InsightReport",
    "row_key_findings",
    "ReasoningProvider",
    "ClaudeReasoningProvider",
    "QueryGenerator",
    "GraphQuestionAnswerer",
    "clean_generated_query",
]
