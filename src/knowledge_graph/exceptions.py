"""
Exception hierarchy for the knowledge graph core.

Exception Hierarchy:
    KnowledgeGraphError (base)
    ├── ConfigurationError
    ├── ExtractionFormatError
    ├── GraphStoreError
    │   ├── StoreUnavailable → StoreAuthenticationError
    │   └── QueryError → QueryTimeoutError
    └── ReasoningError

Structural and connectivity failures (StoreUnavailable, QueryError) propagate
to the caller and abort the batch or query. Extraction noise (unresolved or
mistyped relationships) is never raised: the materializer drops and counts it.
"""

from typing import Any, Dict, Optional


class KnowledgeGraphError(Exception):
    """Base exception for all knowledge graph errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {type(self.cause).__name__}: {self.cause})"
        return self.message


class ConfigurationError(KnowledgeGraphError):
    """Invalid or incomplete configuration."""

    pass


class ExtractionFormatError(KnowledgeGraphError):
    """
    Extractor payload cannot be turned into a batch.

    Raised for structural problems only (no article, wrong container types).
    Unknown relationship kinds inside a valid payload are skipped instead.
    """

    pass


class GraphStoreError(KnowledgeGraphError):
    """Base exception for graph store failures."""

    pass


class StoreUnavailable(GraphStoreError):
    """
    Transport or connectivity failure talking to the graph store.

    Fatal for the current batch or query. Not retried automatically; the
    surrounding transaction is rolled back before this propagates.
    """

    pass


class StoreAuthenticationError(StoreUnavailable):
    """
    Authentication failed (invalid credentials).

    Check NEO4J_USERNAME and NEO4J_PASSWORD.
    """

    pass


class QueryError(GraphStoreError):
    """
    The store rejected a query as malformed.

    The store's diagnostic message is kept verbatim in ``diagnostic``.
    Permanent: never retried.
    """

    def __init__(
        self,
        message: str,
        diagnostic: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, details=details, cause=cause)
        self.diagnostic = diagnostic if diagnostic is not None else message


class QueryTimeoutError(QueryError):
    """Query execution exceeded the store's timeout."""

    pass


class ReasoningError(KnowledgeGraphError):
    """The external reasoning capability failed to produce an analysis."""

    pass
