"""
Read query execution.

The executor runs query text as given: it does not parse or restrict it.
Read-only intent is the responsibility of whoever produced the query.
Rows are returned eagerly as plain Python values (graph nodes and edges
become property dicts, temporal values ISO-8601 strings).
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

from neo4j.graph import Node, Path, Relationship
from neo4j.time import Date, DateTime, Duration, Time

logger = logging.getLogger(__name__)


class QueryRunner(Protocol):
    """Anything that can run a query once and return rows (e.g. Neo4jManager)."""

    def read(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        ...


def to_plain(value: Any) -> Any:
    """Convert driver values into primitives, lists and dicts."""
    if isinstance(value, Node):
        plain = {key: to_plain(v) for key, v in value.items()}
        plain["_labels"] = sorted(value.labels)
        return plain
    if isinstance(value, Relationship):
        plain = {key: to_plain(v) for key, v in value.items()}
        plain["_type"] = value.type
        return plain
    if isinstance(value, Path):
        return [to_plain(node) for node in value.nodes]
    if isinstance(value, (DateTime, Date, Time, Duration)):
        return value.iso_format()
    if isinstance(value, dict):
        return {key: to_plain(v) for key, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class QueryExecutor:
    """
    Runs read queries and returns all rows.

    Failures propagate unchanged and are not retried:
    - StoreUnavailable: store unreachable
    - QueryError: query rejected (store diagnostic in ``diagnostic``)
    """

    def __init__(self, runner: QueryRunner):
        self.runner = runner

    def execute(
        self, query_text: str, parameters: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        records = self.runner.read(query_text, parameters or {})
        rows = [{column: to_plain(value) for column, value in record.items()} for record in records]
        logger.info(f"Query returned {len(rows)} rows")
        return rows
