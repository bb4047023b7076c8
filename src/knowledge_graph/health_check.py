"""
Health check utility for graph store connectivity.

Useful for startup validation and monitoring.
"""

import logging
from typing import Any, Dict

from .config import Neo4jConfig
from .exceptions import GraphStoreError
from .neo4j_manager import Neo4jManager

logger = logging.getLogger(__name__)


def check_neo4j_health(config: Neo4jConfig) -> Dict[str, Any]:
    """
    Open a temporary connection and check the store.

    Returns:
        Dict with keys:
        - connected: bool - Can reach Neo4j server
        - can_query: bool - Round-trip query succeeded
        - node_count: int or None
        - response_time_ms: float - Health check duration
        - error: str or None - Error message if failed
        - warnings: List[str] - Non-critical issues

    Example:
        status = check_neo4j_health(Neo4jConfig.from_env())
        if not status["connected"]:
            print(f"Neo4j unhealthy: {status['error']}")
    """
    status = {
        "connected": False,
        "can_query": False,
        "node_count": None,
        "response_time_ms": 0.0,
        "error": None,
        "warnings": [],
    }

    manager = None

    try:
        # Creating the manager verifies connectivity
        manager = Neo4jManager(config)
        health = manager.health_check()

        status["connected"] = health.get("connected", False)
        status["can_query"] = health.get("can_query", False)
        status["node_count"] = health.get("node_count")
        status["response_time_ms"] = health.get("response_time_ms", 0.0)

        if not health.get("healthy", False):
            status["error"] = health.get("error") or "Unknown health check failure"

        if status["response_time_ms"] > 1000:
            status["warnings"].append(
                f"Slow response time: {status['response_time_ms']:.0f}ms (expected <1000ms)"
            )

        logger.info(f"Health check completed: {status}")

    except GraphStoreError as e:
        status["error"] = str(e)
        logger.error(f"Health check failed: {e}")

    finally:
        if manager:
            manager.close()

    return status
