"""
Command-line interface for the knowledge graph.

Usage:
    python -m src.knowledge_graph materialize batch.json [--graph-file graph.json]
    python -m src.knowledge_graph query "MATCH (p:Person) RETURN p.name AS name" \
        [--params '{"limit": 5}'] [--question "Who is in the graph?"] [--markdown]
    python -m src.knowledge_graph canned articles-mentioning "Ada Lovelace"
    python -m src.knowledge_graph init-schema
    python -m src.knowledge_graph health
    python -m src.knowledge_graph stats
    python -m src.knowledge_graph clear --yes

The backend (neo4j or memory) comes from KG_BACKEND or --config.
The memory backend keeps its graph in --graph-file between runs.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from src.utils.logger import setup_logger

from .canned_queries import CANNED_QUERIES, CannedQueries
from .config import GraphBackend, KnowledgeGraphConfig, Neo4jConfig
from .exceptions import ConfigurationError, ExtractionFormatError, KnowledgeGraphError
from .health_check import check_neo4j_health
from .insight import CypherQuery, InsightAssembler
from .materializer import GraphMaterializer
from .memory_store import InMemoryGraphStore
from .models import ExtractionBatch
from .neo4j_manager import Neo4jManager
from .query_executor import QueryExecutor
from .read_pipeline import clean_generated_query
from .reasoning import create_reasoning_provider
from .store import GraphStore, create_graph_store

logger = logging.getLogger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _load_config(args: argparse.Namespace) -> KnowledgeGraphConfig:
    config = KnowledgeGraphConfig.from_yaml(args.config) if args.config else KnowledgeGraphConfig.from_env()
    if args.backend:
        config.backend = GraphBackend(args.backend)
        if config.backend == GraphBackend.NEO4J and config.neo4j is None:
            config.neo4j = Neo4jConfig.from_env()
    if args.log_level:
        config.log_level = args.log_level
    return config


def _open_store(config: KnowledgeGraphConfig, graph_file: Optional[str]) -> GraphStore:
    if config.backend == GraphBackend.MEMORY and graph_file and Path(graph_file).exists():
        return InMemoryGraphStore.load_json(graph_file)
    return create_graph_store(config)


def _save_store(store: GraphStore, graph_file: Optional[str]) -> None:
    if isinstance(store, InMemoryGraphStore) and graph_file:
        store.save_json(graph_file)


def _require_neo4j(config: KnowledgeGraphConfig, command: str) -> None:
    if config.backend != GraphBackend.NEO4J or config.neo4j is None:
        raise ConfigurationError(f"'{command}' needs the neo4j backend (set KG_BACKEND=neo4j)")


# ==================== COMMANDS ====================


def cmd_materialize(args: argparse.Namespace, config: KnowledgeGraphConfig) -> int:
    try:
        with open(args.batch, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ExtractionFormatError(f"Cannot read batch file {args.batch}", cause=e) from e

    batches = payload if isinstance(payload, list) else [payload]

    results = []
    store = _open_store(config, args.graph_file)
    try:
        materializer = GraphMaterializer(store)
        for index, item in enumerate(batches, start=1):
            try:
                stats = materializer.materialize(ExtractionBatch.from_dict(item))
            except KnowledgeGraphError:
                logger.error(
                    f"Batch {index}/{len(batches)} failed; "
                    f"{len(results)} earlier batches stay committed"
                )
                raise
            # Each batch is its own transaction, so persist it as soon as it commits
            _save_store(store, args.graph_file)
            results.append(stats.to_dict())
    finally:
        store.close()

    _print_json(results if len(results) != 1 else results[0])
    return 0


def cmd_query(args: argparse.Namespace, config: KnowledgeGraphConfig) -> int:
    _require_neo4j(config, "query")

    try:
        params = json.loads(args.params) if args.params else {}
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"--params is not valid JSON: {e}", cause=e) from e

    query = CypherQuery(cypher=clean_generated_query(args.cypher), parameters=params)

    with Neo4jManager(config.neo4j) as manager:
        executor = QueryExecutor(manager)

        if not args.question:
            _print_json(executor.execute(query.cypher, query.parameters))
            return 0

        config.validate()
        assembler = InsightAssembler(
            create_reasoning_provider(config.reasoning),
            max_key_findings=config.max_key_findings,
        )
        rows = executor.execute(query.cypher, query.parameters)
        report = assembler.assemble(args.question, query, rows)

    if args.markdown:
        print(report.to_markdown())
    else:
        _print_json(report.to_dict())
    return 0


def cmd_canned(args: argparse.Namespace, config: KnowledgeGraphConfig) -> int:
    _require_neo4j(config, "canned")
    with Neo4jManager(config.neo4j) as manager:
        rows = CannedQueries(QueryExecutor(manager)).run(args.name, args.person)
    _print_json(rows)
    return 0


def cmd_init_schema(args: argparse.Namespace, config: KnowledgeGraphConfig) -> int:
    store = _open_store(config, None)
    try:
        store.ensure_schema()
    finally:
        store.close()
    print("Schema ready")
    return 0


def cmd_health(args: argparse.Namespace, config: KnowledgeGraphConfig) -> int:
    _require_neo4j(config, "health")
    status = check_neo4j_health(config.neo4j)
    _print_json(status)
    return 0 if status["connected"] and status["can_query"] else 1


def cmd_stats(args: argparse.Namespace, config: KnowledgeGraphConfig) -> int:
    store = _open_store(config, args.graph_file)
    try:
        _print_json(store.get_stats())
    finally:
        store.close()
    return 0


def cmd_clear(args: argparse.Namespace, config: KnowledgeGraphConfig) -> int:
    if not args.yes:
        print("Refusing to delete every node and edge without --yes", file=sys.stderr)
        return 2
    store = _open_store(config, args.graph_file)
    try:
        store.clear()
        _save_store(store, args.graph_file)
    finally:
        store.close()
    print("Graph cleared")
    return 0


# ==================== ENTRY POINT ====================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.knowledge_graph",
        description="Article knowledge graph: materialize extraction batches and query the graph",
    )
    parser.add_argument("--config", help="YAML config file (default: environment / .env)")
    parser.add_argument("--backend", choices=[b.value for b in GraphBackend], help="Override KG_BACKEND")
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Override KG_LOG_LEVEL"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("materialize", help="Materialize extraction batch JSON (object or list)")
    p.add_argument("batch", help="Path to batch JSON file")
    p.add_argument("--graph-file", help="Memory backend: graph JSON to load and save")
    p.set_defaults(handler=cmd_materialize)

    p = subparsers.add_parser("query", help="Run a read query, optionally with an analysis report")
    p.add_argument("cypher", help="Cypher query text (Markdown fences are stripped)")
    p.add_argument("--params", help="Query parameters as a JSON object")
    p.add_argument("--question", help="Question the query answers; produces a report")
    p.add_argument("--markdown", action="store_true", help="Render the report as Markdown")
    p.set_defaults(handler=cmd_query)

    p = subparsers.add_parser("canned", help="Run a canned query about a person")
    p.add_argument("name", choices=sorted(CANNED_QUERIES))
    p.add_argument("person", help="Exact person name")
    p.set_defaults(handler=cmd_canned)

    p = subparsers.add_parser("init-schema", help="Create uniqueness constraints")
    p.set_defaults(handler=cmd_init_schema)

    p = subparsers.add_parser("health", help="Check Neo4j connectivity")
    p.set_defaults(handler=cmd_health)

    p = subparsers.add_parser("stats", help="Node and edge counts")
    p.add_argument("--graph-file", help="Memory backend: graph JSON to load")
    p.set_defaults(handler=cmd_stats)

    p = subparsers.add_parser("clear", help="Delete every node and edge")
    p.add_argument("--yes", action="store_true", help="Confirm deletion")
    p.add_argument("--graph-file", help="Memory backend: graph JSON to clear")
    p.set_defaults(handler=cmd_clear)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except KnowledgeGraphError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    setup_logger("src", log_level=config.log_level, log_file=config.log_file)

    try:
        return args.handler(args, config)
    except KnowledgeGraphError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
