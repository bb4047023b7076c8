"""
Question answering over the graph: question → query → rows → report.

Turning a question into query text is delegated to a QueryGenerator
supplied by the caller.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Union

from .insight import CypherQuery, InsightAssembler, InsightReport
from .query_executor import QueryExecutor

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def clean_generated_query(text: str) -> str:
    """Strip Markdown code fences (```cypher ... ```) around generated query text."""
    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1)
    return text.strip()


class QueryGenerator(ABC):
    """Produces a graph query for a natural-language question."""

    @abstractmethod
    def generate(self, question: str) -> Union[CypherQuery, str]:
        pass


class GraphQuestionAnswerer:
    """
    Orchestrates the read path.

    Example:
        answerer = GraphQuestionAnswerer(generator, QueryExecutor(manager), assembler)
        report = answerer.answer("Which articles mention Ada Lovelace?")
    """

    def __init__(
        self, generator: QueryGenerator, executor: QueryExecutor, assembler: InsightAssembler
    ):
        self.generator = generator
        self.executor = executor
        self.assembler = assembler

    def answer(self, question: str) -> InsightReport:
        """
        Raises:
            QueryError: Generated query rejected by the store
            StoreUnavailable: Store unreachable
            ReasoningError: Analysis could not be produced
        """
        generated = self.generator.generate(question)
        if isinstance(generated, str):
            generated = CypherQuery(cypher=generated)

        query = CypherQuery(
            cypher=clean_generated_query(generated.cypher),
            parameters=generated.parameters,
            explanation=generated.explanation,
        )
        logger.info(f"Generated query for question: {question}")
        logger.debug(f"Query: {query.cypher}")

        return self.run_query(question, query)

    def run_query(self, question: str, query: CypherQuery) -> InsightReport:
        """Execute an already-generated query and assemble the report."""
        rows = self.executor.execute(query.cypher, query.parameters)
        return self.assembler.assemble(question, query, rows)
