"""
Unit tests for the question-answering read path.
"""

from unittest.mock import MagicMock

import pytest

from src.knowledge_graph.exceptions import QueryError
from src.knowledge_graph.insight import CypherQuery, InsightAssembler
from src.knowledge_graph.query_executor import QueryExecutor
from src.knowledge_graph.read_pipeline import (
    GraphQuestionAnswerer,
    QueryGenerator,
    clean_generated_query,
)


class TestCleanGeneratedQuery:
    def test_strips_cypher_fence(self):
        text = "```cypher\nMATCH (n) RETURN n\n```"
        assert clean_generated_query(text) == "MATCH (n) RETURN n"

    def test_strips_bare_fence(self):
        assert clean_generated_query("```\nRETURN 1\n```") == "RETURN 1"

    def test_plain_query_untouched(self):
        assert clean_generated_query("  MATCH (n) RETURN n \n") == "MATCH (n) RETURN n"

    def test_multiline_body_kept(self):
        text = "```cypher\nMATCH (p:Person)\nRETURN p.name\n```"
        assert clean_generated_query(text) == "MATCH (p:Person)\nRETURN p.name"


class TestGraphQuestionAnswerer:
    def setup_method(self):
        self.generator = MagicMock(spec=QueryGenerator)
        self.runner = MagicMock()
        self.reasoner = MagicMock()
        self.reasoner.analyze.return_value = "analysis"
        self.answerer = GraphQuestionAnswerer(
            self.generator, QueryExecutor(self.runner), InsightAssembler(self.reasoner)
        )

    def test_string_query_is_cleaned_and_executed(self):
        self.generator.generate.return_value = "```cypher\nMATCH (p:Person) RETURN p.name AS name\n```"
        self.runner.read.return_value = [{"name": "Ada"}]

        report = self.answerer.answer("Who is in the graph?")

        self.runner.read.assert_called_once_with("MATCH (p:Person) RETURN p.name AS name", {})
        assert report.query.cypher == "MATCH (p:Person) RETURN p.name AS name"
        assert report.summary == "Found 1 records"
        assert report.analysis == "analysis"

    def test_structured_query_keeps_parameters(self):
        self.generator.generate.return_value = CypherQuery(
            cypher="MATCH (p:Person {name: $name}) RETURN p.name AS name",
            parameters={"name": "Ada"},
            explanation="lookup",
        )
        self.runner.read.return_value = []

        report = self.answerer.answer("Is Ada there?")

        self.runner.read.assert_called_once_with(
            "MATCH (p:Person {name: $name}) RETURN p.name AS name", {"name": "Ada"}
        )
        assert report.query.explanation == "lookup"
        assert report.summary == "Found 0 records"
        self.reasoner.analyze.assert_called_once_with("Is Ada there?", "[]")

    def test_query_error_propagates_without_analysis(self):
        self.generator.generate.return_value = "MATC (n)"
        self.runner.read.side_effect = QueryError("rejected", diagnostic="Invalid input")

        with pytest.raises(QueryError):
            self.answerer.answer("?")
        self.reasoner.analyze.assert_not_called()
