from unittest.mock import MagicMock

import pytest

from src.knowledge_graph.canned_queries import CANNED_QUERIES, CannedQueries, related_people


class TestCannedQueryBuilders:
    @pytest.mark.parametrize("name", sorted(CANNED_QUERIES))
    def test_person_passed_as_parameter(self, name):
        query = CANNED_QUERIES[name]("Ada O'Brien")

        assert query.parameters == {"name": "Ada O'Brien"}
        assert "$name" in query.cypher
        assert "O'Brien" not in query.cypher
        assert query.explanation

    def test_related_people_excludes_self(self):
        assert "start <> other" in related_people("Ada").cypher


class TestCannedQueries:
    def setup_method(self):
        self.executor = MagicMock()
        self.executor.execute.return_value = [{"title": "T1"}]
        self.canned = CannedQueries(self.executor)

    def test_articles_mentioning_person(self):
        rows = self.canned.articles_mentioning_person("Ada")

        assert rows == [{"title": "T1"}]
        cypher, params = self.executor.execute.call_args[0]
        assert "MENTIONS_PERSON" in cypher
        assert params == {"name": "Ada"}

    def test_events_involving_person(self):
        self.canned.events_involving_person("Ada")
        assert "INVOLVED_PERSON" in self.executor.execute.call_args[0][0]

    def test_knowledge_about_person(self):
        self.canned.knowledge_about_person("Ada")
        assert "ABOUT_PERSON" in self.executor.execute.call_args[0][0]

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            self.canned.run("nope", "Ada")
