"""
Parameterised read queries for common questions about a person.

Each builder returns a CypherQuery so the result can be fed to the
QueryExecutor and, if wanted, the InsightAssembler. Names are matched
exactly, like dedup keys.
"""

from typing import Any, Callable, Dict, List

from .insight import CypherQuery
from .query_executor import QueryExecutor


def articles_mentioning_person(name: str) -> CypherQuery:
    return CypherQuery(
        cypher=(
            "MATCH (a:Article)-[m:MENTIONS_PERSON]->(p:Person {name: $name}) "
            "RETURN a.title AS title, a.url AS url, a.summary AS summary, "
            "a.publishDateTime AS published, m.evidence AS evidence "
            "ORDER BY a.publishDateTime DESC"
        ),
        parameters={"name": name},
        explanation="Articles that mention the person, with quoted evidence",
    )


def knowledge_about_person(name: str) -> CypherQuery:
    return CypherQuery(
        cypher=(
            "MATCH (k:Knowledge)-[:ABOUT_PERSON]->(p:Person {name: $name}) "
            "OPTIONAL MATCH (k)-[:SOURCED_FROM]->(a:Article) "
            "RETURN k.fact AS fact, k.category AS category, k.dateOfFact AS date, "
            "a.title AS source "
            "ORDER BY k.createdAt DESC"
        ),
        parameters={"name": name},
        explanation="Facts recorded about the person and the article they came from",
    )


def events_involving_person(name: str) -> CypherQuery:
    return CypherQuery(
        cypher=(
            "MATCH (e:Event)-[:INVOLVED_PERSON]->(p:Person {name: $name}) "
            "OPTIONAL MATCH (e)-[:OCCURRED_IN]->(l:Location) "
            "RETURN e.description AS description, e.startDate AS start_date, "
            "e.status AS status, e.outcome AS outcome, l.name AS location "
            "ORDER BY e.startDate DESC"
        ),
        parameters={"name": name},
        explanation="Events the person was involved in, with where they happened",
    )


def related_people(name: str) -> CypherQuery:
    return CypherQuery(
        cypher=(
            "MATCH (start:Person {name: $name})-[r1]-(mid)-[r2]-(other:Person) "
            "WHERE start <> other "
            "RETURN DISTINCT other.name AS other_name, labels(mid) AS via_labels, "
            "coalesce(mid.title, mid.fact, mid.description, mid.name) AS via, "
            "type(r1) AS first_relationship, type(r2) AS second_relationship"
        ),
        parameters={"name": name},
        explanation="People connected to the person through one shared node",
    )


CANNED_QUERIES: Dict[str, Callable[[str], CypherQuery]] = {
    "articles-mentioning": articles_mentioning_person,
    "knowledge-about": knowledge_about_person,
    "events-involving": events_involving_person,
    "related-people": related_people,
}


class CannedQueries:
    """Runs the canned queries through a QueryExecutor."""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def run(self, name: str, person: str) -> List[Dict[str, Any]]:
        """
        Raises:
            KeyError: Unknown canned query name
        """
        query = CANNED_QUERIES[name](person)
        return self.executor.execute(query.cypher, query.parameters)

    def articles_mentioning_person(self, name: str) -> List[Dict[str, Any]]:
        return self.run("articles-mentioning", name)

    def knowledge_about_person(self, name: str) -> List[Dict[str, Any]]:
        return self.run("knowledge-about", name)

    def events_involving_person(self, name: str) -> List[Dict[str, Any]]:
        return self.run("events-involving", name)

    def related_people(self, name: str) -> List[Dict[str, Any]]:
        return self.run("related-people", name)
