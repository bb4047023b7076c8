from datetime import datetime, timezone

import pytest

from src.knowledge_graph.memory_store import InMemoryGraphStore
from src.knowledge_graph.models import (
    ArticleCandidate,
    CandidateRelationship,
    ExtractionBatch,
    PersonCandidate,
    RelationshipKind,
)

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def memory_store():
    return InMemoryGraphStore()


@pytest.fixture
def scenario_batch():
    """Article A1 mentioning person P1 with quoted-speech evidence."""
    return ExtractionBatch(
        article=ArticleCandidate(id="a1", title="A1", content="Body of A1"),
        people=[PersonCandidate(id="p1", name="P1")],
        relationships=[
            CandidateRelationship(
                kind=RelationshipKind.MENTIONS_PERSON,
                start_id="a1",
                end_id="p1",
                evidence="quoted speech",
            )
        ],
    )
