"""
Relationship typing table.

Each relationship kind is directed and constrained at both ends. The
materializer only creates an edge when the resolved endpoint kinds match
the kind's declared (source, target) pair; anything else is dropped.
"""

from dataclasses import dataclass
from typing import Dict

from .models import EntityKind, RelationshipKind


@dataclass(frozen=True)
class RelationshipSpec:
    """Endpoint constraint and storage details for one relationship kind."""

    kind: RelationshipKind
    source_kind: EntityKind
    target_kind: EntityKind
    carries_evidence: bool
    edge_type: str  # graph relationship type, e.g. MENTIONS_PERSON

    def accepts(self, source_kind: EntityKind, target_kind: EntityKind) -> bool:
        return source_kind is self.source_kind and target_kind is self.target_kind


def _spec(
    kind: RelationshipKind, source: EntityKind, target: EntityKind, evidence: bool = False
) -> RelationshipSpec:
    return RelationshipSpec(
        kind=kind,
        source_kind=source,
        target_kind=target,
        carries_evidence=evidence,
        edge_type=kind.name,
    )


RELATIONSHIP_TYPES: Dict[RelationshipKind, RelationshipSpec] = {
    spec.kind: spec
    for spec in (
        _spec(RelationshipKind.MENTIONS_PERSON, EntityKind.ARTICLE, EntityKind.PERSON, evidence=True),
        _spec(RelationshipKind.ABOUT_PERSON, EntityKind.KNOWLEDGE, EntityKind.PERSON),
        _spec(RelationshipKind.INVOLVED_PERSON, EntityKind.EVENT, EntityKind.PERSON),
        _spec(
            RelationshipKind.MENTIONS_ORGANISATION,
            EntityKind.ARTICLE,
            EntityKind.ORGANISATION,
            evidence=True,
        ),
        _spec(RelationshipKind.ABOUT_ORGANISATION, EntityKind.KNOWLEDGE, EntityKind.ORGANISATION),
        _spec(RelationshipKind.INVOLVED_ORGANISATION, EntityKind.EVENT, EntityKind.ORGANISATION),
        _spec(RelationshipKind.SOURCED_FROM, EntityKind.KNOWLEDGE, EntityKind.ARTICLE),
        _spec(RelationshipKind.MENTIONS_EVENT, EntityKind.ARTICLE, EntityKind.EVENT),
        _spec(RelationshipKind.OCCURRED_IN, EntityKind.EVENT, EntityKind.LOCATION),
        _spec(RelationshipKind.MENTIONS_LOCATION, EntityKind.ARTICLE, EntityKind.LOCATION),
    )
}


def get_relationship_spec(kind: RelationshipKind) -> RelationshipSpec:
    return RELATIONSHIP_TYPES[kind]
