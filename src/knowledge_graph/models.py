"""
Data models for the article knowledge graph.

Entity kinds (closed set):
- Person, Organisation, Location: deduplicated by display name
- Event, Knowledge, Article: no dedup key, created fresh on every batch

Candidates are the extraction-time view of an entity. They carry an
ephemeral identifier that is only meaningful inside one extraction batch;
materialization swaps it for a persisted handle (see IdentifierMap).

Relationship kinds (closed set, all directed and typed at both ends) are
listed here; their endpoint constraints live in relationship_types.py.
"""

import logging
from dataclasses import dataclass, field, fields
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Iterator, List, Optional, Union

from .exceptions import ExtractionFormatError

logger = logging.getLogger(__name__)


class EntityKind(Enum):
    """Kinds of entity nodes. The value doubles as the graph label."""

    PERSON = "Person"
    ORGANISATION = "Organisation"
    LOCATION = "Location"
    EVENT = "Event"
    KNOWLEDGE = "Knowledge"
    ARTICLE = "Article"

    @property
    def label(self) -> str:
        return self.value

    @property
    def has_dedup_key(self) -> bool:
        return self in DEDUP_KINDS


DEDUP_KINDS = frozenset({EntityKind.PERSON, EntityKind.ORGANISATION, EntityKind.LOCATION})


class RelationshipKind(Enum):
    """Kinds of directed edges between entities."""

    MENTIONS_PERSON = "MentionsPerson"  # Article → Person
    ABOUT_PERSON = "AboutPerson"  # Knowledge → Person
    INVOLVED_PERSON = "InvolvedPerson"  # Event → Person
    MENTIONS_ORGANISATION = "MentionsOrganisation"  # Article → Organisation
    ABOUT_ORGANISATION = "AboutOrganisation"  # Knowledge → Organisation
    INVOLVED_ORGANISATION = "InvolvedOrganisation"  # Event → Organisation
    SOURCED_FROM = "SourcedFrom"  # Knowledge → Article
    MENTIONS_EVENT = "MentionsEvent"  # Article → Event
    OCCURRED_IN = "OccurredIn"  # Event → Location
    MENTIONS_LOCATION = "MentionsLocation"  # Article → Location

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["RelationshipKind"]:
        """
        Resolve a relationship kind from extractor output.

        Accepts the enum value ("MentionsPerson"), the enum name
        ("MENTIONS_PERSON"), the extractor's class-style name
        ("MentionsPersonRelationship") and the "OccuredIn" misspelling.

        Returns None for anything else.
        """
        if not name:
            return None
        candidate = name.strip()
        if candidate.endswith("Relationship"):
            candidate = candidate[: -len("Relationship")]
        if candidate == "OccuredIn":
            candidate = "OccurredIn"
        for kind in cls:
            if candidate == kind.value or candidate.upper() == kind.name:
                return kind
        return None


# ==================== VALUE PARSING ====================


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


_PROPERTY_OVERRIDES = {
    "publish_datetime": "publishDateTime",
    "scrape_datetime": "scrapeDateTime",
}


def property_name(field_name: str) -> str:
    """Graph property name for a candidate field (camelCase)."""
    return _PROPERTY_OVERRIDES.get(field_name, _camel(field_name))


def _parse_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _parse_time(value: Any) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def _parse_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


def _parse_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _parse_str_list(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v is not None]


def _parse_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise TypeError(f"expected text, got {type(value).__name__}")


_FIELD_PARSERS: Dict[str, Callable[[Any], Any]] = {
    "name": _parse_text,
    "first_name": _parse_text,
    "last_name": _parse_text,
    "title": _parse_text,
    "description": _parse_text,
    "fact": _parse_text,
    "dob": _parse_date,
    "date_founded": _parse_date,
    "date_of_fact": _parse_date,
    "start_date": _parse_date,
    "end_date": _parse_date,
    "start_time": _parse_time,
    "end_time": _parse_time,
    "publish_datetime": _parse_datetime,
    "scrape_datetime": _parse_datetime,
    "height": _parse_int,
    "weight": _parse_int,
    "latitude": _parse_float,
    "longitude": _parse_float,
    "nicknames": _parse_str_list,
    "nationalities": _parse_str_list,
    "occupations": _parse_str_list,
}


def _read_field(data: Dict[str, Any], field_name: str) -> Any:
    """Read a field from extractor output, accepting snake_case or camelCase keys."""
    value = data.get(field_name)
    if value is None:
        value = data.get(property_name(field_name))
    if value is None:
        value = data.get(_camel(field_name))
    parser = _FIELD_PARSERS.get(field_name)
    if parser is None or value is None:
        return value
    try:
        return parser(value)
    except (TypeError, ValueError) as e:
        logger.warning(f"Ignoring unparseable value for '{field_name}': {value!r} ({e})")
        return None


# ==================== CANDIDATE ENTITIES ====================


class _CandidateMixin:
    """Behaviour shared by all candidate dataclasses."""

    kind: ClassVar[EntityKind]
    _display_field: ClassVar[str]

    def dedup_key(self) -> Optional[str]:
        """
        Dedup key for kinds that have one, else None.

        The key is the display name with surrounding whitespace removed and
        is compared exactly (case-sensitive).
        """
        if not self.kind.has_dedup_key:
            return None
        name = getattr(self, self._display_field)
        if name is None:
            return None
        return str(name).strip() or None

    def attributes(self) -> Dict[str, Any]:
        """
        Non-null descriptive attributes keyed by graph property name.

        A dedup-keyed candidate without a usable name gets no ``name``
        property, so it never collides with the uniqueness constraint.
        """
        attrs: Dict[str, Any] = {}
        for f in fields(self):
            if f.name == "id":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            attrs[property_name(f.name)] = value
        if self.kind.has_dedup_key:
            key = self.dedup_key()
            if key is None:
                attrs.pop("name", None)
            else:
                attrs["name"] = key
        return attrs

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        if not isinstance(data, dict):
            raise ExtractionFormatError(
                f"{cls.kind.value} candidate must be an object, got {type(data).__name__}"
            )
        values = {f.name: _read_field(data, f.name) for f in fields(cls)}
        values["id"] = str(values.get("id") or "")
        return cls(**values)


@dataclass
class ArticleCandidate(_CandidateMixin):
    """The article being processed. Always materialized as a new node."""

    kind: ClassVar[EntityKind] = EntityKind.ARTICLE
    _display_field: ClassVar[str] = "title"

    id: str
    title: str
    content: str = ""
    url: Optional[str] = None
    language: Optional[str] = None
    summary: Optional[str] = None
    publish_datetime: Optional[datetime] = None
    scrape_datetime: Optional[datetime] = None
    agent_process_id: Optional[str] = None
    sentiment: Optional[str] = None


@dataclass
class PersonCandidate(_CandidateMixin):
    kind: ClassVar[EntityKind] = EntityKind.PERSON
    _display_field: ClassVar[str] = "name"

    id: str
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nicknames: Optional[List[str]] = None
    dob: Optional[date] = None
    nationalities: Optional[List[str]] = None
    height: Optional[int] = None  # cm
    weight: Optional[int] = None  # kg
    gender: Optional[str] = None
    occupations: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersonCandidate":
        if isinstance(data, dict) and not data.get("name"):
            first = _read_field(data, "first_name")
            last = _read_field(data, "last_name")
            data = dict(data, name=" ".join(part for part in (first, last) if part))
        return super().from_dict(data)


@dataclass
class OrganisationCandidate(_CandidateMixin):
    kind: ClassVar[EntityKind] = EntityKind.ORGANISATION
    _display_field: ClassVar[str] = "name"

    id: str
    name: str
    date_founded: Optional[date] = None
    description: Optional[str] = None


@dataclass
class LocationCandidate(_CandidateMixin):
    kind: ClassVar[EntityKind] = EntityKind.LOCATION
    _display_field: ClassVar[str] = "name"

    id: str
    name: str
    number: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass
class EventCandidate(_CandidateMixin):
    """A specific occurrence. No dedup key: one node per extraction."""

    kind: ClassVar[EntityKind] = EntityKind.EVENT
    _display_field: ClassVar[str] = "description"

    id: str
    description: str
    start_date: Optional[date] = None
    start_time: Optional[time] = None
    end_date: Optional[date] = None
    end_time: Optional[time] = None
    category: Optional[str] = None
    status: Optional[str] = None
    outcome: Optional[str] = None
    impact: Optional[str] = None


@dataclass
class KnowledgeCandidate(_CandidateMixin):
    """A factual statement. No dedup key: one node per extraction."""

    kind: ClassVar[EntityKind] = EntityKind.KNOWLEDGE
    _display_field: ClassVar[str] = "fact"

    id: str
    fact: str
    category: Optional[str] = None
    date_of_fact: Optional[date] = None


CandidateEntity = Union[
    ArticleCandidate,
    PersonCandidate,
    OrganisationCandidate,
    LocationCandidate,
    EventCandidate,
    KnowledgeCandidate,
]


# ==================== RELATIONSHIPS ====================


@dataclass
class CandidateRelationship:
    """A relationship between two candidates, keyed by ephemeral ids."""

    kind: RelationshipKind
    start_id: str
    end_id: str
    evidence: Optional[str] = None

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], kind: Optional[RelationshipKind] = None
    ) -> Optional["CandidateRelationship"]:
        """
        Build from extractor output.

        Returns None (and logs) when the kind is not one of the closed set.
        """
        if kind is None:
            raw_kind = data.get("kind") or data.get("name") or data.get("type")
            kind = RelationshipKind.parse(raw_kind)
            if kind is None:
                logger.warning(f"Skipping relationship with unknown kind: {raw_kind!r}")
                return None
        return cls(
            kind=kind,
            start_id=str(data.get("start_node_id") or data.get("start_id") or ""),
            end_id=str(data.get("end_node_id") or data.get("end_id") or ""),
            evidence=data.get("evidence"),
        )


# Grouped relationship lists as emitted by the relationship extractor
GROUPED_RELATIONSHIP_KEYS: Dict[str, RelationshipKind] = {
    "mentionsPersonRelationships": RelationshipKind.MENTIONS_PERSON,
    "mentionsPersonReltionships": RelationshipKind.MENTIONS_PERSON,
    "aboutPersonRelationships": RelationshipKind.ABOUT_PERSON,
    "involvedPersonRelationships": RelationshipKind.INVOLVED_PERSON,
    "mentionsOrganisationRelationships": RelationshipKind.MENTIONS_ORGANISATION,
    "aboutOrganisationRelationships": RelationshipKind.ABOUT_ORGANISATION,
    "involvedOrganisationRelationships": RelationshipKind.INVOLVED_ORGANISATION,
    "sourcedFromRelationships": RelationshipKind.SOURCED_FROM,
    "mentionsEventRelationships": RelationshipKind.MENTIONS_EVENT,
    "occuredInRelationships": RelationshipKind.OCCURRED_IN,
    "occurredInRelationships": RelationshipKind.OCCURRED_IN,
    "mentionsLocationRelationships": RelationshipKind.MENTIONS_LOCATION,
}


def _parse_relationships(source: Any, grouped_fallback: Dict[str, Any]) -> List[CandidateRelationship]:
    """
    Parse relationships given as a flat list of kind-tagged items or as
    lists grouped per kind (under ``source`` or, if absent, the payload).
    """
    relationships: List[CandidateRelationship] = []

    if isinstance(source, list):
        for item in source:
            if not isinstance(item, dict):
                raise ExtractionFormatError("Relationship entries must be objects")
            rel = CandidateRelationship.from_dict(item)
            if rel is not None:
                relationships.append(rel)
        return relationships

    if source is not None and not isinstance(source, dict):
        raise ExtractionFormatError("'relationships' must be a list or an object")

    grouped = source if source is not None else grouped_fallback
    for key, kind in GROUPED_RELATIONSHIP_KEYS.items():
        items = grouped.get(key) or []
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise ExtractionFormatError(f"'{key}' must be a list of objects")
        for item in items:
            relationships.append(CandidateRelationship.from_dict(item, kind=kind))

    return relationships


@dataclass
class ExtractionBatch:
    """
    One extraction's worth of candidates, materialized as a single transaction.

    Ephemeral ids must be unique within the batch.
    """

    article: ArticleCandidate
    people: List[PersonCandidate] = field(default_factory=list)
    organisations: List[OrganisationCandidate] = field(default_factory=list)
    locations: List[LocationCandidate] = field(default_factory=list)
    events: List[EventCandidate] = field(default_factory=list)
    knowledge: List[KnowledgeCandidate] = field(default_factory=list)
    relationships: List[CandidateRelationship] = field(default_factory=list)

    def candidates(self) -> Iterator[CandidateEntity]:
        """All candidates, article first, in materialization order."""
        yield self.article
        yield from self.people
        yield from self.organisations
        yield from self.locations
        yield from self.events
        yield from self.knowledge

    @property
    def entity_count(self) -> int:
        return 1 + sum(
            len(group)
            for group in (self.people, self.organisations, self.locations, self.events, self.knowledge)
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionBatch":
        """
        Parse extractor output.

        Nodes may be top-level or nested under "nodes" / "extracted_nodes";
        relationships may be a flat list or grouped per kind.

        Raises:
            ExtractionFormatError: If the payload has no article or is not an object
        """
        if not isinstance(data, dict):
            raise ExtractionFormatError(
                f"Extraction payload must be an object, got {type(data).__name__}"
            )

        nodes = data.get("nodes") or data.get("extracted_nodes") or data
        if not isinstance(nodes, dict) or not nodes.get("article"):
            raise ExtractionFormatError("Extraction payload has no article")

        def _group(key: str, alt: Optional[str], candidate_type) -> list:
            items = nodes.get(key)
            if items is None and alt:
                items = nodes.get(alt)
            if items is not None and not isinstance(items, list):
                raise ExtractionFormatError(f"'{key}' must be a list")
            return [candidate_type.from_dict(item) for item in items or []]

        relationship_source = data.get("relationships")
        if relationship_source is None:
            relationship_source = data.get("extracted_relationships", nodes.get("relationships"))
        relationships = _parse_relationships(relationship_source, {**nodes, **data})

        return cls(
            article=ArticleCandidate.from_dict(nodes["article"]),
            people=_group("people", "persons", PersonCandidate),
            organisations=_group("organisations", "organizations", OrganisationCandidate),
            locations=_group("locations", None, LocationCandidate),
            events=_group("events", None, EventCandidate),
            knowledge=_group("knowledge", "knowledge_points", KnowledgeCandidate),
            relationships=relationships,
        )


# ==================== PERSISTED IDENTITY ====================


@dataclass(frozen=True)
class EntityRef:
    """A persisted entity: its kind plus the store-assigned handle."""

    kind: EntityKind
    handle: str


class IdentifierMap:
    """
    Batch-scoped mapping from ephemeral id to persisted entity.

    Lookups fail closed: a miss returns None instead of raising, so the
    materializer can drop relationships with dangling endpoints.
    """

    def __init__(self):
        self._refs: Dict[str, EntityRef] = {}

    def record(self, ephemeral_id: str, ref: EntityRef) -> None:
        if not ephemeral_id:
            return
        existing = self._refs.get(ephemeral_id)
        if existing is not None and existing != ref:
            logger.warning(
                f"Ephemeral id '{ephemeral_id}' reused within batch "
                f"({existing.kind.value} -> {ref.kind.value}); keeping the later mapping"
            )
        self._refs[ephemeral_id] = ref

    def resolve(self, ephemeral_id: str) -> Optional[EntityRef]:
        if not ephemeral_id:
            return None
        return self._refs.get(ephemeral_id)

    def __contains__(self, ephemeral_id: str) -> bool:
        return ephemeral_id in self._refs

    def __len__(self) -> int:
        return len(self._refs)


@dataclass
class MaterializationStats:
    """Outcome of materializing one batch."""

    article_handle: Optional[str] = None
    entities_created: int = 0
    entities_updated: int = 0
    edges_created: int = 0
    dropped_unresolved: int = 0
    dropped_type_mismatch: int = 0

    @property
    def relationships_dropped(self) -> int:
        return self.dropped_unresolved + self.dropped_type_mismatch

    def to_dict(self) -> Dict[str, Any]:
        return {
            "article_handle": self.article_handle,
            "entities_created": self.entities_created,
            "entities_updated": self.entities_updated,
            "edges_created": self.edges_created,
            "dropped_unresolved": self.dropped_unresolved,
            "dropped_type_mismatch": self.dropped_type_mismatch,
        }
