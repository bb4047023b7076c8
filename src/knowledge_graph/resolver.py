"""
Identity resolution for candidate entities.

Person, Organisation and Location candidates are matched against existing
records by exact dedup key (display name, surrounding whitespace removed,
case-sensitive). A match is updated in place: each non-null attribute of
the candidate overwrites the stored value, attributes the candidate omits
are left alone. Event, Knowledge and Article candidates are always
created fresh.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .models import CandidateEntity, EntityRef
from .store import GraphTransaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Result of resolving one candidate."""

    ref: EntityRef
    created: bool


class IdentityResolver:
    """
    Resolves candidates to persisted entities inside a batch transaction.

    One lookup plus at most one write per call. Store failures propagate
    unchanged so the caller can abort the batch.

    Example:
        resolver = IdentityResolver()
        with store.transaction() as tx:
            resolution = resolver.resolve(tx, PersonCandidate(id="p1", name="Ada"), now)
    """

    def resolve(self, tx: GraphTransaction, candidate: CandidateEntity, now: datetime) -> Resolution:
        kind = candidate.kind
        attributes = candidate.attributes()

        if not kind.has_dedup_key:
            handle = tx.create_entity(kind, attributes, now)
            return Resolution(ref=EntityRef(kind, handle), created=True)

        key = candidate.dedup_key()
        if not key:
            logger.warning(
                f"{kind.value} candidate '{candidate.id}' has no name; creating without dedup"
            )
            handle = tx.create_entity(kind, attributes, now)
            return Resolution(ref=EntityRef(kind, handle), created=True)

        matches = tx.find_by_key(kind, key)
        if not matches:
            handle = tx.create_entity(kind, attributes, now)
            logger.debug(f"Created {kind.value} '{key}' ({handle})")
            return Resolution(ref=EntityRef(kind, handle), created=True)

        handle = matches[0]
        if len(matches) > 1:
            logger.warning(
                f"Ambiguous dedup lookup: {len(matches)} {kind.value} records named '{key}' "
                f"({', '.join(matches)}); using {handle}"
            )

        tx.update_entity(kind, handle, attributes, now)
        logger.debug(f"Updated existing {kind.value} '{key}' ({handle})")
        return Resolution(ref=EntityRef(kind, handle), created=False)
