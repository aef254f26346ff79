"""Replaceable-record resolution and attachment aggregation - nostrcal_lite.

Records are immutable: an edit publishes a new record under the same
coordinate instead of updating the old one. This module collapses each
coordinate to its newest record and picks the current attachment (RSVP) per
author for a resolved entity.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from .lite_models import Coordinate, RawRecord, RSVPStatus
from .record_kinds import CALENDAR_EVENT_KINDS, DEFAULT_KIND_POLICY, KindPolicy

logger = logging.getLogger(__name__)


class LiteRecordResolver:
    """Resolves a stream of raw records into current logical entities."""

    def __init__(self, policy: KindPolicy = DEFAULT_KIND_POLICY):
        """Initialize resolver.

        Args:
            policy: Classification of attachment and replaceable kinds
        """
        self.policy = policy

    def resolve(self, records: Iterable[RawRecord]) -> list[RawRecord]:
        """Resolve records to one current version per coordinate.

        Attachments and plain records are kept as their own entities. A
        replaceable record without a ``d`` tag is dropped. Among records that
        share a coordinate, the one with the strictly greatest ``created_at``
        wins and takes the slot of the first one seen; ties keep the first seen.

        Args:
            records: Raw records in arrival order

        Returns:
            Resolved entities in first-seen order
        """
        resolved: list[RawRecord] = []
        slots: dict[Coordinate, int] = {}
        dropped = 0
        replaced = 0

        for record in records:
            if self.policy.is_attachment(record.kind) or not self.policy.is_replaceable(record.kind):
                resolved.append(record)
                continue

            coordinate = record.coordinate
            if coordinate is None:
                dropped += 1
                logger.debug("Dropping replaceable record %s (kind %d) without d tag", record.id, record.kind)
                continue

            slot = slots.get(coordinate)
            if slot is None:
                slots[coordinate] = len(resolved)
                resolved.append(record)
            elif record.created_at > resolved[slot].created_at:
                resolved[slot] = record
                replaced += 1

        logger.debug(
            "Resolved %d entities (%d superseded versions replaced, %d invalid dropped)",
            len(resolved),
            replaced,
            dropped,
        )
        return resolved

    def references(self, attachment: RawRecord, entity: RawRecord) -> bool:
        """True if ``attachment`` points at ``entity`` by id or by coordinate."""
        if attachment.has_tag("e", entity.id):
            return True
        coordinate = entity.coordinate
        return coordinate is not None and attachment.has_tag("a", str(coordinate))

    def aggregate_attachments(self, entity: RawRecord, attachments: Iterable[RawRecord]) -> list[RawRecord]:
        """Return the current attachment per author for ``entity``.

        Matching accepts either reference form so attachments made against an
        earlier version of the entity stay attached after edits.

        Args:
            entity: A resolved entity
            attachments: Candidate attachment records

        Returns:
            The newest matching attachment per author, in first-seen author order
        """
        latest: dict[str, RawRecord] = {}
        for attachment in attachments:
            if not self.references(attachment, entity):
                continue
            current = latest.get(attachment.author_id)
            if current is None or attachment.created_at > current.created_at:
                latest[attachment.author_id] = attachment
        return list(latest.values())

    def split_by_kind(self, resolved: Iterable[RawRecord]) -> tuple[list[RawRecord], list[RawRecord]]:
        """Separate calendar events from attachment records."""
        events: list[RawRecord] = []
        attachments: list[RawRecord] = []
        for record in resolved:
            if self.policy.is_attachment(record.kind):
                attachments.append(record)
            elif record.kind in CALENDAR_EVENT_KINDS:
                events.append(record)
        return events, attachments


@dataclass
class RSVPSummary:
    """Author ids grouped by their current RSVP status."""

    accepted: list[str] = field(default_factory=list)
    tentative: list[str] = field(default_factory=list)
    declined: list[str] = field(default_factory=list)

    @property
    def participants(self) -> list[str]:
        return self.accepted + self.tentative + self.declined

    def for_status(self, status: RSVPStatus) -> list[str]:
        return getattr(self, status.value)

    def status_of(self, author_id: str) -> Optional[RSVPStatus]:
        for status in RSVPStatus:
            if author_id in self.for_status(status):
                return status
        return None


def summarize_rsvps(current: Iterable[RawRecord]) -> RSVPSummary:
    """Group current RSVPs by status; unknown statuses are skipped."""
    summary = RSVPSummary()
    for rsvp in current:
        value = rsvp.tag_value("status")
        try:
            status = RSVPStatus(value)
        except ValueError:
            logger.debug("Ignoring RSVP %s with unknown status %r", rsvp.id, value)
            continue
        summary.for_status(status).append(rsvp.author_id)
    return summary


_default_resolver = LiteRecordResolver()


def resolve(records: Iterable[RawRecord]) -> list[RawRecord]:
    """Resolve with the default kind policy (convenience function)."""
    return _default_resolver.resolve(records)


def aggregate_attachments(entity: RawRecord, attachments: Iterable[RawRecord]) -> list[RawRecord]:
    """Aggregate with the default kind policy (convenience function)."""
    return _default_resolver.aggregate_attachments(entity, attachments)
