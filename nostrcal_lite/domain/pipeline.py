"""Fetch, mirror and resolve orchestration for nostrcal_lite.

Resolution is cheap, so every batch is resolved from scratch instead of being
patched incrementally. The cache is a best-effort mirror: its failures are
logged and never surfaced.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..lite_logging import new_refresh_id
from ..protocols import RecordCache, RecordFetcher
from ..records.lite_models import RawRecord, parse_raw_records
from ..records.lite_record_resolver import LiteRecordResolver, RSVPSummary, summarize_rsvps
from ..records.record_kinds import CALENDAR_RSVP, DATE_BASED_EVENT, TIME_BASED_EVENT

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 100
DEFAULT_FETCH_TIMEOUT = 5.0


class RecordFilter(BaseModel):
    """Query sent to the record store; unset fields do not constrain results."""

    kinds: Optional[list[int]] = None
    authors: Optional[list[str]] = None
    ids: Optional[list[str]] = None
    tags: dict[str, list[str]] = Field(default_factory=dict, description="Single-letter tag filters")
    limit: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    def to_wire(self) -> dict[str, Any]:
        """Store filter form, with tag filters as ``#<name>`` keys."""
        data: dict[str, Any] = self.model_dump(exclude={"tags"}, exclude_none=True)
        for name, values in self.tags.items():
            data[f"#{name}"] = list(values)
        return data


def calendar_event_filters(limit: int = DEFAULT_FETCH_LIMIT) -> list[RecordFilter]:
    """Filters for calendar events plus the RSVPs that reference them."""
    return [
        RecordFilter(kinds=[DATE_BASED_EVENT, TIME_BASED_EVENT], limit=limit),
        RecordFilter(kinds=[CALENDAR_RSVP], limit=limit),
    ]


def rsvp_filters(event_id: Optional[str] = None, coordinate: Optional[str] = None) -> list[RecordFilter]:
    """Filters for RSVPs referencing an event by id and/or coordinate."""
    filters = []
    if event_id:
        filters.append(RecordFilter(kinds=[CALENDAR_RSVP], tags={"e": [event_id]}))
    if coordinate:
        filters.append(RecordFilter(kinds=[CALENDAR_RSVP], tags={"a": [coordinate]}))
    return filters


@dataclass
class ResolutionResult:
    """Resolved entities and the attachment records seen alongside them."""

    entities: list[RawRecord] = field(default_factory=list)
    attachments: list[RawRecord] = field(default_factory=list)
    resolver: LiteRecordResolver = field(default_factory=LiteRecordResolver, repr=False)

    def attachments_for(self, entity: RawRecord) -> list[RawRecord]:
        return self.resolver.aggregate_attachments(entity, self.attachments)

    def rsvp_summary(self, entity: RawRecord) -> RSVPSummary:
        return summarize_rsvps(self.attachments_for(entity))


class RecordPipeline:
    """Fetches records, mirrors them to the cache and resolves current entities."""

    def __init__(
        self,
        fetcher: RecordFetcher,
        cache: Optional[RecordCache] = None,
        resolver: Optional[LiteRecordResolver] = None,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ):
        """Initialize pipeline.

        Args:
            fetcher: Record store client
            cache: Optional local mirror
            resolver: Resolver (default kind policy when None)
            timeout: Seconds to wait for the fetcher before using the cache
        """
        self.fetcher = fetcher
        self.cache = cache
        self.resolver = resolver or LiteRecordResolver()
        self.timeout = timeout

    async def refresh(self, filters: Sequence[RecordFilter], timeout: Optional[float] = None) -> ResolutionResult:
        """Fetch a batch, mirror it and resolve it.

        A fetch that times out or fails resolves the cached mirror instead.
        Cancellation of the calling task propagates.

        Args:
            filters: Filters passed to the fetcher
            timeout: Override of the pipeline timeout in seconds

        Returns:
            ResolutionResult for the fetched (or cached) records
        """
        wait = self.timeout if timeout is None else timeout
        refresh_id = new_refresh_id()
        logger.debug("Starting refresh %s with %d filters", refresh_id, len(filters))
        try:
            payload = await asyncio.wait_for(self.fetcher.query(filters), timeout=wait)
        except asyncio.TimeoutError:
            logger.warning("Record fetch timed out after %.1fs, using cached records", wait)
            return self.resolve(await self.load_cached())
        except Exception:
            logger.exception("Record fetch failed, using cached records")
            return self.resolve(await self.load_cached())

        records = parse_raw_records(payload)
        logger.debug("Fetched %d records for %d filters", len(records), len(filters))
        await self.mirror(records)
        return self.resolve(records)

    async def mirror(self, records: Iterable[RawRecord]) -> int:
        """Write records to the cache; returns how many writes succeeded."""
        if self.cache is None:
            return 0
        stored = 0
        for record in records:
            try:
                await self.cache.put(record)
                stored += 1
            except Exception as e:
                logger.warning("Failed to cache record %s: %s", record.id, e)
        return stored

    async def load_cached(self) -> list[RawRecord]:
        """Read the cache mirror; an unavailable cache reads as empty."""
        if self.cache is None:
            return []
        try:
            return parse_raw_records(await self.cache.get_all())
        except Exception as e:
            logger.warning("Failed to read cached records: %s", e)
            return []

    def resolve(self, records: Iterable[RawRecord]) -> ResolutionResult:
        resolved = self.resolver.resolve(records)
        entities = [r for r in resolved if not self.resolver.policy.is_attachment(r.kind)]
        attachments = [r for r in resolved if self.resolver.policy.is_attachment(r.kind)]
        return ResolutionResult(entities=entities, attachments=attachments, resolver=self.resolver)
