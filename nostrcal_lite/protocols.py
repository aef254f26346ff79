"""Protocol definitions for nostrcal_lite collaborators.

The record store client and the local cache live outside this package; these
Protocols describe the interface the pipeline expects from them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, Union

if TYPE_CHECKING:
    from .domain.pipeline import RecordFilter
    from .records.lite_models import RawRecord


class RecordFetcher(Protocol):
    """Protocol for the record store client."""

    async def query(self, filters: Sequence[RecordFilter]) -> Sequence[Union[RawRecord, Mapping[str, Any]]]:
        """Fetch records matching any of ``filters``.

        Args:
            filters: Kind/author/tag filters, combined with OR

        Returns:
            RawRecords or wire mappings (``pubkey``/``created_at`` keys)
        """
        ...


class RecordCache(Protocol):
    """Protocol for the best-effort local record mirror."""

    async def put(self, record: RawRecord) -> None:
        """Store a record, replacing any copy with the same id."""
        ...

    async def get_all(self) -> Sequence[RawRecord]:
        """Return every cached record."""
        ...
