"""Record kind constants and the replaceable/attachment classification."""

from __future__ import annotations

from dataclasses import dataclass, field

# Calendar kinds
DATE_BASED_EVENT = 31922
TIME_BASED_EVENT = 31923
CALENDAR_COLLECTION = 31924
CALENDAR_RSVP = 31925

# Live activity kinds (use "starts"/"ends" instead of "start"/"end")
LIVE_EVENT = 30311
INTERACTIVE_ROOM = 30312
ROOM_MEETING = 30313

CALENDAR_EVENT_KINDS = frozenset({DATE_BASED_EVENT, TIME_BASED_EVENT})
LIVE_ACTIVITY_KINDS = frozenset({LIVE_EVENT, INTERACTIVE_ROOM, ROOM_MEETING})
INSTANT_BASED_KINDS = frozenset({TIME_BASED_EVENT, LIVE_EVENT, ROOM_MEETING})

REPLACEABLE_KIND_MIN = 30000
REPLACEABLE_KIND_MAX = 39999


@dataclass(frozen=True)
class KindPolicy:
    """Classifies kinds into attachment, replaceable and plain records.

    Attachment kinds are checked first: RSVPs live inside the replaceable band
    but each one is its own record and is never coalesced.
    """

    replaceable_min: int = REPLACEABLE_KIND_MIN
    replaceable_max: int = REPLACEABLE_KIND_MAX
    attachment_kinds: frozenset[int] = field(default_factory=lambda: frozenset({CALENDAR_RSVP}))

    def is_attachment(self, kind: int) -> bool:
        return kind in self.attachment_kinds

    def is_replaceable(self, kind: int) -> bool:
        """True for kinds in the replaceable band that are not attachments."""
        if self.is_attachment(kind):
            return False
        return self.replaceable_min <= kind <= self.replaceable_max


DEFAULT_KIND_POLICY = KindPolicy()


def is_instant_based(kind: int) -> bool:
    """Kinds whose start/end tags hold epoch seconds rather than calendar dates."""
    return kind in INSTANT_BASED_KINDS
