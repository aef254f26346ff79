"""Custom exception hierarchy for nostrcal_lite.

Internal helpers raise these to signal malformed input. Every public operation
catches them at a single boundary and converts them into the documented
fallback value (dropped record, viewer-local time, current instant), so callers
of the public API only see them where a function documents it.
"""


class NostrCalError(Exception):
    """Base exception for all nostrcal_lite errors."""


class RecordValidationError(NostrCalError):
    """A raw record failed validation at the boundary.

    Raised when:
    - A replaceable record is missing its ``d`` tag
    - A required tag (``start``, ``status``) is missing or unparseable
    - The wire mapping cannot be coerced into a RawRecord
    """


class TimezoneConversionError(NostrCalError):
    """Wall-clock to instant conversion failed.

    Raised when:
    - The timezone identifier is rejected by the timezone database
    - The date or time-of-day string cannot be parsed
    """


class TimestampParseError(NostrCalError):
    """A stored timestamp could not be interpreted as seconds or milliseconds."""


class ICSExportError(NostrCalError):
    """Record cannot be rendered as an iCalendar document.

    Raised when the record carries no start value.
    """
