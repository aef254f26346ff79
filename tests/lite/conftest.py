import itertools
from collections.abc import Generator, Sequence
from typing import Any, Callable, Optional

import pytest

from nostrcal_lite.core.timezone_utils import TEST_TIME_ENV, VIEWER_TIMEZONE_ENV
from nostrcal_lite.records.lite_models import RawRecord

# 2024-05-05 14:00:00 UTC (16:00 in Madrid)
MADRID_FOUR_PM = 1714917600


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Pin the viewer timezone to UTC and clear any frozen test time.

    Display fallbacks use the viewer zone, so tests would otherwise depend on
    the host's local timezone.
    """
    monkeypatch.setenv(VIEWER_TIMEZONE_ENV, "UTC")
    monkeypatch.delenv(TEST_TIME_ENV, raising=False)
    monkeypatch.delenv("NOSTRCAL_CONFIG", raising=False)
    monkeypatch.delenv("NOSTRCAL_DEBUG", raising=False)
    monkeypatch.delenv("NOSTRCAL_LOG_LEVEL", raising=False)
    yield


@pytest.fixture
def frozen_now(monkeypatch: Any) -> int:
    """Freeze now_utc() at MADRID_FOUR_PM."""
    monkeypatch.setenv(TEST_TIME_ENV, "2024-05-05T14:00:00Z")
    return MADRID_FOUR_PM


@pytest.fixture
def make_record() -> Callable[..., RawRecord]:
    """Factory for RawRecords with sequential ids."""
    counter = itertools.count(1)

    def _make(
        kind: int = 31922,
        author: str = "A",
        created_at: int = 1000,
        tags: Sequence[Sequence[str]] = (),
        content: str = "",
        record_id: Optional[str] = None,
    ) -> RawRecord:
        return RawRecord(
            id=record_id or f"rec{next(counter)}",
            pubkey=author,
            created_at=created_at,
            kind=kind,
            content=content,
            tags=tuple(tuple(tag) for tag in tags),
        )

    return _make
