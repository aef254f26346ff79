"""nostrcal_lite.config_loader

Config loader for nostrcal_lite.

- Reads YAML (PyYAML; JSON documents are valid YAML too).
- Exposes a typed dataclass `Config`, a `load_config()` helper that accepts
  an optional path override, and `NOSTRCAL_*` environment overrides.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from .core.timezone_utils import VIEWER_TIMEZONE_ENV, is_valid_timezone
from .records.record_kinds import CALENDAR_RSVP, REPLACEABLE_KIND_MAX, REPLACEABLE_KIND_MIN, KindPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("nostrcal_lite") / "config.yaml"
CONFIG_PATH_ENV = "NOSTRCAL_CONFIG"

# Environment variable -> Config field
ENV_OVERRIDES = {
    VIEWER_TIMEZONE_ENV: "viewer_timezone",
    "NOSTRCAL_LOG_LEVEL": "log_level",
    "NOSTRCAL_FETCH_LIMIT": "fetch_limit",
    "NOSTRCAL_FETCH_TIMEOUT": "fetch_timeout_seconds",
    "NOSTRCAL_GEOHASH_PRECISION": "geohash_precision",
}


@dataclass
class Config:
    """Typed configuration for nostrcal_lite.

    Fields:
        viewer_timezone: IANA zone used for display fallbacks (host zone when None)
        replaceable_kind_min: lower bound of the replaceable kind band
        replaceable_kind_max: upper bound of the replaceable kind band
        attachment_kinds: kinds that are never coalesced (RSVPs)
        max_occurrences: hard cap on recurrence expansion (1..6)
        recurrence_horizon_days: safety bound on recurrence expansion
        geohash_precision: characters written to ``g`` tags (1..12)
        fetch_limit: per-filter limit sent to the record store
        fetch_timeout_seconds: wait before falling back to the cache
        log_level: logging level name
    """

    viewer_timezone: str | None = None
    replaceable_kind_min: int = REPLACEABLE_KIND_MIN
    replaceable_kind_max: int = REPLACEABLE_KIND_MAX
    attachment_kinds: list[int] = field(default_factory=lambda: [CALENDAR_RSVP])
    max_occurrences: int = 6
    recurrence_horizon_days: int = 365
    geohash_precision: int = 9
    fetch_limit: int = 100
    fetch_timeout_seconds: float = 5.0
    log_level: str = "INFO"

    @property
    def kind_policy(self) -> KindPolicy:
        return KindPolicy(
            replaceable_min=self.replaceable_kind_min,
            replaceable_max=self.replaceable_kind_max,
            attachment_kinds=frozenset(self.attachment_kinds),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Values are coerced to their field types; out-of-range values are
        clamped and invalid ones replaced by defaults, logging a warning
        instead of raising.
        """
        if data is None:
            data = {}
        defaults = cls()

        def _coerce_int(key: str, default: int, low: int | None = None, high: int | None = None) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if low is not None and value < low:
                logger.warning("Config %s %d below minimum; coercing to %d", key, value, low)
                value = low
            elif high is not None and value > high:
                logger.warning("Config %s %d above maximum; coercing to %d", key, value, high)
                value = high
            return value

        viewer_timezone = data.get("viewer_timezone")
        if viewer_timezone is not None:
            viewer_timezone = str(viewer_timezone)
            if not is_valid_timezone(viewer_timezone):
                logger.warning("Config viewer_timezone %r is not a known zone; using host zone", viewer_timezone)
                viewer_timezone = None

        band_min = _coerce_int("replaceable_kind_min", defaults.replaceable_kind_min, low=0)
        band_max = _coerce_int("replaceable_kind_max", defaults.replaceable_kind_max, low=0)
        if band_max < band_min:
            logger.warning("Replaceable band %d..%d is empty; using defaults", band_min, band_max)
            band_min, band_max = defaults.replaceable_kind_min, defaults.replaceable_kind_max

        attachment_raw = data.get("attachment_kinds", defaults.attachment_kinds)
        if not isinstance(attachment_raw, (list, tuple)):
            logger.warning("Config `attachment_kinds` is not a list; coercing to single-item list")
            attachment_raw = [attachment_raw]
        attachment_kinds: list[int] = []
        for kind in attachment_raw:
            try:
                attachment_kinds.append(int(kind))
            except (TypeError, ValueError):
                logger.warning("Ignoring non-integer attachment kind %r", kind)

        raw_timeout = data.get("fetch_timeout_seconds", defaults.fetch_timeout_seconds)
        try:
            fetch_timeout = float(raw_timeout)
        except (TypeError, ValueError):
            logger.warning("Config fetch_timeout_seconds=%r is not a number; using default", raw_timeout)
            fetch_timeout = defaults.fetch_timeout_seconds
        if fetch_timeout <= 0:
            logger.warning("fetch_timeout_seconds %s must be positive; using default", fetch_timeout)
            fetch_timeout = defaults.fetch_timeout_seconds

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            viewer_timezone=viewer_timezone,
            replaceable_kind_min=band_min,
            replaceable_kind_max=band_max,
            attachment_kinds=attachment_kinds,
            max_occurrences=_coerce_int("max_occurrences", defaults.max_occurrences, low=1, high=6),
            recurrence_horizon_days=_coerce_int("recurrence_horizon_days", defaults.recurrence_horizon_days, low=1, high=365),
            geohash_precision=_coerce_int("geohash_precision", defaults.geohash_precision, low=1, high=12),
            fetch_limit=_coerce_int("fetch_limit", defaults.fetch_limit, low=1),
            fetch_timeout_seconds=fetch_timeout,
            log_level=log_level,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "viewer_timezone": self.viewer_timezone,
            "replaceable_kind_min": self.replaceable_kind_min,
            "replaceable_kind_max": self.replaceable_kind_max,
            "attachment_kinds": list(self.attachment_kinds),
            "max_occurrences": self.max_occurrences,
            "recurrence_horizon_days": self.recurrence_horizon_days,
            "geohash_precision": self.geohash_precision,
            "fetch_limit": self.fetch_limit,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "log_level": self.log_level,
        }


def _load_yaml(path: Path) -> Any:
    """Load a YAML document; empty files load as an empty mapping."""
    loaded = yaml.safe_load(path.read_text())
    if loaded is None:
        return {}
    return loaded


def apply_env_overrides(config: Config, environ: Mapping[str, str] | None = None) -> Config:
    """Return a copy of ``config`` with ``NOSTRCAL_*`` environment values applied."""
    env = os.environ if environ is None else environ
    overrides = {field_name: env[var] for var, field_name in ENV_OVERRIDES.items() if env.get(var)}
    if not overrides:
        return config
    logger.debug("Applying environment overrides: %s", sorted(overrides))
    merged = Config.from_dict({**config.to_dict(), **overrides})
    return replace(config, **{name: getattr(merged, name) for name in overrides})


def load_config(path: str | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """Load configuration from a YAML file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to NOSTRCAL_CONFIG or
              ./nostrcal_lite/config.yaml (relative to current working dir).
        environ: Environment mapping for overrides (``os.environ`` when None)

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    - Environment overrides are applied last.

    Raises:
        ValueError: If the file does not hold a mapping
        yaml.YAMLError: If the file is not valid YAML
    """
    env = os.environ if environ is None else environ
    p = Path(path or env.get(CONFIG_PATH_ENV) or Path.cwd() / DEFAULT_CONFIG_PATH)
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return apply_env_overrides(Config(), env)

    raw = _load_yaml(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = apply_env_overrides(Config.from_dict(raw), env)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
