"""Unit tests for nostrcal_lite.config_loader."""

import pytest

from nostrcal_lite.config_loader import Config, apply_env_overrides, load_config

pytestmark = pytest.mark.unit


@pytest.fixture
def config_file(tmp_path):
    def _write(text: str):
        path = tmp_path / "config.yaml"
        path.write_text(text)
        return str(path)

    return _write


class TestLoadConfig:
    def test_missing_file_returns_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "missing.yaml"), environ={})

        assert config == Config()
        assert config.attachment_kinds == [31925]
        assert config.max_occurrences == 6

    def test_empty_file_returns_defaults(self, config_file):
        assert load_config(config_file(""), environ={}) == Config()

    def test_reads_yaml_values(self, config_file):
        path = config_file(
            "viewer_timezone: Europe/Madrid\n"
            "fetch_limit: 25\n"
            "fetch_timeout_seconds: 2.5\n"
            "geohash_precision: 6\n"
            "attachment_kinds: [31925, 7]\n"
            "log_level: debug\n"
        )

        config = load_config(path, environ={})

        assert config.viewer_timezone == "Europe/Madrid"
        assert config.fetch_limit == 25
        assert config.fetch_timeout_seconds == 2.5
        assert config.geohash_precision == 6
        assert config.attachment_kinds == [31925, 7]
        assert config.log_level == "DEBUG"

    def test_path_from_environment(self, config_file):
        path = config_file("fetch_limit: 7\n")

        assert load_config(environ={"NOSTRCAL_CONFIG": path}).fetch_limit == 7

    def test_non_mapping_raises(self, config_file):
        with pytest.raises(ValueError):
            load_config(config_file("- just\n- a list\n"), environ={})

    def test_environment_overrides_file(self, config_file):
        path = config_file("fetch_limit: 25\nviewer_timezone: Europe/Madrid\n")

        config = load_config(path, environ={"NOSTRCAL_FETCH_LIMIT": "50", "NOSTRCAL_VIEWER_TIMEZONE": "Asia/Tokyo"})

        assert config.fetch_limit == 50
        assert config.viewer_timezone == "Asia/Tokyo"


class TestFromDict:
    def test_out_of_range_values_are_clamped(self, caplog):
        config = Config.from_dict(
            {"max_occurrences": 10, "geohash_precision": 0, "recurrence_horizon_days": 1000, "fetch_limit": -3}
        )

        assert config.max_occurrences == 6
        assert config.geohash_precision == 1
        assert config.recurrence_horizon_days == 365
        assert config.fetch_limit == 1
        assert "above maximum" in caplog.text

    def test_invalid_values_use_defaults(self):
        config = Config.from_dict(
            {"fetch_limit": "many", "fetch_timeout_seconds": -1, "viewer_timezone": "Mars/Base"}
        )

        assert config.fetch_limit == 100
        assert config.fetch_timeout_seconds == 5.0
        assert config.viewer_timezone is None

    def test_scalar_attachment_kind_becomes_list(self):
        assert Config.from_dict({"attachment_kinds": 31925}).attachment_kinds == [31925]

    def test_non_integer_attachment_kinds_are_dropped(self):
        assert Config.from_dict({"attachment_kinds": [31925, "rsvp"]}).attachment_kinds == [31925]

    def test_empty_replaceable_band_uses_defaults(self):
        config = Config.from_dict({"replaceable_kind_min": 500, "replaceable_kind_max": 100})

        assert (config.replaceable_kind_min, config.replaceable_kind_max) == (30000, 39999)

    def test_kind_policy(self):
        policy = Config.from_dict({"replaceable_kind_min": 100, "replaceable_kind_max": 200}).kind_policy

        assert policy.is_replaceable(150)
        assert not policy.is_replaceable(31922)
        assert policy.is_attachment(31925)

    def test_to_dict_round_trips(self):
        config = Config.from_dict({"viewer_timezone": "UTC", "fetch_limit": 10})

        assert Config.from_dict(config.to_dict()) == config


class TestEnvOverrides:
    def test_no_overrides_returns_same_config(self):
        config = Config()

        assert apply_env_overrides(config, {}) is config

    def test_override_values_are_validated(self):
        config = apply_env_overrides(Config(), {"NOSTRCAL_GEOHASH_PRECISION": "40", "NOSTRCAL_LOG_LEVEL": "warning"})

        assert config.geohash_precision == 12
        assert config.log_level == "WARNING"

    def test_empty_values_are_ignored(self):
        assert apply_env_overrides(Config(), {"NOSTRCAL_FETCH_LIMIT": ""}).fetch_limit == 100
