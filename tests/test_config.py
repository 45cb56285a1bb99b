"""
Tests for tracker configuration loading.

Covers:
- Defaults
- YAML and JSON files
- Environment overrides
- Invalid settings
"""

import json

import pytest

from work_order_tracker.config import TrackerConfig, load_config
from work_order_tracker.core.exceptions import ConfigurationError


class TestTrackerConfig:
    """Tests for the settings dataclass."""

    def test_defaults(self):
        config = TrackerConfig()

        assert config.retry_config() == {
            "max_attempts": 3,
            "initial_delay": 1.0,
            "max_delay": 60.0,
            "exponential_base": 2.0,
            "jitter": False
        }
        assert config.sequence_strategy == "count"
        assert config.enforce_terminal_stop is True

    @pytest.mark.parametrize("settings", [
        {"max_attempts": 0},
        {"initial_delay": -1},
        {"exponential_base": 0.5},
        {"sequence_strategy": "uuid"},
        {"log_level": "LOUD"},
    ])
    def test_invalid_values(self, settings):
        with pytest.raises(ConfigurationError):
            TrackerConfig(**settings)

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            TrackerConfig.from_dict({"max_retries": 5})

        assert exc_info.value.details["config_key"] == "max_retries"


class TestLoadConfig:
    """Tests for file and environment loading."""

    def test_no_file(self):
        assert load_config(environ={}) == TrackerConfig()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text("max_attempts: 5\nsequence_strategy: counter\nparts_collection: spares\n")

        config = load_config(str(path), environ={})

        assert config.max_attempts == 5
        assert config.sequence_strategy == "counter"
        assert config.parts_collection == "spares"

    def test_json_file(self, tmp_path):
        path = tmp_path / "tracker.json"
        path.write_text(json.dumps({"initial_delay": 0.25, "structured_logging": False}))

        config = load_config(str(path), environ={})

        assert config.initial_delay == 0.25
        assert config.structured_logging is False

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "tracker.yml"
        path.write_text("")

        assert load_config(str(path), environ={}) == TrackerConfig()

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text("max_attempts: 5\nlog_level: DEBUG\n")
        environ = {
            "WORK_ORDER_TRACKER_MAX_ATTEMPTS": "7",
            "WORK_ORDER_TRACKER_JITTER": "yes",
            "WORK_ORDER_TRACKER_INITIAL_DELAY": "0.5",
            "WORK_ORDER_TRACKER_DATABASE_URL": "postgresql://localhost/tracker",
        }

        config = load_config(str(path), environ=environ)

        assert config.max_attempts == 7
        assert config.jitter is True
        assert config.initial_delay == 0.5
        assert config.database_url == "postgresql://localhost/tracker"
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("name,value", [
        ("WORK_ORDER_TRACKER_MAX_ATTEMPTS", "three"),
        ("WORK_ORDER_TRACKER_ENFORCE_TERMINAL_STOP", "maybe"),
    ])
    def test_bad_environment_value(self, name, value):
        with pytest.raises(ConfigurationError):
            load_config(environ={name: value})

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text("max_attempts: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path), environ={})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path), environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(str(tmp_path / "absent.yaml"), environ={})
