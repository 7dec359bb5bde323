"""Unit tests for configuration loading, environment overrides and the test clock."""

import logging
from datetime import datetime

import pytest

from reminderbot_lite.config_loader import Config, load_config
from reminderbot_lite.core.config_manager import ConfigManager, parse_env_file
from reminderbot_lite.core.time_utils import now_local, today_local
from reminderbot_lite.lite_logging import configure_lite_logging, get_logging_status

pytestmark = pytest.mark.unit


class TestConfigFromDict:
    def test_from_dict_when_empty_then_defaults(self) -> None:
        cfg = Config.from_dict(None)

        assert cfg.events_file == "events.json"
        assert cfg.check_interval_seconds == 60
        assert cfg.lookahead_minutes == 30
        assert cfg.default_lead_minutes == 15
        assert cfg.default_event_hour == 9
        assert cfg.notification_display_seconds == 10
        assert cfg.webhook_url is None
        assert cfg.log_level == "INFO"

    def test_from_dict_when_interval_out_of_range_then_clamped(self, caplog) -> None:
        assert Config.from_dict({"check_interval_seconds": 5}).check_interval_seconds == 10
        assert Config.from_dict({"check_interval_seconds": "900"}).check_interval_seconds == 600
        assert "below minimum" in caplog.text

    def test_from_dict_when_value_not_numeric_then_default(self) -> None:
        assert Config.from_dict({"lookahead_minutes": "soon"}).lookahead_minutes == 30

    def test_from_dict_when_strings_given_then_normalized(self) -> None:
        cfg = Config.from_dict({"log_level": "debug", "webhook_url": "http://hook.local/alerts"})
        assert cfg.log_level == "DEBUG"
        assert cfg.webhook_url == "http://hook.local/alerts"


class TestLoadConfig:
    def test_load_config_when_file_missing_then_defaults(self, tmp_path) -> None:
        cfg = load_config(str(tmp_path / "absent.yaml"))
        assert cfg == Config()

    def test_load_config_when_yaml_present_then_values_read(self, tmp_path) -> None:
        path = tmp_path / "reminderbot.yaml"
        path.write_text("events_file: my-events.json\ncheck_interval_seconds: 30\n")

        cfg = load_config(str(path))

        assert cfg.events_file == "my-events.json"
        assert cfg.check_interval_seconds == 30

    def test_load_config_when_overrides_given_then_they_win(self, tmp_path) -> None:
        path = tmp_path / "reminderbot.yaml"
        path.write_text("check_interval_seconds: 30\n")

        cfg = load_config(str(path), {"check_interval_seconds": 120})

        assert cfg.check_interval_seconds == 120

    def test_load_config_when_top_level_not_mapping_then_raises(self, tmp_path) -> None:
        path = tmp_path / "reminderbot.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))


class TestConfigManager:
    def test_parse_env_file_when_quoted_and_commented_then_parsed(self, tmp_path) -> None:
        env = tmp_path / ".env"
        env.write_text('# comment\nREMINDERBOT_EVENTS_FILE="ev.json"\n\nnoequals\nA = \'b\'\n')

        assert parse_env_file(env) == {"REMINDERBOT_EVENTS_FILE": "ev.json", "A": "b"}

    def test_parse_env_file_when_missing_then_empty(self, tmp_path) -> None:
        assert parse_env_file(tmp_path / ".env") == {}

    def test_load_env_file_when_variable_already_set_then_not_overridden(
        self, tmp_path, monkeypatch
    ) -> None:
        env = tmp_path / ".env"
        env.write_text("REMINDERBOT_LOG_LEVEL=DEBUG\nREMINDERBOT_EVENTS_FILE=from-env-file.json\n")
        monkeypatch.setenv("REMINDERBOT_LOG_LEVEL", "WARNING")
        # load_env_file writes os.environ directly; register the key so it is restored
        monkeypatch.setenv("REMINDERBOT_EVENTS_FILE", "placeholder")
        monkeypatch.delenv("REMINDERBOT_EVENTS_FILE")

        loaded = ConfigManager(env).load_env_file()

        assert loaded == ["REMINDERBOT_EVENTS_FILE"]
        overrides = ConfigManager(env).build_config_from_env()
        assert overrides["log_level"] == "WARNING"
        assert overrides["events_file"] == "from-env-file.json"

    def test_build_config_from_env_when_interval_invalid_then_ignored(
        self, tmp_path, monkeypatch
    ) -> None:
        monkeypatch.setenv("REMINDERBOT_CHECK_INTERVAL", "often")
        monkeypatch.setenv("REMINDERBOT_SENT_STORE", "/tmp/sent.json")
        monkeypatch.setenv("REMINDERBOT_WEBHOOK_URL", "http://hook.local")

        overrides = ConfigManager(tmp_path / ".env").load_overrides()

        assert "check_interval_seconds" not in overrides
        assert overrides["sent_store_path"] == "/tmp/sent.json"
        assert overrides["webhook_url"] == "http://hook.local"


class TestClock:
    def test_now_local_when_test_time_set_then_frozen(self, monkeypatch) -> None:
        monkeypatch.setenv("REMINDERBOT_TEST_TIME", "2025-01-06T13:45:00")

        assert now_local() == datetime(2025, 1, 6, 13, 45)
        assert today_local().isoformat() == "2025-01-06"

    def test_now_local_when_test_time_invalid_then_real_clock(self, monkeypatch, caplog) -> None:
        monkeypatch.setenv("REMINDERBOT_TEST_TIME", "whenever")
        before = datetime.now()

        assert now_local() >= before
        assert "Failed to parse REMINDERBOT_TEST_TIME" in caplog.text


class TestLogging:
    def test_configure_lite_logging_when_debug_env_then_modules_at_debug(self, monkeypatch) -> None:
        monkeypatch.setenv("REMINDERBOT_DEBUG", "yes")

        configure_lite_logging()

        assert logging.getLogger("reminderbot_lite").level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
        status = get_logging_status()
        assert status["reminderbot_lite"] == "DEBUG"

    def test_configure_lite_logging_when_default_then_info(self) -> None:
        configure_lite_logging(debug_mode=False)
        assert logging.getLogger("reminderbot_lite").level == logging.INFO
