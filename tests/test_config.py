"""
Tests for settings loading.
"""

import json

import pytest

from mflow.core.config import Settings, coerce_value, get_env_config, load_config


class TestSettings:
    def test_defaults(self, monkeypatch):
        for key in list(get_env_config()):
            monkeypatch.delenv(f"MFLOW_{key.upper()}")
        settings = load_config()
        assert settings == Settings()
        assert settings.execution_policy == "reject"

    def test_bad_policy(self):
        with pytest.raises(ValueError):
            Settings(execution_policy="parallel")

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("MFLOW_ENGINE_URL", "http://engine:9000")
        monkeypatch.setenv("MFLOW_PORT", "8100")
        monkeypatch.setenv("MFLOW_ENGINE_TIMEOUT", "30")
        monkeypatch.setenv("MFLOW_LOG_JSON", "true")
        monkeypatch.setenv("MFLOW_UNRELATED", "ignored")
        settings = load_config()
        assert settings.engine_url == "http://engine:9000"
        assert settings.port == 8100
        assert settings.engine_timeout == 30.0
        assert settings.log_json is True

    def test_file_then_env(self, tmp_path, monkeypatch):
        path = tmp_path / "mflow.json"
        path.write_text(json.dumps({"execution_policy": "queue", "port": 9001, "unknown": 1}))
        monkeypatch.setenv("MFLOW_PORT", "9002")
        settings = load_config(path)
        assert settings.execution_policy == "queue"
        assert settings.port == 9002

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.json")

    def test_save_and_load(self, tmp_path, monkeypatch):
        for key in list(get_env_config()):
            monkeypatch.delenv(f"MFLOW_{key.upper()}")
        path = tmp_path / "mflow.json"
        Settings(engine_command="media-engine --stdio", log_level="DEBUG").save(path)
        loaded = Settings.load(path)
        assert loaded.engine_command == "media-engine --stdio"
        assert loaded.log_level == "DEBUG"

    def test_get_env_config(self, monkeypatch):
        monkeypatch.setenv("TEST_PREFIX_LOG_LEVEL", "DEBUG")
        assert get_env_config("TEST_PREFIX_") == {"log_level": "DEBUG"}


class TestCoerceValue:
    @pytest.mark.parametrize("value,current,expected", [
        ("yes", False, True),
        ("0", True, False),
        ("12", 0, 12),
        ("2.5", 1.0, 2.5),
        ("12", "", "12"),
        ("12", None, "12"),
    ])
    def test_follows_current_type(self, value, current, expected):
        result = coerce_value(value, current)
        assert result == expected
        assert type(result) is type(expected)

    def test_bad_number(self):
        with pytest.raises(ValueError):
            coerce_value("abc", 5)
