"""Tests for configuration loading and validation."""

import pytest

from resume_tailor.config import (
    Severity,
    TailorConfig,
    apply_env_overrides,
    has_errors,
    load_config,
    resolve_env_placeholders,
    validate_config,
)
from resume_tailor.errors import ValidationError


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "scoring:\n"
        "  quick_win_cache_size: 50\n"
        "agent:\n"
        "  default_layout: classic\n"
        "store:\n"
        "  backend: memory\n",
        encoding="utf-8",
    )
    return path


class TestLoadConfig:
    def test_yaml_values_override_defaults(self, config_file, tmp_path):
        config = load_config(str(config_file), env_file=str(tmp_path / "missing.env"))
        assert config.scoring.quick_win_cache_size == 50
        assert config.scoring.quick_win_ttl_seconds == 1800
        assert config.agent.default_layout == "classic"
        assert config.store.backend == "memory"

    def test_env_overrides_win(self, config_file, tmp_path, monkeypatch):
        monkeypatch.setenv("RESUME_TAILOR_DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("RESUME_TAILOR_SUGGESTIONS_ENABLED", "true")
        monkeypatch.setenv("RESUME_TAILOR_SUGGESTIONS_API_KEY", "sk-test-key-123456")
        config = load_config(str(config_file), env_file=str(tmp_path / "missing.env"))
        assert config.store.db_path == str(tmp_path / "env.db")
        assert config.suggestions.enabled is True
        assert config.suggestions.api_key == "sk-test-key-123456"

    def test_dotenv_file_is_loaded(self, config_file, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("RESUME_TAILOR_LOG_LEVEL=DEBUG\n", encoding="utf-8")
        # register the key so teardown removes what load_dotenv sets
        monkeypatch.setenv("RESUME_TAILOR_LOG_LEVEL", "unset")
        monkeypatch.delenv("RESUME_TAILOR_LOG_LEVEL")
        config = load_config(str(config_file), env_file=str(env_file))
        assert config.logging.level == "DEBUG"

    def test_invalid_config_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("store:\n  backend: redis\n", encoding="utf-8")
        with pytest.raises(ValidationError) as exc:
            load_config(str(path), env_file=str(tmp_path / "missing.env"))
        assert exc.value.details["issues"][0]["field"] == "store.backend"

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "nope.yaml"), env_file=str(tmp_path / "missing.env"))
        assert config == TailorConfig()


class TestValidateConfig:
    def test_empty_config_is_valid(self):
        assert validate_config({}) == []

    def test_bad_numbers_are_errors(self):
        issues = validate_config({"scoring": {"quick_win_cache_size": 0}, "agent": {"scrape_timeout_seconds": -1}})
        assert has_errors(issues)
        assert {i.field for i in issues} == {"scoring.quick_win_cache_size", "agent.scrape_timeout_seconds"}

    def test_suggestion_bounds(self):
        issues = validate_config({"agent": {"min_suggested_actions": 6, "max_suggested_actions": 5}})
        assert issues[0].field == "agent.min_suggested_actions"

    def test_enabled_suggestions_without_key_is_a_warning(self):
        issues = validate_config({"suggestions": {"enabled": True, "api_key": ""}})
        assert [i.severity for i in issues] == [Severity.WARNING]
        assert not has_errors(issues)

    def test_unknown_log_level_is_a_warning(self):
        issues = validate_config({"logging": {"level": "chatty"}})
        assert issues[0].severity == Severity.WARNING

    def test_section_must_be_mapping(self):
        issues = validate_config({"store": "sqlite"})
        assert issues[0].field == "store"


class TestHelpers:
    def test_placeholders_resolve_from_environment(self, monkeypatch):
        monkeypatch.setenv("MY_KEY", "secret")
        assert resolve_env_placeholders({"a": "${MY_KEY}", "b": ["${UNSET_VAR_XYZ}"]}) == {"a": "secret", "b": [""]}

    def test_apply_env_overrides_does_not_mutate(self):
        raw = {"store": {"db_path": "a.db"}}
        merged = apply_env_overrides(raw, {"RESUME_TAILOR_DB_PATH": "b.db"})
        assert merged["store"]["db_path"] == "b.db"
        assert raw["store"]["db_path"] == "a.db"
