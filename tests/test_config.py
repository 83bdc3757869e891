"""Tests for MineSettings loading: defaults, env vars, JSON file, overrides."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from skillminer.config import MineSettings
from skillminer.errors import ConfigError


class TestDefaults:
    def test_defaults(self):
        settings = MineSettings.load()
        assert settings.max_days == 30
        assert settings.min_messages == 4
        assert settings.parallel == 4
        assert settings.min_significance == 0.3
        assert settings.max_windows is None
        assert settings.projects_dir == Path.home() / ".claude" / "projects"

    def test_drafts_dir_defaults_under_skills_dir(self, tmp_path):
        settings = MineSettings.build(skills_dir=str(tmp_path / "skills"))
        assert settings.drafts_dir == tmp_path / "skills" / "drafts"

    def test_max_lookback_hours(self):
        assert MineSettings.build(max_days=2).max_lookback_hours == 48

    def test_paths_expand_user(self):
        settings = MineSettings.build(projects_dir="~/somewhere")
        assert settings.projects_dir == Path.home() / "somewhere"


class TestSources:
    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("SKILLMINER_PARALLEL", "8")
        monkeypatch.setenv("SKILLMINER_MIN_SIGNIFICANCE", "0.5")
        settings = MineSettings.load()
        assert settings.parallel == 8
        assert settings.min_significance == 0.5

    def test_config_file_in_default_location(self, config_env):
        (config_env / "config.json").write_text(json.dumps({"max_days": 7, "ai_model": "sonnet"}))
        settings = MineSettings.load()
        assert settings.max_days == 7
        assert settings.ai_model == "sonnet"
        assert settings.config_path == config_env / "config.json"

    def test_config_file_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"min_messages": 10}))
        monkeypatch.setenv("SKILLMINER_CONFIG", str(path))
        assert MineSettings.load().min_messages == 10

    def test_overrides_beat_file(self, config_env):
        (config_env / "config.json").write_text(json.dumps({"parallel": 2}))
        assert MineSettings.load(parallel=6).parallel == 6

    def test_none_override_falls_through(self, config_env):
        (config_env / "config.json").write_text(json.dumps({"parallel": 2}))
        assert MineSettings.load(parallel=None).parallel == 2

    def test_config_path_key_in_file_ignored(self, config_env):
        path = config_env / "config.json"
        path.write_text(json.dumps({"config_path": "/elsewhere.json", "parallel": 3}))
        settings = MineSettings.load()
        assert settings.config_path == path
        assert settings.parallel == 3


class TestErrors:
    def test_malformed_file_raises(self, config_env):
        (config_env / "config.json").write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            MineSettings.load()

    def test_non_object_file_raises(self, config_env):
        (config_env / "config.json").write_text("[1, 2]")
        with pytest.raises(ConfigError, match="JSON object"):
            MineSettings.load()

    def test_missing_env_file_raises(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SKILLMINER_CONFIG", str(tmp_path / "absent.json"))
        with pytest.raises(ConfigError, match="missing file"):
            MineSettings.load()

    @pytest.mark.parametrize(
        "field,value",
        [("parallel", 0), ("min_significance", 1.5), ("max_days", 0), ("max_windows", -1)],
    )
    def test_invalid_values_raise(self, field, value):
        with pytest.raises(ConfigError):
            MineSettings.build(**{field: value})
