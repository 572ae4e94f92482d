"""Tests for YAML-backed engine settings."""

import pytest

from lift_analytics.core.config import DEFAULT_SETTINGS, EngineSettings
from lift_analytics.core.engine.config_loader import (
    get_bundled_yaml_path,
    load_model_config,
    load_settings,
)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep a real ~/.lift-analytics/engine.yaml out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


class TestBundledConfig:
    def test_bundled_yaml_found(self):
        assert get_bundled_yaml_path() is not None

    def test_bundled_matches_defaults(self):
        assert load_settings() == DEFAULT_SETTINGS

    def test_sections_present(self):
        config = load_model_config()
        assert config["milestones"]["achievement_dedup_hours"] == 24
        assert config["forecast"]["min_forecast_points"] == 3


class TestOverrides:
    def test_user_override(self, isolated_home):
        user_dir = isolated_home / ".lift-analytics"
        user_dir.mkdir()
        (user_dir / "engine.yaml").write_text("progression:\n  plateau_threshold: 0.1\n")

        settings = load_settings()
        assert settings.plateau_threshold == pytest.approx(0.1)
        assert settings.weight_increment == pytest.approx(2.5)

    def test_extra_path_wins(self, isolated_home):
        extra = isolated_home / "custom.yaml"
        extra.write_text("weights:\n  weight_increment: 1.25\nmilestones:\n  achievement_dedup_hours: 12\n")

        settings = load_settings(extra)
        assert settings.weight_increment == pytest.approx(1.25)
        assert settings.achievement_dedup_hours == 12

    def test_broken_override_ignored(self, isolated_home):
        extra = isolated_home / "broken.yaml"
        extra.write_text("weights: [unclosed\n")
        assert load_settings(extra) == DEFAULT_SETTINGS


class TestFromConfig:
    def test_unknown_keys_ignored(self):
        settings = EngineSettings.from_config({"misc": {"colour": "blue"}, "title": "x"})
        assert settings == DEFAULT_SETTINGS

    def test_coerces_numbers(self):
        settings = EngineSettings.from_config({"forecast": {"regression_window": "8"}})
        assert settings.regression_window == 8

    def test_invalid_value(self):
        with pytest.raises(ValueError, match="regression_window"):
            EngineSettings.from_config({"forecast": {"regression_window": "many"}})

    def test_out_of_range_value(self):
        with pytest.raises(ValueError):
            EngineSettings.from_config({"weights": {"weight_increment": 0}})
