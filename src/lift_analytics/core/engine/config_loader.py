"""
YAML → typed config loader.

Loads engine tunables from engine.yaml (bundled with the package) and
optionally merges user overrides from ~/.lift-analytics/engine.yaml.

Usage:
    from lift_analytics.core.engine.config_loader import load_settings
    settings = load_settings()
    settings.plateau_threshold

If the bundled YAML cannot be parsed, all lookups fall back to the Python
defaults from config.py (no crash).  A user override file with parse errors
is logged and ignored.
"""

from __future__ import annotations

import importlib.resources
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from ..config import EngineSettings

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; return {} on any read or parse error."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        LOGGER.warning("config.unreadable path=%s error=%s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_bundled_yaml_path() -> Path | None:
    """Return the path to the bundled engine.yaml, or None if not found."""
    ref = importlib.resources.files("lift_analytics").joinpath("engine.yaml")
    candidate = Path(str(ref))
    if candidate.exists():
        return candidate
    # Source checkout without an install: look relative to the package root
    candidate = Path(__file__).parent.parent.parent / "engine.yaml"
    return candidate if candidate.exists() else None


def get_user_yaml_path() -> Path | None:
    """Return ~/.lift-analytics/engine.yaml if it exists, else None."""
    home = Path(os.environ.get("HOME", "~")).expanduser()
    p = home / ".lift-analytics" / "engine.yaml"
    return p if p.exists() else None


def load_model_config(extra_path: Path | None = None) -> dict[str, Any]:
    """
    Load and merge engine configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled src/lift_analytics/engine.yaml
    2. User override at ~/.lift-analytics/engine.yaml
    3. extra_path, when given (e.g. the CLI --config option)

    Returns:
        Merged dict of config sections.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path()
    if bundled is not None:
        config = _deep_merge(config, _load_yaml_file(bundled))

    for path in (get_user_yaml_path(), extra_path):
        if path is None:
            continue
        override = _load_yaml_file(path)
        if override:
            config = _deep_merge(config, override)

    return config


def load_settings(extra_path: Path | None = None) -> EngineSettings:
    """Load EngineSettings from the merged YAML configuration."""
    return EngineSettings.from_config(load_model_config(extra_path))
