"""Shared filesystem paths for skillminer."""

from __future__ import annotations

import os
from pathlib import Path


def _xdg_path(env_var: str, fallback: Path) -> Path:
    raw = os.environ.get(env_var)
    if raw:
        return Path(raw).expanduser()
    return fallback


CONFIG_ROOT = _xdg_path("XDG_CONFIG_HOME", Path.home() / ".config")

CONFIG_HOME = CONFIG_ROOT / "skillminer"

CLAUDE_HOME = Path.home() / ".claude"
DEFAULT_PROJECTS_DIR = CLAUDE_HOME / "projects"
DEFAULT_SKILLS_DIR = CLAUDE_HOME / "skills"

MANIFEST_FILENAME = "manifest.json"


__all__ = [
    "CONFIG_ROOT",
    "CONFIG_HOME",
    "CLAUDE_HOME",
    "DEFAULT_PROJECTS_DIR",
    "DEFAULT_SKILLS_DIR",
    "MANIFEST_FILENAME",
]
