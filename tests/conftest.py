import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from skillminer import config as config_module
from skillminer.core.log import configure_logging

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _configure_env(monkeypatch, root: Path) -> Path:
    config_root = root / "config"
    config_home = config_root / "skillminer"
    config_home.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_root))
    for name in list(os.environ):
        if name.startswith("SKILLMINER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_LOCATIONS", [config_home / "config.json"])
    return config_home


@pytest.fixture(autouse=True)
def config_env(tmp_path, monkeypatch):
    """Keep the user's real config file and SKILLMINER_* variables out of every test."""
    return _configure_env(monkeypatch, tmp_path)


@pytest.fixture(scope="session", autouse=True)
def _debug_logging():
    configure_logging(verbose=True)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def drafts_dir(tmp_path):
    path = tmp_path / "drafts"
    path.mkdir()
    return path


@pytest.fixture
def projects_dir(tmp_path):
    path = tmp_path / "projects"
    path.mkdir()
    return path
