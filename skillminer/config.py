"""Configuration using Pydantic Settings for automatic env var support."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.json import JSONDecodeError, loads
from .errors import ConfigError
from .paths import CONFIG_HOME, DEFAULT_PROJECTS_DIR, DEFAULT_SKILLS_DIR

CONFIG_ENV = "SKILLMINER_CONFIG"
DEFAULT_CONFIG_LOCATIONS = [CONFIG_HOME / "config.json"]


class MineSettings(BaseSettings):
    """Settings for a mining run.

    Sources, lowest precedence first:
    - field defaults
    - environment variables (``SKILLMINER_*``)
    - JSON config file (``SKILLMINER_CONFIG`` or ``$XDG_CONFIG_HOME/skillminer/config.json``)
    - explicit keyword arguments (CLI options)

    ``None`` keyword arguments are dropped, so unset CLI options fall through.
    """

    projects_dir: Path = Field(default=DEFAULT_PROJECTS_DIR)
    skills_dir: Path = Field(default=DEFAULT_SKILLS_DIR)
    drafts_dir: Optional[Path] = Field(default=None)

    max_days: int = Field(default=30, ge=1)
    max_windows: Optional[int] = Field(default=None, ge=0)
    min_messages: int = Field(default=4, ge=1)
    parallel: int = Field(default=4, ge=1)
    min_significance: float = Field(default=0.3, ge=0.0, le=1.0)

    ai_command: str = Field(default="claude")
    ai_model: Optional[str] = Field(default=None)
    ai_timeout: float = Field(default=300.0, gt=0)
    ai_retries: int = Field(default=2, ge=0)

    config_path: Optional[Path] = Field(default=None, exclude=True)

    model_config = SettingsConfigDict(
        env_prefix="SKILLMINER_",
        extra="ignore",
    )

    @field_validator("projects_dir", "skills_dir", "drafts_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @model_validator(mode="after")
    def default_drafts_dir(self) -> "MineSettings":
        if self.drafts_dir is None:
            self.drafts_dir = self.skills_dir / "drafts"
        return self

    @property
    def max_lookback_hours(self) -> int:
        return self.max_days * 24

    @classmethod
    def from_json_file(cls, path: Path, **overrides: Any) -> "MineSettings":
        """Load settings from a JSON file; keyword overrides win over file values."""
        try:
            data = loads(path.read_bytes())
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        data.pop("config_path", None)
        data.update(overrides)
        return cls.build(config_path=path, **data)

    @classmethod
    def build(cls, **values: Any) -> "MineSettings":
        """Construct settings, turning validation failures into ConfigError."""
        values = {key: value for key, value in values.items() if value is not None}
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    @classmethod
    def load(cls, **overrides: Any) -> "MineSettings":
        """Load settings from standard locations."""
        overrides = {key: value for key, value in overrides.items() if value is not None}
        env_path = os.environ.get(CONFIG_ENV)
        if env_path:
            path = Path(env_path).expanduser()
            if not path.exists():
                raise ConfigError(f"{CONFIG_ENV} points to a missing file: {path}")
            return cls.from_json_file(path, **overrides)

        for path in DEFAULT_CONFIG_LOCATIONS:
            if path.exists():
                return cls.from_json_file(path, **overrides)

        return cls.build(**overrides)


__all__ = ["MineSettings", "CONFIG_ENV", "DEFAULT_CONFIG_LOCATIONS"]
