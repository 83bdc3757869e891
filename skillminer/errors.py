"""skillminer error hierarchy.

All project exceptions inherit from SkillMinerError, enabling:
- ``except SkillMinerError`` at the CLI boundary
- Fine-grained catches deeper in the stack (``except InvalidTransitionError``)

Hierarchy:
    SkillMinerError
    ├── ConfigError
    ├── ParseError
    ├── AIError
    │   ├── TransientAIError                # ai.py
    │   ├── ClassificationError
    │   └── ExtractionError
    ├── DraftWriteError
    └── ManifestError
        ├── InvalidTransitionError
        └── DraftNotFoundError
"""

from __future__ import annotations


class SkillMinerError(Exception):
    """Base class for all skillminer errors."""


class ConfigError(SkillMinerError):
    """Invalid or unreadable configuration, or a missing input directory."""


class ParseError(SkillMinerError):
    """A session file or an AI response could not be parsed."""


class AIError(SkillMinerError):
    """The AI backend failed or returned an unusable response."""


class ClassificationError(AIError):
    """A classification batch failed. Fatal to the run."""


class ExtractionError(AIError):
    """Pattern extraction for one topic failed."""


class DraftWriteError(SkillMinerError):
    """A draft file could not be written to the drafts directory."""


class ManifestError(SkillMinerError):
    """Manifest state could not be read, written or updated."""


class InvalidTransitionError(ManifestError):
    """A draft status change not present in the transition table."""

    def __init__(self, slug: str, current: str, requested: str):
        super().__init__(f"{slug}: cannot move from {current} to {requested}")
        self.slug = slug
        self.current = current
        self.requested = requested


class DraftNotFoundError(ManifestError):
    """No draft record exists for the given slug."""

    def __init__(self, slug: str):
        super().__init__(f"draft not found: {slug}")
        self.slug = slug


__all__ = [
    "SkillMinerError",
    "ConfigError",
    "ParseError",
    "AIError",
    "ClassificationError",
    "ExtractionError",
    "DraftWriteError",
    "ManifestError",
    "InvalidTransitionError",
    "DraftNotFoundError",
]
