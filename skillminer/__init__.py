"""Progressive mining of Claude Code session history into reusable skill drafts."""

__version__ = "0.3.0"
