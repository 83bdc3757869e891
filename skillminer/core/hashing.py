"""SHA-256 helpers for draft content hashes."""

from __future__ import annotations

import hashlib


def hash_text(text: str) -> str:
    """Hash UTF-8 text to full SHA-256 hex digest (64 chars)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


__all__ = ["hash_text"]
