"""Small text helpers shared by the parser, compressor and extractor."""

from __future__ import annotations

import re


def truncate(text: str, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` characters, appending ``...`` when cut."""
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}..."


def remove_tag_block(text: str, tag: str) -> str:
    """Drop every ``<tag ...>...</tag>`` block. An unclosed block is left alone."""
    pattern = re.compile(rf"<{re.escape(tag)}[\s>].*?</{re.escape(tag)}>", re.DOTALL)
    return pattern.sub("", text)


def strip_unclosed_tag(text: str, tag: str) -> str:
    """Like ``remove_tag_block`` but an unclosed block swallows the rest of the text."""
    text = remove_tag_block(text, tag)
    start = text.find(f"<{tag}>")
    return text if start < 0 else text[:start]


__all__ = ["truncate", "remove_tag_block", "strip_unclosed_tag"]
