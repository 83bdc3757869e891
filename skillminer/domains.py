"""Fixed topic master.

The classifier is asked to choose from this list instead of inventing free
text, and whatever it answers is normalised back onto an entry here. That
keeps slugs stable across runs, so the same topic always lands in the same
draft.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MISC_SLUG = "misc"


@dataclass(frozen=True)
class Topic:
    name: str
    slug: str
    keywords: tuple[str, ...] = ()


TOPICS: tuple[Topic, ...] = (
    Topic(
        "Pavement Work",
        "pavement",
        ("pavement", "asphalt", "compaction", "temperature control", "as-built", "milling", "roadbed"),
    ),
    Topic("Photo Management", "photo-management", ("photo", "album", "ledger", "tagging", "shooting")),
    Topic("PDF Handling", "pdf", ("pdf", "merge", "template", "form fill")),
    Topic(
        "Construction Administration",
        "construction-admin",
        ("subcontract", "safety documents", "contract", "site organization", "karte"),
    ),
    Topic("Spreadsheets", "spreadsheet", ("spreadsheet", "excel", "google sheets", "formula", "xlsx")),
    Topic("Rust Development", "rust-dev", ("rust", "crate", "cargo", "wasm", "derive")),
    Topic("AI Integration", "ai-integration", ("gemini", "claude", "api", "prompt", "model", "accuracy")),
    Topic("Lane Marking", "lane-marking", ("lane marking", "quantity calculation", "lane", "striping")),
    Topic("DXF/CAD", "dxf-cad", ("dxf", "cad", "cross-section", "drawing")),
    Topic("Schedule Management", "schedule", ("schedule", "weekly report", "gantt", "timeline")),
    Topic("Tool Design", "tool-design", ("cli", "skill", "automation", "tool design")),
    Topic("Miscellaneous", MISC_SLUG),
)

_BY_NAME = {topic.name: topic for topic in TOPICS}
_BY_SLUG = {topic.slug: topic for topic in TOPICS}
_BY_LOWER = {**{topic.slug: topic for topic in TOPICS}, **{topic.name.lower(): topic for topic in TOPICS}}

MISC = _BY_SLUG[MISC_SLUG]


def find_by_name(name: str) -> Topic | None:
    return _BY_NAME.get(name)


def find_by_slug(slug: str) -> Topic | None:
    return _BY_SLUG.get(slug)


def _contains_word(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def normalize(raw: str) -> Topic:
    """Map free text onto the closest topic.

    Tries a case-insensitive name or slug match, then a substring match in
    either direction, then the topic with the most whole-word keyword hits.
    Anything else is Miscellaneous.
    """
    text = raw.strip()
    if not text:
        return MISC

    lowered = text.lower()
    exact = _BY_LOWER.get(lowered)
    if exact is not None:
        return exact

    candidates = [topic for topic in TOPICS if topic.slug != MISC_SLUG]

    for topic in candidates:
        name = topic.name.lower()
        if name in lowered or lowered in name:
            return topic

    best: Topic | None = None
    best_hits = 0
    for topic in candidates:
        hits = sum(1 for keyword in topic.keywords if _contains_word(lowered, keyword))
        if hits > best_hits:
            best, best_hits = topic, hits
    return best or MISC


def prompt_topic_list() -> str:
    """Topic list embedded in the classification prompt, one ``- name: keywords`` line each."""
    lines = []
    for topic in TOPICS:
        if topic.keywords:
            lines.append(f"- {topic.name}: {', '.join(topic.keywords)}")
        else:
            lines.append(f"- {topic.name}: anything that fits none of the above")
    return "\n".join(lines)


__all__ = ["Topic", "TOPICS", "MISC", "MISC_SLUG", "find_by_name", "find_by_slug", "normalize", "prompt_topic_list"]
