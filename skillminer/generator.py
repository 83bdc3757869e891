"""Turn topic clusters into skill drafts."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .core.log import get_logger
from .domains import normalize
from .errors import DraftWriteError
from .models import SkillDraft, TopicCluster

logger = get_logger(__name__)

DESCRIPTION_TITLES = 5


def build_description(cluster: TopicCluster) -> str:
    titles = ", ".join(pattern.title for pattern in cluster.patterns[:DESCRIPTION_TITLES])
    keywords = normalize(cluster.topic).keywords
    trigger = f"Use when working on {', '.join(keywords)}." if keywords else "Use for related requests."
    return f"{cluster.topic}. ({titles}) {trigger}"


def build_body(cluster: TopicCluster) -> str:
    lines = [
        f"# {cluster.topic}",
        "",
        f"Conversations: {len(cluster.conversations)} | Patterns: {len(cluster.patterns)}",
        "",
    ]
    for number, pattern in enumerate(cluster.patterns, start=1):
        lines += [f"## {number}. {pattern.title}", "", pattern.description, ""]
        if pattern.steps:
            lines += ["### Steps", ""]
            lines += [f"{step_no}. {step}" for step_no, step in enumerate(pattern.steps, start=1)]
            lines.append("")
        for example in pattern.code_examples:
            lines += ["```", example.rstrip("\n"), "```", ""]
        lines += [f"Seen {pattern.frequency} time(s)", ""]
    return "\n".join(lines)


def generate_skills(clusters: Iterable[TopicCluster]) -> list[SkillDraft]:
    """One draft per cluster that produced patterns, named by the topic slug."""
    drafts = []
    for cluster in clusters:
        if not cluster.patterns:
            continue
        sources = sorted({source for pattern in cluster.patterns for source in pattern.source_ids})
        drafts.append(
            SkillDraft(
                name=normalize(cluster.topic).slug,
                description=build_description(cluster),
                body=build_body(cluster),
                sources=sources,
            )
        )
    return drafts


def write_drafts(drafts: Iterable[SkillDraft], drafts_dir: Path) -> list[Path]:
    """Write ``<name>.md`` for every draft, replacing earlier versions."""
    written = []
    try:
        drafts_dir.mkdir(parents=True, exist_ok=True)
        for draft in drafts:
            path = drafts_dir / f"{draft.name}.md"
            path.write_text(draft.format_md(), encoding="utf-8")
            written.append(path)
            logger.info("draft written", path=str(path))
    except OSError as exc:
        raise DraftWriteError(f"Cannot write drafts to {drafts_dir}: {exc}") from exc
    return written


__all__ = ["build_body", "build_description", "generate_skills", "write_drafts"]
