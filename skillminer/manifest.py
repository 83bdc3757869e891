"""Durable mining state: mined ids, the pending queue, and draft records.

``ManifestState`` is the single mutable object a run works on. It is loaded
once, handed explicitly through the pipeline, and persisted by
``ManifestStore`` at the checkpoint and at the end of the run.

Invariants:
- ``mined_ids`` only grows.
- No conversation id is both mined and pending.
- Draft status only changes along ``ALLOWED_TRANSITIONS``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .core.hashing import hash_text
from .core.json import JSONDecodeError, dumps, loads
from .core.log import get_logger
from .core.timestamps import utcnow
from .domains import normalize
from .errors import DraftNotFoundError, InvalidTransitionError, ManifestError
from .models import ClassifiedConversation, DraftRecord, DraftStatus, SkillDraft, TopicCluster
from .paths import MANIFEST_FILENAME

logger = get_logger(__name__)

MANIFEST_VERSION = "1.0"

ALLOWED_TRANSITIONS: dict[DraftStatus, frozenset[DraftStatus]] = {
    DraftStatus.DRAFT: frozenset({DraftStatus.APPROVED, DraftStatus.REJECTED}),
    DraftStatus.APPROVED: frozenset({DraftStatus.DEPLOYED, DraftStatus.DRAFT}),
    DraftStatus.REJECTED: frozenset({DraftStatus.DRAFT}),
    DraftStatus.DEPLOYED: frozenset({DraftStatus.DRAFT}),
}

_PATTERN_HEADING_RE = re.compile(r"^## \d")


def transition(record: DraftRecord, new_status: DraftStatus, *, now: datetime | None = None) -> DraftRecord:
    """Move ``record`` to ``new_status`` in place.

    Raises:
        InvalidTransitionError: if the pair is not in the transition table.
    """
    if new_status not in ALLOWED_TRANSITIONS[record.status]:
        raise InvalidTransitionError(record.slug, record.status.value, new_status.value)
    record.status = new_status
    if new_status is DraftStatus.DEPLOYED:
        record.deployed_at = now or utcnow()
    return record


class ManifestState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str = MANIFEST_VERSION
    generated_at: datetime = Field(default_factory=utcnow)
    entries: list[DraftRecord] = Field(default_factory=list)
    mined_ids: set[str] = Field(default_factory=set)
    pending: list[ClassifiedConversation] = Field(default_factory=list, alias="pending_extracts")

    @property
    def pending_ids(self) -> set[str]:
        return {item.id for item in self.pending}

    def find(self, slug: str) -> Optional[DraftRecord]:
        for record in self.entries:
            if record.slug == slug:
                return record
        return None

    def get(self, slug: str) -> DraftRecord:
        record = self.find(slug)
        if record is None:
            raise DraftNotFoundError(slug)
        return record

    def update_status(self, slug: str, status: DraftStatus) -> DraftRecord:
        return transition(self.get(slug), status)

    def mark_mined(self, ids: Iterable[str]) -> None:
        """Add ids to the mined set. Idempotent; mined ids leave the pending queue."""
        new_ids = set(ids)
        self.mined_ids |= new_ids
        if new_ids and self.pending:
            self.pending = [item for item in self.pending if item.id not in new_ids]

    def record_pending(self, classified: Iterable[ClassifiedConversation]) -> None:
        """Replace the pending queue wholesale."""
        items = list(classified)
        overlap = sorted({item.id for item in items} & self.mined_ids)
        if overlap:
            raise ManifestError(f"cannot queue already mined conversations: {', '.join(overlap)}")
        self.pending = items

    def merge_drafts(
        self,
        drafts: Iterable[SkillDraft],
        clusters: Iterable[TopicCluster],
        *,
        now: datetime | None = None,
    ) -> list[DraftRecord]:
        """Fold freshly generated drafts into the entries.

        New slugs become ``draft`` records. Existing records keep their status,
        deployment time and usage numbers; counts and hash are refreshed and the
        conversation count accumulates across runs.
        """
        stamp = now or utcnow()
        by_slug = {normalize(cluster.topic).slug: cluster for cluster in clusters}
        touched: list[DraftRecord] = []

        for draft in drafts:
            cluster = by_slug.get(draft.name)
            pattern_count = len(cluster.patterns) if cluster else 0
            conversation_count = len(cluster.conversations) if cluster else 0
            content_hash = hash_text(draft.format_md())

            record = self.find(draft.name)
            if record is None:
                record = DraftRecord(
                    slug=draft.name,
                    topic=cluster.topic if cluster else draft.name,
                    pattern_count=pattern_count,
                    conversation_count=conversation_count,
                    generated_at=stamp,
                    content_hash=content_hash,
                )
                self.entries.append(record)
            else:
                record.pattern_count = pattern_count
                record.conversation_count += conversation_count
                record.content_hash = content_hash
                record.generated_at = stamp
            touched.append(record)

        self.generated_at = stamp
        return touched

    def record_usage(self, slug: str, *, score: float | None = None, fire_count: int | None = None) -> DraftRecord:
        record = self.get(slug)
        if score is not None:
            if not 0.0 <= score <= 1.0:
                raise ManifestError(f"{slug}: score must be within [0, 1], got {score}")
            record.score = score
        if fire_count is not None:
            if fire_count < 0:
                raise ManifestError(f"{slug}: fire count cannot be negative")
            record.fire_count = fire_count
        return record

    def to_payload(self) -> dict:
        payload = self.model_dump(mode="json", by_alias=True)
        payload["mined_ids"] = sorted(self.mined_ids)
        return payload


def _topic_from_frontmatter(content: str) -> Optional[str]:
    if not content.startswith("---"):
        return None
    for line in content.splitlines()[1:]:
        if line.strip() == "---":
            break
        if line.startswith("description:"):
            value = line[len("description:"):].strip().strip('"')
            topic = value.split(".", 1)[0].strip()
            return topic or None
    return None


def create_from_directory(drafts_dir: Path) -> ManifestState:
    """Bootstrap a manifest from ``*.md`` drafts already present on disk."""
    state = ManifestState()
    if not drafts_dir.is_dir():
        return state

    for path in sorted(drafts_dir.glob("*.md")):
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ManifestError(f"Cannot read draft {path}: {exc}") from exc
        pattern_count = sum(1 for line in content.splitlines() if _PATTERN_HEADING_RE.match(line))
        state.entries.append(
            DraftRecord(
                slug=path.stem,
                topic=_topic_from_frontmatter(content) or path.stem,
                pattern_count=pattern_count,
                generated_at=state.generated_at,
                content_hash=hash_text(content),
            )
        )

    if state.entries:
        logger.info("manifest bootstrapped from drafts", directory=str(drafts_dir), entries=len(state.entries))
    return state


class ManifestStore:
    """Reads and writes ``manifest.json`` in a drafts directory."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def for_directory(cls, drafts_dir: Path) -> "ManifestStore":
        return cls(drafts_dir / MANIFEST_FILENAME)

    def load(self) -> ManifestState:
        """Load state; a missing file is bootstrapped from the drafts directory.

        Raises:
            ManifestError: if the file exists but cannot be read or parsed.
        """
        if not self.path.exists():
            return create_from_directory(self.path.parent)
        try:
            payload = loads(self.path.read_bytes())
        except OSError as exc:
            raise ManifestError(f"Cannot read manifest {self.path}: {exc}") from exc
        except JSONDecodeError as exc:
            raise ManifestError(f"Malformed manifest {self.path}: {exc}") from exc
        try:
            state = ManifestState.model_validate(payload)
        except ValidationError as exc:
            raise ManifestError(f"Invalid manifest {self.path}: {exc}") from exc
        overlap = state.pending_ids & state.mined_ids
        if overlap:
            raise ManifestError(f"Manifest {self.path} lists mined ids as pending: {', '.join(sorted(overlap))}")
        return state

    def save(self, state: ManifestState) -> None:
        """Write state atomically (temp file then rename)."""
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(dumps(state.to_payload(), pretty=True), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            raise ManifestError(f"Cannot write manifest {self.path}: {exc}") from exc
        logger.debug(
            "manifest saved",
            path=str(self.path),
            mined=len(state.mined_ids),
            pending=len(state.pending),
            entries=len(state.entries),
        )


__all__ = [
    "ALLOWED_TRANSITIONS",
    "MANIFEST_VERSION",
    "ManifestState",
    "ManifestStore",
    "create_from_directory",
    "transition",
]
