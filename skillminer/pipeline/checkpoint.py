"""Checkpoint of extraction work before the expensive phase runs."""

from __future__ import annotations

from collections.abc import Iterable

from ..core.log import get_logger
from ..manifest import ManifestState, ManifestStore
from ..models import ClassifiedConversation

logger = get_logger(__name__)


def merge_work(*groups: Iterable[ClassifiedConversation]) -> list[ClassifiedConversation]:
    """Concatenate groups, keeping the first occurrence of each conversation id."""
    seen: set[str] = set()
    work = []
    for group in groups:
        for item in group:
            if item.id not in seen:
                seen.add(item.id)
                work.append(item)
    return work


def write_checkpoint(state: ManifestState, store: ManifestStore, work: list[ClassifiedConversation]) -> None:
    """Queue all of ``work`` as pending and persist, so a crash during extraction loses nothing."""
    state.record_pending(work)
    store.save(state)
    logger.info("checkpoint written", pending=len(work), path=str(store.path))


__all__ = ["merge_work", "write_checkpoint"]
