"""Collaborator contracts for the mining pipeline.

The scanner and the extraction coordinator only talk to these protocols, so
tests can drive them with in-memory fakes and the Claude Code source or the
CLI backend can be swapped without touching the pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .models import ClassifiedConversation, Conversation, ConversationSummary, TopicCluster


@runtime_checkable
class ConversationSource(Protocol):
    """Yields parsed conversations for a time range.

    Implementations must:
    - return only conversations with at least ``min_messages`` messages
    - include a conversation when ``start <= start_time < end``
    - include conversations that have no start time at all
    - skip unreadable entries rather than fail the call
    """

    def parse_window(
        self,
        source_dir: Path,
        min_messages: int,
        start: datetime,
        end: datetime,
    ) -> list[Conversation]:
        ...


@runtime_checkable
class BatchClassifier(Protocol):
    """Classifies one batch of summaries with a single AI call.

    Raises ``ClassificationError`` on failure; the scanner treats that as fatal.
    """

    def __call__(self, summaries: Sequence[ConversationSummary]) -> list[ClassifiedConversation]:
        ...


@runtime_checkable
class TopicExtractor(Protocol):
    """Extracts the patterns of one topic group.

    Called concurrently from worker threads. Must not touch manifest state;
    any exception marks only this topic as failed.
    """

    def __call__(
        self,
        topic: str,
        conversations: Sequence[ClassifiedConversation],
        lookup: Optional[Mapping[str, Conversation]],
    ) -> TopicCluster:
        ...


__all__ = ["BatchClassifier", "ConversationSource", "TopicExtractor"]
