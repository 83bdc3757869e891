"""Parallel per-topic extraction and reconciliation into manifest state."""

from __future__ import annotations

import concurrent.futures
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Optional, Union

from ..core.log import get_logger
from ..manifest import ManifestState
from ..models import ClassifiedConversation, Conversation, TopicCluster
from ..protocols import TopicExtractor

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExtractionSuccess:
    topic: str
    cluster: TopicCluster


@dataclass(frozen=True)
class ExtractionFailure:
    topic: str
    conversations: tuple[ClassifiedConversation, ...]
    error: str


ExtractionResult = Union[ExtractionSuccess, ExtractionFailure]


@dataclass
class ExtractionOutcome:
    clusters: list[TopicCluster] = field(default_factory=list)
    failures: list[ExtractionFailure] = field(default_factory=list)

    @property
    def failed_topics(self) -> list[str]:
        return [failure.topic for failure in self.failures]

    @property
    def calls(self) -> int:
        return len(self.clusters) + len(self.failures)


class ParallelExtractionCoordinator:
    """Fans extraction out over a bounded thread pool, one task per topic.

    Tasks only return values. Manifest state is touched by ``reconcile``
    after every task has finished, on the calling thread.
    """

    def __init__(self, extractor: TopicExtractor):
        self.extractor = extractor

    def _run_one(
        self,
        topic: str,
        conversations: Sequence[ClassifiedConversation],
        lookup: Optional[Mapping[str, Conversation]],
    ) -> ExtractionResult:
        try:
            return ExtractionSuccess(topic, self.extractor(topic, conversations, lookup))
        except Exception as exc:
            logger.warning("extraction failed", topic=topic, conversations=len(conversations), error=str(exc))
            return ExtractionFailure(topic, tuple(conversations), str(exc))

    def extract(
        self,
        groups_by_topic: Mapping[str, Sequence[ClassifiedConversation]],
        conversation_lookup: Optional[Mapping[str, Conversation]],
        concurrency_limit: int,
    ) -> ExtractionOutcome:
        outcome = ExtractionOutcome()
        if not groups_by_topic:
            return outcome

        workers = max(1, min(concurrency_limit, len(groups_by_topic)))
        logger.info("extracting", topics=len(groups_by_topic), workers=workers)
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._run_one, topic, conversations, conversation_lookup): topic
                for topic, conversations in groups_by_topic.items()
            }
            for fut in concurrent.futures.as_completed(futures):
                result = fut.result()
                if isinstance(result, ExtractionSuccess):
                    outcome.clusters.append(result.cluster)
                else:
                    outcome.failures.append(result)

        outcome.clusters.sort(key=lambda cluster: cluster.topic)
        outcome.failures.sort(key=lambda failure: failure.topic)
        return outcome


def reconcile(
    state: ManifestState,
    work: Iterable[ClassifiedConversation],
    outcome: ExtractionOutcome,
) -> None:
    """Mark succeeded conversations mined and requeue exactly the failed topics' conversations."""
    failed = set(outcome.failed_topics)
    items = list(work)
    state.mark_mined(item.id for item in items if item.topic not in failed)
    state.record_pending(item for item in items if item.topic in failed)
    if failed:
        logger.warning("topics left pending", topics=sorted(failed), pending=len(state.pending))


__all__ = [
    "ExtractionFailure",
    "ExtractionOutcome",
    "ExtractionResult",
    "ExtractionSuccess",
    "ParallelExtractionCoordinator",
    "reconcile",
]
