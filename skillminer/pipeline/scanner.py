"""Backward window scan over conversation history.

The scan starts at "now" and walks back in windows: 12 hours first, then
24 hours each. Each non-empty window is summarised and classified in batches
before the next window is read. The walk ends when it hits the lookback
limit or the window limit, after two empty windows in a row, or when a
window's significance ratio falls under the threshold.

Nothing is persisted here. A classification failure propagates and the
caller keeps whatever state it had before the scan.
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from ..compressor import compress
from ..core.log import get_logger
from ..core.timestamps import utcnow
from ..models import ClassifiedConversation, Conversation, ConversationSummary
from ..protocols import BatchClassifier, ConversationSource
from .gate import SignificanceGate

logger = get_logger(__name__)

FIRST_WINDOW_HOURS = 12
WINDOW_HOURS = 24
MAX_EMPTY_WINDOWS = 2
CLASSIFY_BATCH_SIZE = 50


class StopReason(str, Enum):
    LOOKBACK = "lookback"
    MAX_WINDOWS = "max_windows"
    EMPTY = "empty"
    LOW_VALUE = "low_value"


class ScanResult(BaseModel):
    classified: list[ClassifiedConversation] = Field(default_factory=list)
    conversations: list[Conversation] = Field(default_factory=list)
    windows_processed: int = 0
    classify_calls: int = 0
    skipped_low_value: int = 0
    stop_reason: Optional[StopReason] = None


class WindowScanner:
    def __init__(
        self,
        source: ConversationSource,
        classify: BatchClassifier,
        *,
        summarize: Callable[[Conversation], ConversationSummary] = compress,
        now: Callable[[], datetime] = utcnow,
        batch_size: int = CLASSIFY_BATCH_SIZE,
    ):
        self.source = source
        self.classify = classify
        self.summarize = summarize
        self.now = now
        self.batch_size = batch_size

    def _classify_window(self, fresh: list[Conversation], result: ScanResult) -> list[ClassifiedConversation]:
        summaries = [self.summarize(conversation) for conversation in fresh]
        wanted = {summary.id for summary in summaries}
        classified: list[ClassifiedConversation] = []
        for offset in range(0, len(summaries), self.batch_size):
            result.classify_calls += 1
            for item in self.classify(summaries[offset:offset + self.batch_size]):
                # one result per conversation; duplicates from the backend are dropped
                if item.id in wanted:
                    wanted.discard(item.id)
                    classified.append(item)
        return classified

    def scan(
        self,
        source_dir: Path,
        min_messages: int,
        already_mined: Collection[str],
        already_pending_ids: Collection[str],
        max_lookback: int,
        max_windows: Optional[int],
        min_significance_ratio: float,
    ) -> ScanResult:
        """Walk windows backward from now.

        Args:
            source_dir: Directory handed to the conversation source.
            min_messages: Minimum message count for a conversation to qualify.
            already_mined: Ids that were extracted in earlier runs.
            already_pending_ids: Ids already queued for extraction retry.
            max_lookback: How far back to go, in hours.
            max_windows: Window budget; None or 0 means unlimited.
            min_significance_ratio: Stop after a window whose ratio is below this.

        Raises:
            ClassificationError: from the classifier; fatal to the run.
        """
        gate = SignificanceGate(min_significance_ratio)
        result = ScanResult()
        now = self.now()
        cursor = 0
        empty_streak = 0
        seen: set[str] = set()

        while True:
            if cursor >= max_lookback:
                result.stop_reason = StopReason.LOOKBACK
                break
            if max_windows and result.windows_processed >= max_windows:
                result.stop_reason = StopReason.MAX_WINDOWS
                break

            size = FIRST_WINDOW_HOURS if result.windows_processed == 0 else WINDOW_HOURS
            far_edge = min(cursor + size, max_lookback)
            start = now - timedelta(hours=far_edge)
            end = now - timedelta(hours=cursor)

            found = self.source.parse_window(source_dir, min_messages, start, end)
            fresh = [
                conversation
                for conversation in found
                if conversation.id not in already_mined
                and conversation.id not in already_pending_ids
                and conversation.id not in seen
            ]
            result.windows_processed += 1
            log = logger.bind(window=result.windows_processed, start_hours=cursor, end_hours=far_edge)

            if not fresh:
                empty_streak += 1
                cursor = far_edge
                log.debug("window empty", streak=empty_streak)
                if empty_streak >= MAX_EMPTY_WINDOWS:
                    result.stop_reason = StopReason.EMPTY
                    break
                continue

            empty_streak = 0
            seen.update(conversation.id for conversation in fresh)
            classified = self._classify_window(fresh, result)
            result.conversations.extend(fresh)
            result.classified.extend(classified)

            log.info(
                "window scanned",
                new=len(fresh),
                classified=len(classified),
                significance=round(gate.ratio(classified), 3),
            )
            if not gate.should_continue(classified):
                result.skipped_low_value += 1
                result.stop_reason = StopReason.LOW_VALUE
                break
            cursor = far_edge

        logger.info(
            "scan finished",
            reason=result.stop_reason.value if result.stop_reason else None,
            windows=result.windows_processed,
            new=len(result.classified),
            classify_calls=result.classify_calls,
        )
        return result


__all__ = ["ScanResult", "StopReason", "WindowScanner"]
