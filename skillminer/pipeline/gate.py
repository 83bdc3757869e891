"""Significance gate: stop scanning once history stops paying off."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..domains import MISC_SLUG
from ..models import ClassifiedConversation

CONFIDENCE_FLOOR = 0.5


def is_significant(item: ClassifiedConversation) -> bool:
    return item.slug != MISC_SLUG and item.confidence >= CONFIDENCE_FLOOR


def significance_ratio(classified: Sequence[ClassifiedConversation]) -> float:
    """Share of ``classified`` that is on-topic with confidence >= 0.5; 0.0 when empty."""
    if not classified:
        return 0.0
    return sum(1 for item in classified if is_significant(item)) / len(classified)


@dataclass(frozen=True)
class SignificanceGate:
    min_ratio: float = 0.3

    def ratio(self, classified: Sequence[ClassifiedConversation]) -> float:
        return significance_ratio(classified)

    def should_continue(self, classified: Sequence[ClassifiedConversation]) -> bool:
        return self.ratio(classified) >= self.min_ratio


__all__ = ["CONFIDENCE_FLOOR", "SignificanceGate", "is_significant", "significance_ratio"]
