"""Topic classification of conversation summaries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .ai import AIBackend, parse_json_response
from .compressor import format_for_classification
from .core.log import get_logger
from .domains import normalize, prompt_topic_list
from .errors import AIError, ClassificationError, ParseError
from .models import ClassifiedConversation, ConversationSummary

logger = get_logger(__name__)

CLASSIFY_PROMPT = """\
You are sorting past coding-assistant sessions by topic.

Pick exactly one topic for every session from this list, using the topic
name verbatim:
{topic_list}

Sessions:
{formatted_text}

Answer with a JSON array only, one object per session:
[{{"index": 0, "topic": "<topic name>", "tags": ["short", "tags"], "confidence": 0.8}}]
confidence is how sure you are that the session carries reusable know-how
for that topic, between 0 and 1.
"""


class ClassificationEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int
    topic: str = Field(validation_alias=AliasChoices("topic", "domain"))
    tags: list[str] = Field(default_factory=list)
    confidence: float = 0.5

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: object) -> object:
        if value is None:
            return 0.5
        if isinstance(value, (int, float)):
            return min(1.0, max(0.0, float(value)))
        return value


def build_prompt(summaries: Sequence[ConversationSummary]) -> str:
    return CLASSIFY_PROMPT.format(
        topic_list=prompt_topic_list(),
        formatted_text=format_for_classification(list(summaries)),
    )


def classify_batch(summaries: Sequence[ConversationSummary], backend: AIBackend) -> list[ClassifiedConversation]:
    """Classify one batch with a single backend call.

    Entries that point outside the batch or fail validation are dropped, so a
    batch may come back shorter than it went in.

    Raises:
        ClassificationError: if the backend fails or its reply is not a JSON array.
    """
    if not summaries:
        return []
    try:
        entries = parse_json_response(backend.prompt(build_prompt(summaries)))
    except (AIError, ParseError) as exc:
        raise ClassificationError(f"classification of {len(summaries)} conversations failed: {exc}") from exc

    results: list[ClassifiedConversation] = []
    for raw in entries:
        try:
            entry = ClassificationEntry.model_validate(raw)
        except ValidationError as exc:
            logger.warning("dropping malformed classification entry", entry=str(raw)[:200], error=str(exc))
            continue
        if not 0 <= entry.index < len(summaries):
            logger.warning("dropping classification entry with bad index", index=entry.index, batch=len(summaries))
            continue
        topic = normalize(entry.topic)
        results.append(
            ClassifiedConversation(
                summary=summaries[entry.index],
                topic=topic.name,
                slug=topic.slug,
                tags=entry.tags,
                confidence=entry.confidence,
            )
        )
    return results


def group_by_topic(classified: Iterable[ClassifiedConversation]) -> dict[str, list[ClassifiedConversation]]:
    groups: dict[str, list[ClassifiedConversation]] = {}
    for item in classified:
        groups.setdefault(item.topic, []).append(item)
    return groups


class BackendClassifier:
    """``BatchClassifier`` bound to one AI backend."""

    def __init__(self, backend: AIBackend):
        self.backend = backend

    def __call__(self, summaries: Sequence[ConversationSummary]) -> list[ClassifiedConversation]:
        return classify_batch(summaries, self.backend)


__all__ = ["BackendClassifier", "build_prompt", "classify_batch", "group_by_topic"]
