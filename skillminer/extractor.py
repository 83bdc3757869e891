"""Per-topic knowledge pattern extraction."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .ai import AIBackend, parse_json_response
from .core.log import get_logger
from .core.text import strip_unclosed_tag, truncate
from .errors import AIError, ExtractionError, ParseError
from .models import ClassifiedConversation, Conversation, KnowledgePattern, Role, TopicCluster
from .sources.claude_code import parse_conversation

logger = get_logger(__name__)

MAX_CONVERSATIONS = 20
MAX_MESSAGES_PER_CONVERSATION = 40
USER_MESSAGE_LEN = 2000
ASSISTANT_MESSAGE_LEN = 3000
MAX_FILES_IN_HEADER = 10
MAX_COMMANDS_IN_HEADER = 5

EXTRACT_PROMPT = """\
Below are past coding-assistant sessions about "{topic}".

Find the recurring, reusable know-how in them: procedures that were repeated,
decisions that were made the same way, pitfalls that were hit more than once.
Ignore one-off chatter.

{context}

Answer with a JSON array only:
[{{"title": "...", "description": "...", "steps": ["..."], "code_examples": ["..."], "frequency": 2}}]
frequency is the number of sessions the pattern showed up in.
"""


class PatternEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    description: str = ""
    steps: list[str] = Field(default_factory=list)
    code_examples: list[str] = Field(default_factory=list)
    frequency: int = Field(default=1, ge=0)
    skill_slug: Optional[str] = None

    def to_pattern(self, source_ids: list[str]) -> KnowledgePattern:
        return KnowledgePattern(source_ids=source_ids, **self.model_dump())


def _clean(text: str) -> str:
    return strip_unclosed_tag(text, "system-reminder")


def _exchanges(conversation: Conversation) -> list[str]:
    exchanges = []
    pending_user: Optional[str] = None
    for message in conversation.messages[:MAX_MESSAGES_PER_CONVERSATION]:
        if message.role is Role.USER:
            pending_user = truncate(_clean(message.content), USER_MESSAGE_LEN)
        elif pending_user is not None:
            answer = truncate(_clean(message.content), ASSISTANT_MESSAGE_LEN)
            exchanges.append(f"U: {pending_user}\nA: {answer}")
            pending_user = None
    return exchanges


def build_extraction_context(
    conversations: Sequence[ClassifiedConversation],
    lookup: Optional[Mapping[str, Conversation]] = None,
) -> str:
    """Render up to ``MAX_CONVERSATIONS`` conversations as user/assistant exchanges.

    Conversations missing from ``lookup`` (pending ones carried over from an
    earlier run) are re-parsed from their source file.
    """
    parts = []
    for index, item in enumerate(conversations[:MAX_CONVERSATIONS]):
        full = (lookup or {}).get(item.id)
        if full is None:
            full = parse_conversation(item.summary.source_path)

        exchanges = _exchanges(full)
        if not exchanges:
            continue

        header = f"=== Conversation {index} (id: {item.id[:8]}) ==="
        if item.summary.files_touched:
            header += f"\nfiles: [{', '.join(item.summary.files_touched[:MAX_FILES_IN_HEADER])}]"
        if item.summary.commands_used:
            header += f"\ncmds: [{', '.join(item.summary.commands_used[:MAX_COMMANDS_IN_HEADER])}]"
        parts.append(header + "\n" + "\n---\n".join(exchanges))
    return "\n\n".join(parts)


def extract_patterns(
    topic: str,
    conversations: Sequence[ClassifiedConversation],
    lookup: Optional[Mapping[str, Conversation]],
    backend: AIBackend,
) -> TopicCluster:
    """Ask the backend for the patterns of one topic.

    Raises:
        ExtractionError: on backend failure, an unreadable source file, or an
            unparseable reply.
    """
    try:
        context = build_extraction_context(conversations, lookup)
        entries = parse_json_response(backend.prompt(EXTRACT_PROMPT.format(topic=topic, context=context)))
    except (AIError, ParseError) as exc:
        raise ExtractionError(f"{topic}: {exc}") from exc

    source_ids = [item.id for item in conversations]
    patterns = []
    for raw in entries:
        try:
            patterns.append(PatternEntry.model_validate(raw).to_pattern(list(source_ids)))
        except ValidationError as exc:
            logger.warning("dropping malformed pattern", topic=topic, error=str(exc))

    logger.debug("patterns extracted", topic=topic, patterns=len(patterns), conversations=len(conversations))
    return TopicCluster(topic=topic, conversations=list(conversations), patterns=patterns)


class BackendExtractor:
    """``TopicExtractor`` bound to one AI backend."""

    def __init__(self, backend: AIBackend):
        self.backend = backend

    def __call__(
        self,
        topic: str,
        conversations: Sequence[ClassifiedConversation],
        lookup: Optional[Mapping[str, Conversation]],
    ) -> TopicCluster:
        return extract_patterns(topic, conversations, lookup, self.backend)


__all__ = ["BackendExtractor", "build_extraction_context", "extract_patterns"]
