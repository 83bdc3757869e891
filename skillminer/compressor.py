"""Reduce conversations to the compact summaries the classifier sees."""

from __future__ import annotations

from collections.abc import Iterable

from .core.text import truncate
from .models import Conversation, ConversationSummary, Role

FIRST_MESSAGE_LEN = 500
CLASSIFY_PREVIEW_LEN = 200
TOPIC_SCAN_MESSAGES = 5

FILE_EXTENSIONS = (".rs", ".py", ".ts", ".xlsx", ".pdf", ".json", ".toml", ".md", ".dxf")

# (needle, topic hint); needles are matched case-insensitively
KEYWORD_HINTS = (
    ("pavement", "pavement"),
    ("asphalt", "pavement"),
    ("photo", "photo"),
    ("pdf", "pdf"),
    ("construction", "construction"),
    ("spreadsheet", "spreadsheet"),
    ("excel", "excel"),
    ("rust", "rust"),
    ("wasm", "wasm"),
    ("git", "git"),
    ("test", "test"),
    ("lane marking", "lane-marking"),
    ("cross-section", "cross-section"),
    ("quality", "quality"),
    ("as-built", "as-built"),
    ("temperature", "temperature"),
    ("schedule", "schedule"),
    ("skill", "skill"),
    ("gemini", "gemini"),
    ("claude", "claude"),
    ("dxf", "dxf"),
    ("layout", "layout"),
)


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def extract_topics(conversation: Conversation) -> list[str]:
    """Sorted keyword hints drawn from the first few user messages."""
    user_text = [
        message.content
        for message in conversation.messages
        if message.role is Role.USER
    ][:TOPIC_SCAN_MESSAGES]

    topics: set[str] = set()
    for text in user_text:
        for ext in FILE_EXTENSIONS:
            if ext in text:
                topics.add(f"file:{ext}")

    combined = " ".join(user_text).lower()
    for needle, hint in KEYWORD_HINTS:
        if needle in combined:
            topics.add(hint)
    return sorted(topics)


def compress(conversation: Conversation) -> ConversationSummary:
    tool_uses = [tool for message in conversation.messages for tool in message.tool_uses]
    return ConversationSummary(
        id=conversation.id,
        source_path=conversation.source_path,
        first_message=(conversation.first_user_message() or "")[:FIRST_MESSAGE_LEN],
        message_count=conversation.message_count,
        start_time=conversation.start_time,
        cwd=conversation.cwd,
        topics=extract_topics(conversation),
        tools_used=_unique(tool.name for tool in tool_uses),
        files_touched=_unique(tool.file_path for tool in tool_uses if tool.file_path),
        commands_used=_unique(tool.command for tool in tool_uses if tool.command),
    )


def format_for_classification(summaries: list[ConversationSummary]) -> str:
    """Render a batch as numbered entries; the number is the index the classifier answers with."""
    chunks = []
    for index, summary in enumerate(summaries):
        chunks.append(
            f"[{index}] id={summary.id[:8]} msgs={summary.message_count} "
            f"cwd={summary.cwd or '?'} topics=[{', '.join(summary.topics)}]\n"
            f"  {truncate(summary.first_message, CLASSIFY_PREVIEW_LEN)}\n\n"
        )
    return "".join(chunks)


__all__ = ["compress", "extract_topics", "format_for_classification"]
