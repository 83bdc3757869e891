"""Claude Code session source.

Sessions live at ``<projects_dir>/<project>/<session-id>.jsonl``; every line
is one record whose ``type`` decides its shape. Only user and assistant
message records become ``Message``s. Harness chatter (system reminders,
slash-command echoes, meta records) is dropped.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from ..core.json import JSONDecodeError, dumps, loads
from ..core.log import get_logger
from ..core.text import remove_tag_block, truncate
from ..core.timestamps import parse_timestamp
from ..errors import ConfigError, ParseError
from ..models import Conversation, Message, Role, ToolUse

logger = get_logger(__name__)

STRIPPED_TAGS = (
    "system-reminder",
    "local-command-caveat",
    "command-name",
    "command-message",
    "command-args",
)
FILE_TOOLS = frozenset({"Edit", "Read", "Write"})
TOOL_INPUT_SUMMARY_LEN = 200
COMMAND_SUMMARY_LEN = 100


class ClaudeCodeRecord(BaseModel):
    """One JSONL line. Unknown fields are kept but ignored."""

    model_config = ConfigDict(extra="allow")

    type: str = ""
    timestamp: Optional[str] = None
    cwd: Optional[str] = None
    gitBranch: Optional[str] = None
    isMeta: Optional[bool] = False
    message: Optional[dict[str, Any]] = None

    @property
    def parsed_timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)

    @property
    def role(self) -> Optional[Role]:
        if self.message is None:
            return None
        try:
            return Role(self.message.get("role", ""))
        except ValueError:
            return None


def strip_tags(text: str) -> str:
    for tag in STRIPPED_TAGS:
        text = remove_tag_block(text, tag)
    return text.strip()


def is_system_only(content: str) -> bool:
    stripped = content.strip()
    return (
        not stripped
        or stripped.startswith("<local-command-caveat>")
        or stripped.startswith("<command-name>")
    )


def _tool_use(block: dict[str, Any]) -> ToolUse:
    name = str(block.get("name") or "unknown")
    raw_input = block.get("input")
    input_summary = truncate(dumps(raw_input), TOOL_INPUT_SUMMARY_LEN) if raw_input is not None else ""
    file_path = None
    command = None
    if isinstance(raw_input, dict):
        if name in FILE_TOOLS and isinstance(raw_input.get("file_path"), str):
            file_path = raw_input["file_path"]
        if name == "Bash" and isinstance(raw_input.get("command"), str):
            command = truncate(raw_input["command"], COMMAND_SUMMARY_LEN)
    return ToolUse(name=name, input_summary=input_summary, file_path=file_path, command=command)


def extract_content(message: dict[str, Any]) -> tuple[str, list[ToolUse]]:
    """Return the cleaned text and the tool uses of one message payload."""
    content = message.get("content")
    text_parts: list[str] = []
    tool_uses: list[ToolUse] = []

    if isinstance(content, str):
        text_parts.append(strip_tags(content))
    elif isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            block_type = block.get("type")
            if block_type == "text" and isinstance(block.get("text"), str):
                text_parts.append(strip_tags(block["text"]))
            elif block_type == "tool_use":
                tool_uses.append(_tool_use(block))
            # tool_result blocks are echoes of tool output; skip

    return "\n".join(part for part in text_parts if part), tool_uses


def parse_conversation(path: Path) -> Conversation:
    """Parse one session file.

    Unparseable lines are skipped; an unreadable file raises ``ParseError``.
    """
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"opening {path}: {exc}") from exc

    messages: list[Message] = []
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    cwd: Optional[str] = None
    git_branch: Optional[str] = None

    for line in lines:
        if not line.strip():
            continue
        try:
            record = ClaudeCodeRecord.model_validate(loads(line))
        except (JSONDecodeError, ValidationError):
            continue
        if record.type == "file-history-snapshot":
            continue

        cwd = cwd or record.cwd
        git_branch = git_branch or record.gitBranch

        ts = record.parsed_timestamp
        if ts is not None:
            start_time = start_time or ts
            end_time = ts

        if record.isMeta or record.role is None:
            continue

        content, tool_uses = extract_content(record.message or {})
        if not content.strip() and not tool_uses:
            continue
        if record.role is Role.USER and is_system_only(content):
            continue

        messages.append(Message(role=record.role, content=content, timestamp=ts, tool_uses=tool_uses))

    return Conversation(
        id=path.stem,
        source_path=path,
        messages=messages,
        start_time=start_time,
        end_time=end_time,
        cwd=cwd,
        git_branch=git_branch,
    )


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


def discover_conversations(projects_dir: Path) -> list[Path]:
    """List ``*/*.jsonl`` under ``projects_dir``, most recently modified first."""
    if not projects_dir.exists():
        raise ConfigError(f"Projects directory not found: {projects_dir}")
    paths = [
        path
        for project in projects_dir.iterdir()
        if project.is_dir()
        for path in project.glob("*.jsonl")
        if path.is_file()
    ]
    paths.sort(key=_mtime, reverse=True)
    return paths


def _iter_parsed(projects_dir: Path, min_messages: int):
    for path in discover_conversations(projects_dir):
        try:
            conversation = parse_conversation(path)
        except ParseError as exc:
            logger.warning("skipping session file", path=str(path), error=str(exc))
            continue
        if conversation.message_count >= min_messages:
            yield conversation


def parse_window(projects_dir: Path, min_messages: int, start: datetime, end: datetime) -> list[Conversation]:
    """Conversations with at least ``min_messages`` messages starting in ``[start, end)``.

    A conversation without a start time cannot be placed and is always included.
    """
    return [
        conversation
        for conversation in _iter_parsed(projects_dir, min_messages)
        if conversation.start_time is None or start <= conversation.start_time < end
    ]


class ClaudeCodeSource:
    """``ConversationSource`` over a Claude Code projects directory."""

    def parse_window(self, source_dir: Path, min_messages: int, start: datetime, end: datetime) -> list[Conversation]:
        return parse_window(source_dir, min_messages, start, end)


__all__ = [
    "ClaudeCodeRecord",
    "ClaudeCodeSource",
    "discover_conversations",
    "extract_content",
    "is_system_only",
    "parse_conversation",
    "parse_window",
    "strip_tags",
]
