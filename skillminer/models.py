"""Data models shared across the mining pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ToolUse(BaseModel):
    """A tool invocation made by the assistant."""

    model_config = ConfigDict(frozen=True)

    name: str
    input_summary: str = ""
    file_path: Optional[str] = None
    command: Optional[str] = None


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: Optional[datetime] = None
    tool_uses: list[ToolUse] = Field(default_factory=list)


class Conversation(BaseModel):
    """One parsed session file. Immutable once parsed.

    ``start_time`` is None when no record in the source carried a parseable
    timestamp; such conversations match every time window.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source_path: Path
    messages: list[Message] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    cwd: Optional[str] = None
    git_branch: Optional[str] = None

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def first_user_message(self) -> Optional[str]:
        for message in self.messages:
            if message.role is Role.USER:
                return message.content
        return None


class ConversationSummary(BaseModel):
    """Compact view of a conversation used for classification."""

    model_config = ConfigDict(frozen=True)

    id: str
    source_path: Path
    first_message: str = ""
    message_count: int = 0
    start_time: Optional[datetime] = None
    cwd: Optional[str] = None
    topics: list[str] = Field(default_factory=list)
    tools_used: list[str] = Field(default_factory=list)
    files_touched: list[str] = Field(default_factory=list)
    commands_used: list[str] = Field(default_factory=list)


class ClassifiedConversation(BaseModel):
    """A summary with its assigned topic. Persisted in the pending queue."""

    model_config = ConfigDict(frozen=True)

    summary: ConversationSummary
    topic: str
    slug: str
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @property
    def id(self) -> str:
        return self.summary.id


class KnowledgePattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    steps: list[str] = Field(default_factory=list)
    code_examples: list[str] = Field(default_factory=list)
    source_ids: list[str] = Field(default_factory=list)
    frequency: int = Field(default=1, ge=0)
    skill_slug: Optional[str] = None


class TopicCluster(BaseModel):
    """Conversations of one topic together with the patterns extracted from them."""

    model_config = ConfigDict(frozen=True)

    topic: str
    conversations: list[ClassifiedConversation] = Field(default_factory=list)
    patterns: list[KnowledgePattern] = Field(default_factory=list)


class SkillDraft(BaseModel):
    name: str
    description: str
    body: str
    sources: list[str] = Field(default_factory=list)

    def format_md(self) -> str:
        """Render the draft as a markdown document with YAML frontmatter."""
        description = self.description.replace('"', '\\"')
        return f'---\nname: {self.name}\ndescription: "{description}"\n---\n\n{self.body}\n'


class DraftStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    DEPLOYED = "deployed"
    REJECTED = "rejected"


class DraftRecord(BaseModel):
    """Manifest entry tracking one generated skill draft."""

    slug: str
    topic: str
    status: DraftStatus = DraftStatus.DRAFT
    pattern_count: int = Field(default=0, ge=0)
    conversation_count: int = Field(default=0, ge=0)
    generated_at: datetime
    deployed_at: Optional[datetime] = None
    content_hash: str = ""
    score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    fire_count: Optional[int] = Field(default=None, ge=0)

    @field_validator("slug")
    @classmethod
    def non_empty_slug(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("slug cannot be empty")
        return value


@dataclass
class PipelineStats:
    """AI call counters for one run. Observational only."""

    classify_calls: int = 0
    extract_calls: int = 0
    extract_failures: int = 0

    @property
    def total_calls(self) -> int:
        return self.classify_calls + self.extract_calls


__all__ = [
    "Role",
    "ToolUse",
    "Message",
    "Conversation",
    "ConversationSummary",
    "ClassifiedConversation",
    "KnowledgePattern",
    "TopicCluster",
    "SkillDraft",
    "DraftStatus",
    "DraftRecord",
    "PipelineStats",
]
