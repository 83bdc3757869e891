"""Conversation sources."""

from .claude_code import ClaudeCodeSource, parse_conversation, parse_window

__all__ = ["ClaudeCodeSource", "parse_conversation", "parse_window"]
