"""AI backend used for classification and extraction.

The default backend shells out to the ``claude`` CLI in print mode with
session persistence off, so mining does not add to the history it mines.
"""

from __future__ import annotations

import subprocess
from typing import Any, Optional, Protocol, runtime_checkable

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .core.json import JSONDecodeError, loads
from .core.log import get_logger
from .errors import AIError, ParseError

logger = get_logger(__name__)


class TransientAIError(AIError):
    """A backend failure worth retrying, such as a timeout or a non-zero exit."""


@runtime_checkable
class AIBackend(Protocol):
    """Anything that turns a prompt into a text completion.

    Implementations raise ``AIError`` on failure and must be safe to call
    from several threads at once.
    """

    def prompt(self, text: str) -> str:
        ...


class ClaudeCliBackend:
    """Runs ``claude --print`` with the prompt on stdin."""

    def __init__(
        self,
        command: str = "claude",
        *,
        model: Optional[str] = None,
        timeout: float = 300.0,
        retries: int = 2,
        backoff: float = 1.0,
    ):
        self.command = command
        self.model = model
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff

    def build_command(self) -> list[str]:
        cmd = [self.command, "--print", "--output-format", "text", "--no-session-persistence"]
        if self.model:
            cmd.extend(["--model", self.model])
        return cmd

    def _run_once(self, text: str) -> str:
        cmd = self.build_command()
        try:
            result = subprocess.run(
                cmd,
                input=text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise TransientAIError(f"{self.command} timed out after {self.timeout:g}s") from exc
        except FileNotFoundError as exc:
            raise AIError(f"AI command not found: {self.command}") from exc

        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit status {result.returncode}"
            raise TransientAIError(f"{self.command} failed: {detail}")
        if not result.stdout.strip():
            raise TransientAIError(f"{self.command} returned empty output")
        return result.stdout

    def prompt(self, text: str) -> str:
        retrying = Retrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_exponential(multiplier=self.backoff, min=self.backoff, max=10),
            retry=retry_if_exception_type(TransientAIError),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.debug("retrying AI call", attempt=attempt.retry_state.attempt_number)
                return self._run_once(text)
        raise AIError("AI call did not run")  # unreachable with reraise=True


def sanitize_json(text: str) -> str:
    """Replace control characters other than newline, carriage return and tab with spaces."""
    return "".join(
        " " if (ord(ch) < 0x20 or 0x7F <= ord(ch) < 0xA0) and ch not in "\n\r\t" else ch
        for ch in text
    )


def parse_json_response(response: str) -> list[Any]:
    """Pull the JSON array out of an AI reply.

    Tolerates markdown fences and prose around the array by taking everything
    from the first ``[`` to the last ``]``.

    Raises:
        ParseError: if no JSON array can be decoded.
    """
    trimmed = sanitize_json(response).strip()
    start = trimmed.find("[")
    if start >= 0:
        end = trimmed.rfind("]")
        candidate = trimmed[start:end + 1] if end > start else trimmed[start:]
    else:
        candidate = trimmed
    try:
        data = loads(candidate)
    except JSONDecodeError as exc:
        raise ParseError(f"Failed to parse JSON array: {exc}; response: {response[:200]!r}") from exc
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array, got {type(data).__name__}")
    return data


__all__ = [
    "AIBackend",
    "ClaudeCliBackend",
    "TransientAIError",
    "parse_json_response",
    "sanitize_json",
]
