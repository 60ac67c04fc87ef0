"""Drafting squash commit messages with Claude.

The drafted message is only advisory: callers validate it with
``validate_drafted_message`` and fall back to the deterministic combined
message when drafting fails.
"""

import logging
import os
from typing import List, Optional, Protocol

import anthropic

from palimp.config import PalimpConfig
from palimp.core.change_ids import extract_change_ids
from palimp.errors import ExternalServiceError
from palimp.models import Commit

logger = logging.getLogger(__name__)


class MessageDrafter(Protocol):
    def draft(self, commits: List[Commit], diff: str) -> str:
        """Return one commit message describing all of ``commits``."""
        ...


def build_commit_message_prompt(commits: List[Commit], diff: str) -> str:
    """Prompt asking for a unified message from the original messages and diff."""
    parts = [
        "I have a series of commits that I want to squash into a single commit. "
        "Please create a unified commit message that:\n",
        "1. Includes all important information from all the input commit messages",
        "2. Correctly describes the actual changes (the code wins if there's a discrepancy)",
        "3. Includes ALL Change-ID trailers present in the input commits",
        "4. Follows the predominant style of the commit messages\n",
        "<commit_messages>",
    ]
    for commit in commits:
        parts.extend(["<commit_message>", commit.message, "</commit_message>"])
    parts.extend(["</commit_messages>\n", "<diff>", diff.rstrip("\n"), "</diff>\n"])
    parts.append(
        "Please write the unified commit message. Do not include any markdown "
        "formatting or code blocks in your response - just the raw commit message."
    )
    return "\n".join(parts)


def validate_drafted_message(message: str, expected_change_ids: List[str]) -> None:
    """Reject a drafted message with no subject or with Change-Ids missing."""
    lines = message.split("\n")
    if not message or not lines[0].strip():
        raise ExternalServiceError("missing subject line")

    found = set(extract_change_ids(message))
    missing = [change_id for change_id in expected_change_ids if change_id not in found]
    if missing:
        raise ExternalServiceError(f"missing Change-IDs: {', '.join(missing)}")


class AnthropicDrafter:
    """``MessageDrafter`` using the Anthropic Messages API."""

    def __init__(
        self,
        model: str,
        timeout: float = 30.0,
        max_tokens: int = 2048,
        api_key: Optional[str] = None,
        client: Optional[anthropic.Anthropic] = None,
    ):
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._client = client

    @classmethod
    def from_config(cls, config: PalimpConfig) -> "AnthropicDrafter":
        return cls(
            model=config.llm_model,
            timeout=config.llm_timeout,
            max_tokens=config.llm_max_tokens,
        )

    @property
    def client(self) -> anthropic.Anthropic:
        if self._client is None:
            if not self.api_key:
                raise ExternalServiceError(
                    "ANTHROPIC_API_KEY environment variable is not set"
                )
            self._client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def draft(self, commits: List[Commit], diff: str) -> str:
        prompt = build_commit_message_prompt(commits, diff)
        logger.debug("Requesting commit message from %s (%d chars)", self.model, len(prompt))
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise ExternalServiceError(f"LLM request failed: {e}") from e

        if not response.content:
            raise ExternalServiceError("LLM returned empty response")
        for block in response.content:
            if block.type == "text":
                return block.text.strip()
        raise ExternalServiceError("LLM response contained no text content")
