"""Commit messages for squashed landings."""

import logging
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from palimp.core.backend import GitBackend
from palimp.core.change_ids import unique_change_ids
from palimp.errors import ExternalServiceError, GitOperationError
from palimp.llm.drafter import MessageDrafter, validate_drafted_message
from palimp.models import Commit

logger = logging.getLogger(__name__)


def combined_commit_message(backend: GitBackend, commits: List[Commit]) -> str:
    """Deterministic squash message.

    First subject, a numbered list of the squashed commits, then every
    distinct Change-Id.
    """
    parts = []
    if commits:
        parts.extend([commits[0].subject, ""])

    parts.append(f"Squashed {len(commits)} commits:")
    for i, commit in enumerate(commits, start=1):
        parts.append(f"{i}. {commit.subject} ({backend.short_hash(commit.hash)})")
    parts.append("")

    for change_id in unique_change_ids(c.change_ids for c in commits):
        parts.append(f"Change-Id: {change_id}")

    return "\n".join(parts)


def commits_diff(backend: GitBackend, commits: List[Commit]) -> str:
    """Diff from the first commit's parent through the last commit."""
    if not commits:
        return ""
    parent = backend.rev_parse(f"{commits[0].hash}^")
    return backend.diff(parent, commits[-1].hash)


def squash_message(
    backend: GitBackend,
    commits: List[Commit],
    drafter: Optional[MessageDrafter],
    console: Console,
) -> str:
    """Message for squashing ``commits``, drafted by ``drafter`` when given.

    Any drafting failure, or a draft that drops a subject or a Change-Id,
    falls back to ``combined_commit_message``.
    """
    if drafter is None:
        return combined_commit_message(backend, commits)

    console.print("Generating commit message using LLM...")
    try:
        message = drafter.draft(commits, commits_diff(backend, commits))
    except (ExternalServiceError, GitOperationError) as e:
        logger.debug("LLM drafting failed: %s", e)
        console.print(
            f"[yellow]Warning: LLM generation failed ({escape(str(e))}), "
            "falling back to default method[/yellow]"
        )
        return combined_commit_message(backend, commits)

    try:
        validate_drafted_message(message, unique_change_ids(c.change_ids for c in commits))
    except ExternalServiceError as e:
        logger.debug("Discarding LLM commit message: %s", e)
        console.print(
            f"[yellow]Warning: LLM response validation failed ({escape(str(e))}), "
            "falling back to default method[/yellow]"
        )
        return combined_commit_message(backend, commits)

    console.print("LLM-generated commit message validated successfully.")
    return message
