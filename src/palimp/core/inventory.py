"""Enumerating sketch branches and the commits they carry."""

import logging
from datetime import datetime
from typing import List

from palimp.core.backend import GitBackend
from palimp.core.change_ids import extract_change_ids
from palimp.models import Branch, Commit

logger = logging.getLogger(__name__)


def load_commit(backend: GitBackend, commit_hash: str) -> Commit:
    """Read a commit's message and Change-Ids."""
    message = backend.commit_message(commit_hash)
    lines = message.split("\n")
    return Commit(
        hash=commit_hash,
        subject=lines[0] if lines else "",
        message=message,
        change_ids=extract_change_ids(message),
    )


def commits_in_branch(backend: GitBackend, branch: str, main_branch: str) -> List[Commit]:
    """Commits on ``branch`` that are not on ``main_branch``, oldest first."""
    return [load_commit(backend, h) for h in backend.list_commits(main_branch, branch)]


class BranchInventory:
    """Lists sketch branches with their tip and ahead/behind counts."""

    def __init__(self, backend: GitBackend, pattern: str):
        self.backend = backend
        self.pattern = pattern

    def branch_info(self, name: str, main_branch: str) -> Branch:
        commit, timestamp, subject = self.backend.ref_info(name)
        ahead, behind = self.backend.ahead_behind(main_branch, name)
        return Branch(
            name=name,
            commit=commit,
            date=datetime.fromtimestamp(timestamp),
            subject=subject,
            ahead=ahead,
            behind=behind,
        )

    def list_branches(self, main_branch: str) -> List[Branch]:
        """Every branch matching the pattern, most recent tip first."""
        names = self.backend.list_branches(self.pattern)
        logger.debug("Found %d branches matching %s", len(names), self.pattern)
        branches = [self.branch_info(name, main_branch) for name in names]
        return sorted(branches, key=lambda b: b.date, reverse=True)
