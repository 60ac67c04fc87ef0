"""Helpers for building test repositories."""

from pathlib import Path
from typing import Iterable, Optional, Tuple

import pytest
from git import Git, Repo

# merge-tree --write-tree --merge-base needs git 2.40
requires_merge_tree = pytest.mark.skipif(
    Git().version_info < (2, 40),
    reason="git merge-tree --write-tree --merge-base not available",
)


def commit_file(
    repo: Repo,
    filename: str,
    content: str,
    message: str,
    change_id: Optional[str] = None,
    date: Optional[str] = None,
) -> str:
    """Write ``filename`` and commit it; return the new commit hash."""
    path = Path(repo.working_tree_dir) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.git.add(filename)

    if change_id:
        message = f"{message}\n\nChange-Id: {change_id}"
    env = {"GIT_AUTHOR_DATE": date, "GIT_COMMITTER_DATE": date} if date else None
    repo.git.commit("-m", message, env=env)
    return repo.head.commit.hexsha


def create_sketch_branch(
    repo: Repo,
    name: str,
    commits: Iterable[Tuple],
    start: str = "main",
) -> str:
    """Create ``sketch/<name>`` from ``start`` with ``commits`` and return to main.

    Each commit is a tuple of (filename, content, message[, change_id]).
    """
    branch = f"sketch/{name}"
    repo.git.checkout("-b", branch, start)
    for commit in commits:
        commit_file(repo, *commit)
    repo.git.checkout("main")
    return branch


def commit_count(repo: Repo, ref: str = "main") -> int:
    return int(repo.git.rev_list("--count", ref))


def branch_exists(repo: Repo, name: str) -> bool:
    return name in [head.name for head in repo.heads]


def copy_onto_main(repo: Repo, branch: str) -> None:
    """Cherry-pick every commit of ``branch`` onto main as new commits.

    ``-x`` records the source in the message, so each copy gets its own hash
    even when it is made within the same second as the original.
    """
    repo.git.checkout("main")
    for sha in repo.git.rev_list("--reverse", f"main..{branch}").split():
        repo.git.cherry_pick("-x", sha)
