"""Git plumbing used by palimp.

Everything palimp does to a repository goes through ``GitBackend``. The
analyzer and executors only see this interface, so they can run against an
in-memory fake in tests. ``GitPythonBackend`` is the real implementation and
drives the git binary through GitPython.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from palimp.errors import GitOperationError, NotFoundError

logger = logging.getLogger(__name__)

# Separates messages in multi-commit ``git log`` output (written as %x1e).
_RECORD_SEP = "\x1e"


class GitBackend(ABC):
    """The git primitives palimp needs, and nothing more."""

    @property
    @abstractmethod
    def git_dir(self) -> Path:
        """Path of the repository's git directory."""

    # Refs and metadata

    @abstractmethod
    def branch_exists(self, name: str) -> bool:
        """Check whether ``refs/heads/<name>`` exists."""

    @abstractmethod
    def list_branches(self, pattern: str) -> List[str]:
        """Short names of the refs matching ``pattern`` (e.g. ``refs/heads/sketch/*``)."""

    @abstractmethod
    def ref_info(self, ref: str) -> Tuple[str, int, str]:
        """Return (hash, commit timestamp, subject) of the tip of ``ref``."""

    @abstractmethod
    def ahead_behind(self, base: str, ref: str) -> Tuple[int, int]:
        """Return (ahead, behind) counts of ``ref`` relative to ``base``."""

    @abstractmethod
    def current_branch(self) -> str:
        """Name of the checked-out branch (``HEAD`` when detached)."""

    @abstractmethod
    def rev_parse(self, rev: str) -> str:
        """Resolve ``rev`` to a full object id."""

    @abstractmethod
    def short_hash(self, rev: str) -> str:
        """Unambiguous abbreviated hash of ``rev``."""

    # History

    @abstractmethod
    def list_commits(self, base: str, ref: str) -> List[str]:
        """Hashes reachable from ``ref`` but not ``base``, oldest first."""

    @abstractmethod
    def commit_message(self, rev: str) -> str:
        """Full message (subject and body) of a commit."""

    @abstractmethod
    def commit_messages(self, ref: str, exclude: Optional[str] = None) -> List[str]:
        """Messages of every commit reachable from ``ref`` and not from ``exclude``."""

    @abstractmethod
    def merge_base(self, first: str, second: str) -> str:
        """Nearest common ancestor; raises ``GitOperationError`` if there is none."""

    @abstractmethod
    def first_parent(self, rev: str) -> Optional[str]:
        """First parent of ``rev``, or None for a root commit."""

    @abstractmethod
    def diff(self, start: str, end: str) -> str:
        """Unified diff between two revisions."""

    # Non-mutating tree computation

    @abstractmethod
    def supports_merge_tree(self, ref: str) -> bool:
        """Check whether three-way ``merge-tree`` computation is available."""

    @abstractmethod
    def merge_tree(self, merge_base: str, ours: str, theirs: str) -> str:
        """Tree id of merging ``theirs`` into ``ours``; raises on conflict."""

    @abstractmethod
    def tree_of(self, rev: str) -> str:
        """Tree id of a commit."""

    @abstractmethod
    def commit_tree(self, tree: str, parent: str, message: str) -> str:
        """Create an unreferenced commit object and return its id."""

    # Working-tree state

    @abstractmethod
    def has_staged_changes(self) -> bool:
        """Check for changes in the index relative to HEAD."""

    @abstractmethod
    def has_unstaged_changes(self) -> bool:
        """Check for changes in the working tree relative to the index."""

    # Mutations

    @abstractmethod
    def delete_branch(self, name: str) -> None:
        """Force-delete a local branch."""

    @abstractmethod
    def checkout(self, ref: str) -> None:
        """Check out a branch."""

    @abstractmethod
    def rebase(self, onto: str) -> None:
        """Rebase the current branch onto ``onto``."""

    @abstractmethod
    def rebase_abort(self) -> None:
        """Abort an in-progress rebase."""

    @abstractmethod
    def cherry_pick(self, rev: str) -> None:
        """Cherry-pick a single commit onto HEAD."""

    @abstractmethod
    def reset_soft(self, rev: str) -> None:
        """Move HEAD to ``rev`` keeping all changes staged."""

    @abstractmethod
    def commit(self, message: str) -> str:
        """Commit the index with ``message`` and return the new HEAD."""


class GitPythonBackend(GitBackend):
    """``GitBackend`` backed by a real repository via GitPython."""

    def __init__(self, repo: Repo):
        self.repo = repo
        self._merge_tree_supported: Optional[bool] = None

    @classmethod
    def discover(cls, path: Optional[Path] = None) -> "GitPythonBackend":
        """Open the repository containing ``path`` (default: cwd)."""
        try:
            repo = Repo(path or Path.cwd(), search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotFoundError("Not in a git repository") from e
        return cls(repo)

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_tree_dir)

    @property
    def git_dir(self) -> Path:
        return Path(self.repo.git_dir)

    def _run(self, command: str, *args: str) -> str:
        """Run ``git <command> <args>``, translating failures to ``GitOperationError``."""
        try:
            return getattr(self.repo.git, command)(*args)
        except GitCommandError as e:
            stderr = (e.stderr or "").strip()
            name = command.replace("_", "-")
            raise GitOperationError(
                f"git {name} failed: {stderr or e}", stderr=stderr
            ) from e

    def _succeeds(self, command: str, *args: str) -> bool:
        try:
            self._run(command, *args)
        except GitOperationError:
            return False
        return True

    def branch_exists(self, name: str) -> bool:
        return self._succeeds("show_ref", "--verify", "--quiet", f"refs/heads/{name}")

    def list_branches(self, pattern: str) -> List[str]:
        output = self._run("for_each_ref", "--format=%(refname:short)", pattern)
        return output.split()

    def ref_info(self, ref: str) -> Tuple[str, int, str]:
        output = self._run("log", "-1", "--format=%H%x00%ct%x00%s", ref, "--")
        parts = output.strip().split("\x00", 2)
        if len(parts) != 3:
            raise GitOperationError(f"Unexpected git log output for {ref}")
        try:
            timestamp = int(parts[1])
        except ValueError as e:
            raise GitOperationError(f"Bad commit timestamp for {ref}: {parts[1]}") from e
        return parts[0], timestamp, parts[2]

    def ahead_behind(self, base: str, ref: str) -> Tuple[int, int]:
        output = self._run(
            "rev_list", "--left-right", "--count", f"{base}...{ref}", "--"
        )
        try:
            behind, ahead = (int(n) for n in output.split())
        except ValueError as e:
            raise GitOperationError(f"Unexpected ahead/behind output: {output!r}") from e
        return ahead, behind

    def current_branch(self) -> str:
        return self._run("rev_parse", "--abbrev-ref", "HEAD").strip()

    def rev_parse(self, rev: str) -> str:
        return self._run("rev_parse", "--verify", rev).strip()

    def short_hash(self, rev: str) -> str:
        try:
            return self._run("rev_parse", "--short", rev).strip()
        except GitOperationError:
            return rev[:8]

    def list_commits(self, base: str, ref: str) -> List[str]:
        return self._run("rev_list", "--reverse", f"{base}..{ref}", "--").split()

    def commit_message(self, rev: str) -> str:
        return self._run("log", "-1", "--format=%B", rev, "--")

    def commit_messages(self, ref: str, exclude: Optional[str] = None) -> List[str]:
        rev_range = f"{exclude}..{ref}" if exclude else ref
        output = self._run("log", "--format=%B%x1e", rev_range, "--")
        return [message.strip("\n") for message in output.split(_RECORD_SEP) if message.strip()]

    def merge_base(self, first: str, second: str) -> str:
        return self._run("merge_base", first, second).strip()

    def first_parent(self, rev: str) -> Optional[str]:
        try:
            return self.rev_parse(f"{rev}^")
        except GitOperationError:
            return None

    def diff(self, start: str, end: str) -> str:
        return self._run("diff", f"{start}..{end}", "--")

    def supports_merge_tree(self, ref: str) -> bool:
        if self._merge_tree_supported is None:
            self._merge_tree_supported = self._succeeds(
                "merge_tree", "--write-tree", "--merge-base", ref, ref, ref
            )
            if not self._merge_tree_supported:
                logger.warning(
                    "git merge-tree --write-tree is unavailable; "
                    "conflict and empty-commit detection disabled"
                )
        return self._merge_tree_supported

    def merge_tree(self, merge_base: str, ours: str, theirs: str) -> str:
        output = self._run(
            "merge_tree", "--write-tree", "--merge-base", merge_base, ours, theirs
        )
        lines = output.strip().splitlines()
        return lines[0].strip() if lines else ""

    def tree_of(self, rev: str) -> str:
        return self.rev_parse(f"{rev}^{{tree}}")

    def commit_tree(self, tree: str, parent: str, message: str) -> str:
        return self._run("commit_tree", tree, "-p", parent, "-m", message).strip()

    def has_staged_changes(self) -> bool:
        return not self._succeeds("diff_index", "--quiet", "--cached", "HEAD")

    def has_unstaged_changes(self) -> bool:
        # diff-files trusts cached stat data, so refresh it first
        self._succeeds("update_index", "-q", "--refresh")
        return not self._succeeds("diff_files", "--quiet")

    def delete_branch(self, name: str) -> None:
        self._run("branch", "-D", name)

    def checkout(self, ref: str) -> None:
        self._run("checkout", ref, "--")

    def rebase(self, onto: str) -> None:
        self._run("rebase", onto)

    def rebase_abort(self) -> None:
        self._run("rebase", "--abort")

    def cherry_pick(self, rev: str) -> None:
        self._run("cherry_pick", rev)

    def reset_soft(self, rev: str) -> None:
        self._run("reset", "--soft", rev)

    def commit(self, message: str) -> str:
        # Commit from a file so multi-line messages survive untouched
        fd, message_path = tempfile.mkstemp(prefix="palimp-squash-", suffix=".txt")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(message)
            self._run("commit", "-F", message_path)
        finally:
            os.unlink(message_path)
        return self.rev_parse("HEAD")
