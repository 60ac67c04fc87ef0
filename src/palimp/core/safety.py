"""Repository preconditions checked before palimp changes anything."""

from typing import Sequence

from palimp.core.backend import GitBackend
from palimp.errors import GitOperationError, NotFoundError, PreconditionFailedError

# Files or directories git leaves behind while an operation is in progress
ONGOING_OPERATION_MARKERS = (
    "MERGE_HEAD",
    "CHERRY_PICK_HEAD",
    "REVERT_HEAD",
    "BISECT_LOG",
    "rebase-merge",
    "rebase-apply",
)


def find_main_branch(backend: GitBackend, candidates: Sequence[str]) -> str:
    """Return the first branch in ``candidates`` that exists."""
    for name in candidates:
        if backend.branch_exists(name):
            return name
    raise NotFoundError(f"no main branch found; checked: {', '.join(candidates)}")


class SafetyGuard:
    """Refuses to proceed unless the repository is in a known-good state."""

    def __init__(self, backend: GitBackend, main_branch_candidates: Sequence[str]):
        self.backend = backend
        self.main_branch_candidates = list(main_branch_candidates)

    def main_branch(self) -> str:
        return find_main_branch(self.backend, self.main_branch_candidates)

    def check_repo_state(self) -> None:
        """Fail on an ongoing git operation, staged changes, or unstaged changes."""
        git_dir = self.backend.git_dir
        for marker in ONGOING_OPERATION_MARKERS:
            path = git_dir / marker
            if path.exists():
                raise PreconditionFailedError(
                    f"repository has ongoing git operation (found {path})"
                )

        if self.backend.has_staged_changes():
            raise PreconditionFailedError(
                "repository has staged changes; commit or reset them"
            )
        if self.backend.has_unstaged_changes():
            raise PreconditionFailedError(
                "repository has unstaged changes; commit or stash them"
            )

    def check_on_main(self) -> str:
        """Fail unless the main branch is checked out; return its name."""
        main_branch = self.main_branch()
        try:
            current = self.backend.current_branch()
        except GitOperationError as e:
            raise PreconditionFailedError(f"failed to get current branch: {e}") from e
        if current != main_branch:
            raise PreconditionFailedError(
                f"must be on main branch ({main_branch}), currently on {current}"
            )
        return main_branch

    def require_branch(self, name: str) -> None:
        if not self.backend.branch_exists(name):
            raise NotFoundError(f"branch {name} does not exist")
