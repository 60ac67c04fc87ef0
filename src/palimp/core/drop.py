"""Discarding a sketch branch."""

from typing import Optional

from rich.console import Console

from palimp.config import PalimpConfig
from palimp.core.backend import GitBackend
from palimp.core.safety import SafetyGuard
from palimp.errors import ExecutionFailedError, GitOperationError


class DropExecutor:
    """Force-deletes a sketch branch. Works from any checked-out branch."""

    def __init__(
        self, backend: GitBackend, config: PalimpConfig, console: Optional[Console] = None
    ):
        self.backend = backend
        self.config = config
        self.console = console or Console()
        self.guard = SafetyGuard(backend, config.main_branch_candidates)

    def drop(self, branch_name: str, dry_run: bool = False) -> str:
        """Delete the branch and return its full name."""
        self.guard.check_repo_state()

        branch = self.config.normalize_branch(branch_name)
        self.guard.require_branch(branch)

        if dry_run:
            self.console.print(f"[DRY RUN] Would delete branch {branch}")
            return branch

        # git refuses to delete the checked-out branch; that surfaces here
        try:
            self.backend.delete_branch(branch)
        except GitOperationError as e:
            raise ExecutionFailedError(f"failed to delete branch {branch}: {e}") from e
        self.console.print(f"Deleted branch {branch}")
        return branch
