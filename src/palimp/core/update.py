"""Rebasing a sketch branch onto the current main branch."""

import logging
from typing import Optional

from rich.console import Console

from palimp.config import PalimpConfig
from palimp.core.analyzer import CommitAnalyzer
from palimp.core.backend import GitBackend
from palimp.core.inventory import commits_in_branch
from palimp.core.safety import SafetyGuard
from palimp.errors import ConflictDetectedError, ExecutionFailedError, GitOperationError
from palimp.models import UpdateResult

logger = logging.getLogger(__name__)


class UpdateExecutor:
    """Rebases a branch in place; main and the branch's existence are untouched."""

    def __init__(
        self,
        backend: GitBackend,
        config: PalimpConfig,
        console: Optional[Console] = None,
        analyzer: Optional[CommitAnalyzer] = None,
    ):
        self.backend = backend
        self.config = config
        self.console = console or Console()
        self.analyzer = analyzer or CommitAnalyzer(backend)
        self.guard = SafetyGuard(backend, config.main_branch_candidates)

    def update(self, branch_name: str, dry_run: bool = False) -> UpdateResult:
        main_branch = self.guard.check_on_main()
        self.guard.check_repo_state()

        branch = self.config.normalize_branch(branch_name)
        self.guard.require_branch(branch)
        result = UpdateResult(branch=branch, main_branch=main_branch, dry_run=dry_run)

        try:
            commits = commits_in_branch(self.backend, branch, main_branch)
        except GitOperationError as e:
            raise GitOperationError(f"failed to get commits from {branch}: {e}") from e

        if commits:
            self.console.print(f"Validating that {len(commits)} commits can be rebased...")
            analysis = self.analyzer.analyze(commits, main_branch)
            if analysis.has_conflict:
                raise ConflictDetectedError(
                    f"rebase validation failed: {analysis.conflict_error}\n\n"
                    "The rebase would fail. Please resolve conflicts manually.",
                    commit=analysis.first_conflict,
                )
            self.console.print("Validation successful.")

        if dry_run:
            self.console.print(f"[DRY RUN] Would rebase {branch} onto {main_branch}")
            self.console.print(f"[DRY RUN]   Checkout {branch}")
            self.console.print(f"[DRY RUN]   Rebase onto {main_branch}")
            self.console.print(f"[DRY RUN]   Checkout {main_branch}")
            return result

        self.console.print(f"Rebasing {branch} onto {main_branch}...")
        try:
            self.backend.checkout(branch)
        except GitOperationError as e:
            raise ExecutionFailedError(f"failed to checkout {branch}: {e}") from e

        try:
            self.backend.rebase(main_branch)
        except GitOperationError as e:
            self._restore_main(main_branch)
            raise ExecutionFailedError(f"rebase failed: {e}") from e

        try:
            self.backend.checkout(main_branch)
        except GitOperationError as e:
            raise ExecutionFailedError(f"failed to checkout {main_branch}: {e}") from e

        self.console.print(f"Successfully updated {branch}")
        result.rebased = True
        return result

    def _restore_main(self, main_branch: str) -> None:
        """Undo a failed rebase and go back to main, best effort."""
        for step, action in (
            ("rebase --abort", self.backend.rebase_abort),
            (f"checkout {main_branch}", lambda: self.backend.checkout(main_branch)),
        ):
            try:
                action()
            except GitOperationError as e:
                logger.warning("git %s failed while recovering from rebase: %s", step, e)
