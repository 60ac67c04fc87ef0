"""Landing a sketch branch: cherry-pick its new commits onto main."""

import logging
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from palimp.config import PalimpConfig
from palimp.core.analyzer import CommitAnalyzer
from palimp.core.backend import GitBackend
from palimp.core.inventory import commits_in_branch
from palimp.core.safety import SafetyGuard
from palimp.core.squash import combined_commit_message, squash_message
from palimp.errors import ConflictDetectedError, ExecutionFailedError, GitOperationError
from palimp.llm.drafter import AnthropicDrafter, MessageDrafter
from palimp.models import Commit, LandOptions, LandResult

logger = logging.getLogger(__name__)

DRY_RUN = "[DRY RUN]"


def cherry_pick_recovery(applied: int) -> str:
    return (
        "To recover:\n"
        "  git cherry-pick --abort    # Cancel the cherry-pick\n"
        f"  git reset --hard HEAD~{applied}   # Undo {applied} commits that were already applied"
    )


class LandingExecutor:
    """Cherry-picks a branch's landable commits onto the current branch.

    Nothing is changed until the whole sequence has been analyzed. Once
    cherry-picking starts, a failure stops immediately and leaves the commits
    applied so far in place; the error carries the recovery commands.
    """

    def __init__(
        self,
        backend: GitBackend,
        config: PalimpConfig,
        console: Optional[Console] = None,
        drafter: Optional[MessageDrafter] = None,
        analyzer: Optional[CommitAnalyzer] = None,
    ):
        self.backend = backend
        self.config = config
        self.console = console or Console()
        self.drafter = drafter
        self.analyzer = analyzer or CommitAnalyzer(backend)
        self.guard = SafetyGuard(backend, config.main_branch_candidates)

    def land(self, branch_name: str, options: LandOptions) -> LandResult:
        if not options.force:
            self.guard.check_on_main()
        self.guard.check_repo_state()

        branch = self.config.normalize_branch(branch_name)
        self.guard.require_branch(branch)
        result = LandResult(branch=branch, dry_run=options.dry_run)

        main_branch = self.guard.main_branch()
        try:
            commits = commits_in_branch(self.backend, branch, main_branch)
        except GitOperationError as e:
            raise GitOperationError(f"failed to get commits from {branch}: {e}") from e

        if not commits:
            self.console.print(f"Branch {branch} has no commits to land.")
            return result

        self.console.print(f"Analyzing {len(commits)} commits for landing...")
        analysis = self.analyzer.analyze(commits, main_branch, branch)
        if analysis.has_conflict:
            raise ConflictDetectedError(
                f"validation failed: {analysis.conflict_error}\n\n"
                "The cherry-pick sequence would fail. "
                "Please resolve conflicts on the branch first.",
                commit=analysis.first_conflict,
            )
        if analysis.degraded:
            self.console.print(
                "[yellow]git merge-tree unavailable; only Change-Id filtering was "
                "checked[/yellow]"
            )

        new_commits = analysis.valid_commits
        if not new_commits:
            self.console.print(
                f"All commits from {branch} are already in main "
                "or would result in empty cherry-picks."
            )
            if options.dry_run:
                self.console.print(f"{DRY_RUN} Would delete branch {branch}")
                return result
            self._delete_branch(branch)
            result.deleted = True
            return result

        self.console.print(f"Analysis successful. {len(new_commits)} commits ready to land.")
        will_squash = options.squash and len(new_commits) > 1

        if options.dry_run:
            self._print_plan(branch, new_commits, will_squash, options.use_llm)
            result.landed = list(new_commits)
            result.squashed = will_squash
            if will_squash and not options.use_llm:
                result.message = combined_commit_message(self.backend, new_commits)
            return result

        self.console.print(f"Landing {len(new_commits)} commits from {branch}...")
        self._cherry_pick_all(new_commits)
        result.landed = list(new_commits)

        if will_squash:
            self.console.print(f"Squashing {len(new_commits)} commits...")
            result.message = self._squash(new_commits, options.use_llm)
            result.squashed = True

        self.console.print(f"Successfully landed {branch}, deleting branch...")
        self._delete_branch(branch)
        result.deleted = True
        return result

    def _print_plan(
        self, branch: str, commits: List[Commit], will_squash: bool, use_llm: bool
    ) -> None:
        total = len(commits)
        self.console.print(f"{DRY_RUN} Would land {total} commits from {branch}:")
        for i, commit in enumerate(commits, start=1):
            self.console.print(
                f"{DRY_RUN}   Cherry-pick {i}/{total}: "
                f"{self.backend.short_hash(commit.hash)} {escape(commit.subject)}"
            )
        if will_squash:
            if use_llm:
                self.console.print(
                    f"{DRY_RUN}   Squash {total} commits into one with LLM-generated message"
                )
                self.console.print(
                    f"{DRY_RUN}   (LLM would analyze commit messages and diff "
                    "to generate unified message)"
                )
            else:
                self.console.print(
                    f"{DRY_RUN}   Squash {total} commits into one with combined message"
                )
                self.console.print(f"{DRY_RUN}   Combined commit message preview:")
                for line in combined_commit_message(self.backend, commits).split("\n"):
                    self.console.print(f"{DRY_RUN}     {escape(line)}")
        self.console.print(f"{DRY_RUN}   Delete branch {branch}")

    def _cherry_pick_all(self, commits: List[Commit]) -> None:
        total = len(commits)
        for i, commit in enumerate(commits):
            self.console.print(
                f"Cherry-picking {i + 1}/{total}: "
                f"{self.backend.short_hash(commit.hash)} {escape(commit.subject)}"
            )
            try:
                self.backend.cherry_pick(commit.hash)
            except GitOperationError as e:
                raise ExecutionFailedError(
                    f"cherry-pick of {commit.hash} failed: {e}",
                    recovery=cherry_pick_recovery(i),
                ) from e

    def _squash(self, commits: List[Commit], use_llm: bool) -> str:
        drafter = self.drafter
        if use_llm and drafter is None:
            drafter = AnthropicDrafter.from_config(self.config)

        try:
            # Message first, so a failed draft never leaves HEAD reset
            message = squash_message(
                self.backend, commits, drafter if use_llm else None, self.console
            )
            base = self.backend.rev_parse(f"HEAD~{len(commits)}")
            self.backend.reset_soft(base)
            self.backend.commit(message)
        except GitOperationError as e:
            raise ExecutionFailedError(f"failed to squash commits: {e}") from e
        return message

    def _delete_branch(self, branch: str) -> None:
        try:
            self.backend.delete_branch(branch)
        except GitOperationError as e:
            raise ExecutionFailedError(f"failed to delete branch {branch}: {e}") from e
        logger.debug("Deleted branch %s", branch)
