"""Commit analysis: what would happen if a commit sequence were cherry-picked.

The analysis never touches the working tree, the index, or any named ref.
Cherry-picks are simulated with ``git merge-tree --write-tree`` and the
accumulated result is carried in unreferenced commit objects.
"""

import logging
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Set, Tuple

from pydantic import BaseModel

from palimp.core.backend import GitBackend
from palimp.core.change_ids import ChangeIdIndex
from palimp.errors import GitOperationError
from palimp.models import Commit, CommitAnalysis

logger = logging.getLogger(__name__)

SYNTHETIC_COMMIT_MESSAGE = "palimp: simulated cherry-pick"


class StepOutcome(str, Enum):
    """What simulating one cherry-pick produced."""

    ACCEPTED = "accepted"
    EMPTY = "empty"
    CONFLICT = "conflict"


class AnalysisState(BaseModel):
    """Accumulator threaded through ``analyze_step``.

    ``base`` is the commit representing main plus every accepted commit so far.
    """

    base: str
    valid_commits: Tuple[Commit, ...] = ()
    approximate: bool = False

    model_config = {"frozen": True}


class StepResult(NamedTuple):
    state: AnalysisState
    outcome: StepOutcome
    error: Optional[str] = None


def filter_landed(commits: Iterable[Commit], landed_ids: Set[str]) -> List[Commit]:
    """Drop commits that share a Change-Id with ``landed_ids``.

    Commits without any Change-Id are always kept.
    """
    remaining = []
    for commit in commits:
        if commit.shares_change_id(landed_ids):
            logger.debug("Skipping %s: Change-Id already landed", commit.hash)
            continue
        remaining.append(commit)
    return remaining


def analyze_step(
    backend: GitBackend,
    state: AnalysisState,
    commit: Commit,
    position: int,
    total: int,
) -> StepResult:
    """Simulate cherry-picking ``commit`` onto ``state.base``.

    ``position`` is 1-based and only used in the conflict diagnostic.
    """
    label = f"{position}/{total} ({backend.short_hash(commit.hash)} {commit.subject})"

    try:
        tree = backend.merge_tree(f"{commit.hash}^", state.base, commit.hash)
    except GitOperationError as e:
        return StepResult(
            state, StepOutcome.CONFLICT, f"merge conflict detected for commit {label}: {e}"
        )
    if not tree:
        return StepResult(
            state,
            StepOutcome.CONFLICT,
            f"unexpected empty output from merge-tree for commit {label}",
        )

    try:
        base_tree = backend.tree_of(state.base)
    except GitOperationError:
        base_tree = None
    if tree == base_tree:
        return StepResult(state, StepOutcome.EMPTY)

    approximate = state.approximate
    try:
        new_base = backend.commit_tree(tree, state.base, SYNTHETIC_COMMIT_MESSAGE)
    except GitOperationError as e:
        logger.warning(
            "Could not create synthetic commit after %s (%s); using the commit itself "
            "as the base, later results may be inaccurate",
            commit.hash,
            e,
        )
        new_base = commit.hash
        approximate = True

    new_state = state.model_copy(
        update={
            "base": new_base,
            "valid_commits": state.valid_commits + (commit,),
            "approximate": approximate,
        }
    )
    return StepResult(new_state, StepOutcome.ACCEPTED)


class CommitAnalyzer:
    """Splits a branch's commits into landable, already-landed, empty and conflicting."""

    def __init__(self, backend: GitBackend, index: Optional[ChangeIdIndex] = None):
        self.backend = backend
        self.index = index or ChangeIdIndex(backend)

    def analyze(
        self,
        commits: List[Commit],
        main_ref: str,
        source_branch: Optional[str] = None,
    ) -> CommitAnalysis:
        """Analyze ``commits`` (oldest first) against ``main_ref``.

        ``source_branch`` narrows the Change-Id scan to the merge-base window.
        """
        main_ids = self.index.tokens_in_ref(main_ref, source_branch)

        candidates = filter_landed(commits, main_ids)
        if not candidates:
            return CommitAnalysis()

        if not self.backend.supports_merge_tree(main_ref):
            return CommitAnalysis(valid_commits=candidates, degraded=True)

        state = AnalysisState(base=main_ref)
        total = len(candidates)
        for position, commit in enumerate(candidates, start=1):
            state, outcome, error = analyze_step(self.backend, state, commit, position, total)
            if outcome is StepOutcome.CONFLICT:
                return CommitAnalysis(
                    valid_commits=list(state.valid_commits),
                    first_conflict=commit,
                    conflict_error=error,
                    approximate=state.approximate,
                )
            if outcome is StepOutcome.EMPTY:
                logger.debug("Skipping %s: cherry-pick would be empty", commit.hash)

        return CommitAnalysis(
            valid_commits=list(state.valid_commits), approximate=state.approximate
        )
