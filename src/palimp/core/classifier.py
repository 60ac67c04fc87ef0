"""Per-branch landing status for ``palimp list``."""

import logging
from typing import Dict, Iterable, Optional

from palimp.core.analyzer import CommitAnalyzer
from palimp.core.backend import GitBackend
from palimp.core.inventory import commits_in_branch
from palimp.core.safety import find_main_branch
from palimp.errors import PalimpError
from palimp.models import BranchStatus

logger = logging.getLogger(__name__)


class StatusClassifier:
    """Maps a branch to CLEAN, CONFLICT, LANDED, EMPTY or ERROR."""

    def __init__(
        self,
        backend: GitBackend,
        main_branch_candidates: Iterable[str],
        analyzer: Optional[CommitAnalyzer] = None,
    ):
        self.backend = backend
        self.main_branch_candidates = list(main_branch_candidates)
        self.analyzer = analyzer or CommitAnalyzer(backend)
        # Set when any classification ran without merge-tree support
        self.degraded = False

    def classify(self, branch: str) -> BranchStatus:
        try:
            return self._classify(branch)
        except PalimpError as e:
            logger.debug("Could not classify %s: %s", branch, e)
            return BranchStatus.ERROR

    def classify_all(self, branches: Iterable[str]) -> Dict[str, BranchStatus]:
        return {name: self.classify(name) for name in branches}

    def _classify(self, branch: str) -> BranchStatus:
        main_branch = find_main_branch(self.backend, self.main_branch_candidates)
        commits = commits_in_branch(self.backend, branch, main_branch)
        if not commits:
            return BranchStatus.EMPTY

        analysis = self.analyzer.analyze(commits, main_branch, branch)
        if analysis.degraded:
            self.degraded = True
        if analysis.has_conflict:
            return BranchStatus.CONFLICT
        if analysis.valid_commits:
            return BranchStatus.CLEAN

        # Nothing left to land: either every commit is on main by Change-Id, or
        # some applied as no-ops (same change under a different identity).
        main_ids = self.analyzer.index.tokens_in_ref(main_branch, branch)
        landed = sum(1 for commit in commits if commit.shares_change_id(main_ids))
        if landed == len(commits):
            return BranchStatus.LANDED
        return BranchStatus.EMPTY
