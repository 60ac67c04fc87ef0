"""Result of analyzing a commit sequence against a target ref."""

from typing import List, Optional

from pydantic import BaseModel

from .commit import Commit


class CommitAnalysis(BaseModel):
    """Which commits would land, and which one would conflict first.

    ``valid_commits`` keeps the input order and never contains the conflicting
    commit or anything after it.

    ``degraded`` means the git in use has no ``merge-tree --write-tree``, so only
    Change-Id filtering was applied and CLEAN/EMPTY results are unverified.

    ``approximate`` means a synthetic base commit could not be created at some
    step and the commit's own hash stood in for the accumulated base, so later
    outcomes may be off.
    """

    valid_commits: List[Commit] = []
    first_conflict: Optional[Commit] = None
    conflict_error: Optional[str] = None
    degraded: bool = False
    approximate: bool = False

    @property
    def has_conflict(self) -> bool:
        return self.first_conflict is not None
