"""Data models for palimp."""

from .analysis import CommitAnalysis
from .branch import Branch, BranchStatus
from .commit import Commit
from .results import LandOptions, LandResult, UpdateResult

__all__ = [
    "Branch",
    "BranchStatus",
    "Commit",
    "CommitAnalysis",
    "LandOptions",
    "LandResult",
    "UpdateResult",
]
