"""Exceptions raised by palimp operations."""

from typing import Optional

from palimp.models.commit import Commit


class PalimpError(Exception):
    """Base class for every error palimp reports to the user."""


class GitOperationError(PalimpError):
    """A git invocation failed."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class NotFoundError(PalimpError):
    """A branch (or the main branch) does not exist."""


class PreconditionFailedError(PalimpError):
    """Dirty tree, an ongoing git operation, or the wrong current branch."""


class ConflictDetectedError(PalimpError):
    """The simulated cherry-pick sequence conflicts; nothing was changed."""

    def __init__(self, message: str, commit: Optional[Commit] = None):
        super().__init__(message)
        self.commit = commit


class ExecutionFailedError(PalimpError):
    """A mutating step failed part-way; the repository is left as-is."""

    def __init__(self, message: str, recovery: str = ""):
        super().__init__(f"{message}\n\n{recovery}" if recovery else message)
        self.recovery = recovery


class ExternalServiceError(PalimpError):
    """The commit message drafting service failed or returned garbage."""
