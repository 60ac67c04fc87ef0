"""Branch model and the status vocabulary used when listing branches."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class BranchStatus(str, Enum):
    """Whether a branch can be landed, and if not, why."""

    CLEAN = "CLEAN"
    CONFLICT = "CONFLICT"
    LANDED = "LANDED"
    EMPTY = "EMPTY"
    ERROR = "ERROR"


class Branch(BaseModel):
    """Snapshot of a sketch branch relative to the main branch."""

    name: str
    commit: str
    date: datetime
    subject: str
    ahead: int = 0
    behind: int = 0

    def short_name(self, prefix: str) -> str:
        """Branch name without the sketch prefix."""
        if prefix and self.name.startswith(prefix):
            return self.name[len(prefix) :]
        return self.name
