"""Commit model for branches being landed."""

from typing import List

from pydantic import BaseModel


class Commit(BaseModel):
    """A commit on a sketch branch, with the Change-Id trailers it carries."""

    hash: str
    subject: str
    message: str
    change_ids: List[str] = []

    def shares_change_id(self, change_ids) -> bool:
        """Check whether any of this commit's Change-Ids is in ``change_ids``."""
        return any(change_id in change_ids for change_id in self.change_ids)
