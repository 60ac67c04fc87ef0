"""Change-Id trailers: extraction and lookup of which ids a ref already has."""

import logging
from typing import Iterable, List, Optional, Set

from palimp.core.backend import GitBackend
from palimp.errors import GitOperationError

logger = logging.getLogger(__name__)

CHANGE_ID_PREFIX = "change-id:"


def extract_change_ids(text: str) -> List[str]:
    """Return every Change-Id in ``text``, in line order.

    The ``Change-Id:`` key matches case-insensitively; the id keeps its case.
    """
    change_ids = []
    for line in text.splitlines():
        line = line.strip()
        if not line.lower().startswith(CHANGE_ID_PREFIX):
            continue
        change_id = line[len(CHANGE_ID_PREFIX) :].strip()
        if change_id:
            change_ids.append(change_id)
    return change_ids


def unique_change_ids(groups: Iterable[Iterable[str]]) -> List[str]:
    """Flatten ``groups`` of ids, dropping repeats but keeping first-seen order."""
    seen: Set[str] = set()
    ordered = []
    for group in groups:
        for change_id in group:
            if change_id not in seen:
                seen.add(change_id)
                ordered.append(change_id)
    return ordered


class ChangeIdIndex:
    """Answers "which Change-Ids does this ref already contain?"."""

    def __init__(self, backend: GitBackend):
        self.backend = backend

    def tokens_in_ref(self, ref: str, source_branch: Optional[str] = None) -> Set[str]:
        """Collect the Change-Ids in ``ref``'s history.

        With ``source_branch``, only commits of ``ref`` back to (and including)
        its merge-base with ``source_branch`` are scanned: anything cherry-picked
        from the source branch landed after they diverged. Disjoint histories
        fall back to scanning all of ``ref``.
        """
        exclude = None
        if source_branch:
            exclude = self._window_start(ref, source_branch)

        messages = self.backend.commit_messages(ref, exclude=exclude)
        tokens: Set[str] = set()
        for message in messages:
            tokens.update(extract_change_ids(message))
        logger.debug(
            "Found %d Change-Ids in %s (%d commits scanned)", len(tokens), ref, len(messages)
        )
        return tokens

    def _window_start(self, ref: str, source_branch: str) -> Optional[str]:
        try:
            merge_base = self.backend.merge_base(ref, source_branch)
        except GitOperationError:
            logger.debug("No merge-base between %s and %s; scanning all of %s", ref, source_branch, ref)
            return None

        # Exclude from the merge-base's parent so the merge-base itself is scanned.
        # A root merge-base has no parent, so the window starts after it instead.
        parent = self.backend.first_parent(merge_base)
        return parent if parent is not None else merge_base
