"""Options and outcomes of the mutating operations."""

from typing import List, Optional

from pydantic import BaseModel

from .commit import Commit


class LandOptions(BaseModel):
    """Flags accepted by ``palimp land``."""

    squash: bool = False
    dry_run: bool = False
    force: bool = False
    use_llm: bool = False


class LandResult(BaseModel):
    """What a land run did (or, for a dry run, would do)."""

    branch: str
    landed: List[Commit] = []
    squashed: bool = False
    deleted: bool = False
    dry_run: bool = False
    message: Optional[str] = None  # squash commit message, when squashing


class UpdateResult(BaseModel):
    """What an update run did (or would do)."""

    branch: str
    main_branch: str
    rebased: bool = False
    dry_run: bool = False
