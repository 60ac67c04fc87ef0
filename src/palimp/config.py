"""Configuration for palimp.

Values come from defaults, then ``.palimp.json`` in the repository root, then
``PALIMP_*`` environment variables.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ValidationError

from palimp.errors import PalimpError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".palimp.json"

DEFAULT_MAIN_BRANCHES = ["main", "master", "trunk", "develop", "default", "stable"]
DEFAULT_BRANCH_PREFIX = "sketch/"
DEFAULT_LLM_MODEL = "claude-sonnet-4-20250514"


class PalimpConfig(BaseModel):
    """Settings shared by every palimp command."""

    # Checked in order; the first branch that exists is main.
    main_branch_candidates: List[str] = list(DEFAULT_MAIN_BRANCHES)
    branch_prefix: str = DEFAULT_BRANCH_PREFIX
    llm_model: str = DEFAULT_LLM_MODEL
    llm_timeout: float = 30.0
    llm_max_tokens: int = 2048

    @property
    def branch_pattern(self) -> str:
        """Ref pattern matching every sketch branch."""
        return f"refs/heads/{self.branch_prefix}*"

    def normalize_branch(self, name: str) -> str:
        """Add the sketch prefix to ``name`` unless it already has it."""
        if name.startswith(self.branch_prefix):
            return name
        return self.branch_prefix + name


def _env_overrides() -> dict:
    overrides = {}
    main_branches = os.environ.get("PALIMP_MAIN_BRANCHES")
    if main_branches:
        overrides["main_branch_candidates"] = [
            name.strip() for name in main_branches.split(",") if name.strip()
        ]
    prefix = os.environ.get("PALIMP_BRANCH_PREFIX")
    if prefix:
        overrides["branch_prefix"] = prefix
    model = os.environ.get("PALIMP_LLM_MODEL")
    if model:
        overrides["llm_model"] = model
    return overrides


def load_config(repo_root: Optional[Path] = None) -> PalimpConfig:
    """Load configuration for the repository at ``repo_root``."""
    data = {}
    if repo_root is not None:
        config_file = Path(repo_root) / CONFIG_FILENAME
        if config_file.exists():
            try:
                data = json.loads(config_file.read_text())
            except json.JSONDecodeError as e:
                raise PalimpError(f"Invalid JSON in {config_file}: {e}") from e
            if not isinstance(data, dict):
                raise PalimpError(f"{config_file} must contain a JSON object")
            logger.debug("Loaded config from %s", config_file)

    data.update(_env_overrides())

    try:
        return PalimpConfig(**data)
    except ValidationError as e:
        raise PalimpError(f"Invalid palimp configuration: {e}") from e
