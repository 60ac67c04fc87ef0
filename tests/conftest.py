"""Shared fixtures for palimp tests."""

import io
import tempfile
from pathlib import Path

import pytest
from git import Repo
from rich.console import Console

from palimp.config import PalimpConfig
from palimp.core.backend import GitPythonBackend


@pytest.fixture
def git_repo():
    """Create a temporary git repository with one commit on ``main``."""
    with tempfile.TemporaryDirectory() as temp_dir:
        repo_path = Path(temp_dir)
        repo = Repo.init(repo_path)
        with repo.config_writer() as config:
            config.set_value("user", "name", "Test User")
            config.set_value("user", "email", "test@example.com")
            config.set_value("commit", "gpgsign", "false")

        (repo_path / "README.md").write_text("# test\n")
        repo.git.add("README.md")
        repo.git.commit("-m", "Initial commit")
        repo.git.branch("-M", "main")

        yield repo


@pytest.fixture
def backend(git_repo):
    return GitPythonBackend(git_repo)


@pytest.fixture
def config():
    return PalimpConfig()


@pytest.fixture
def console():
    """Console that records output instead of printing it."""
    return Console(file=io.StringIO(), width=200, color_system=None)
