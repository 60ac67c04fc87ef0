"""Command-line interface for palimp."""

import logging
from typing import Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from palimp.cli.help import CONCEPTUAL_HELP
from palimp.config import PalimpConfig, load_config
from palimp.core.backend import GitPythonBackend
from palimp.core.classifier import StatusClassifier
from palimp.core.drop import DropExecutor
from palimp.core.inventory import BranchInventory
from palimp.core.landing import LandingExecutor
from palimp.core.safety import SafetyGuard
from palimp.core.update import UpdateExecutor
from palimp.errors import PalimpError
from palimp.models import BranchStatus, LandOptions

console = Console()

STATUS_STYLES = {
    BranchStatus.CLEAN: "green",
    BranchStatus.CONFLICT: "red",
    BranchStatus.LANDED: "blue",
    BranchStatus.EMPTY: "yellow",
    BranchStatus.ERROR: "bold red",
}

dry_run_option = click.option(
    "--dry-run", "-n", is_flag=True, help="Show what would be done without executing"
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _open_repository() -> Tuple[GitPythonBackend, PalimpConfig]:
    """Open the repository around the current directory and load its config."""
    backend = GitPythonBackend.discover()
    return backend, load_config(backend.working_dir)


def _fail(error: PalimpError):
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    raise click.Abort() from error


@click.group()
@click.version_option(package_name="palimp")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def main(verbose: bool):
    """palimp - manage sketch branches and land them onto main.

    Commits are cherry-picked, never merged, and Change-Id trailers keep a
    commit from landing twice. Run 'palimp help' for background.
    """
    _setup_logging(verbose)


@main.command("list")
def list_branches():
    """List sketch branches with ahead/behind counts and landing status."""
    try:
        backend, config = _open_repository()
        guard = SafetyGuard(backend, config.main_branch_candidates)
        guard.check_repo_state()
        main_branch = guard.main_branch()
        branches = BranchInventory(backend, config.branch_pattern).list_branches(main_branch)
    except PalimpError as e:
        _fail(e)

    if not branches:
        console.print(f"No {config.branch_prefix}* branches found.")
        return

    classifier = StatusClassifier(backend, config.main_branch_candidates)

    table = Table(box=None, pad_edge=False)
    table.add_column("BRANCH", style="cyan", no_wrap=True)
    table.add_column("AHEAD", style="green", justify="right")
    table.add_column("BEHIND", style="magenta", justify="right")
    table.add_column("LAST COMMIT")
    table.add_column("STATUS")
    table.add_column("SUBJECT")

    for branch in branches:
        status = classifier.classify(branch.name)
        table.add_row(
            escape(branch.short_name(config.branch_prefix)),
            f"+{branch.ahead}",
            f"-{branch.behind}" if branch.behind > 0 else "",
            branch.date.strftime("%Y-%m-%d"),
            f"[{STATUS_STYLES[status]}]{status.value}[/{STATUS_STYLES[status]}]",
            escape(branch.subject),
        )

    console.print(table)
    if classifier.degraded:
        console.print(
            "[yellow]Note: git merge-tree --write-tree is unavailable; "
            "CLEAN and EMPTY statuses are unverified.[/yellow]"
        )


@main.command()
@click.argument("branch")
@click.option("--squash", "-s", is_flag=True, help="Squash all new commits at the end")
@dry_run_option
@click.option("--force", "-f", is_flag=True, help="Ignore the main branch requirement")
@click.option(
    "--llm", "use_llm", is_flag=True, help="Use an LLM to write the squashed commit message"
)
def land(branch: str, squash: bool, dry_run: bool, force: bool, use_llm: bool):
    """Cherry-pick the new commits of BRANCH onto main, then delete BRANCH.

    Commits whose Change-Id is already on main are skipped.
    """
    options = LandOptions(squash=squash, dry_run=dry_run, force=force, use_llm=use_llm)
    try:
        backend, config = _open_repository()
        LandingExecutor(backend, config, console=console).land(branch, options)
    except PalimpError as e:
        _fail(e)


@main.command()
@click.argument("branch")
@dry_run_option
def drop(branch: str, dry_run: bool):
    """Force-delete a sketch branch."""
    try:
        backend, config = _open_repository()
        DropExecutor(backend, config, console=console).drop(branch, dry_run=dry_run)
    except PalimpError as e:
        _fail(e)


@main.command()
@click.argument("branch")
@dry_run_option
def update(branch: str, dry_run: bool):
    """Rebase BRANCH onto the latest main.

    The branch is kept and main is not changed.
    """
    try:
        backend, config = _open_repository()
        UpdateExecutor(backend, config, console=console).update(branch, dry_run=dry_run)
    except PalimpError as e:
        _fail(e)


@main.command("help")
def show_help():
    """Show conceptual help and background."""
    console.print(Markdown(CONCEPTUAL_HELP))


main.add_command(list_branches, name="ls")
main.add_command(land, name="y")
main.add_command(drop, name="d")
main.add_command(update, name="up")


if __name__ == "__main__":
    main()
