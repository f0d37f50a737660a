"""Command line interface for gitwtf."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from gitwtf.config import ConfigError, load_config
from gitwtf.git import Branch, BranchNotFoundError, GitError, GitRepo
from gitwtf.report import ReportOptions, ReportRenderer, render_key, render_local_changes

app = typer.Typer(help="Show how git branches relate to their remotes and to each other")
console = Console(highlight=False, soft_wrap=True)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr so they never mix with the report."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def fail(err: Exception) -> typer.Exit:
    """Print an error and build the exit to raise."""
    print(f"[red]Error:[/red] {escape(str(err))}")
    return typer.Exit(code=1)


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitError as err:
        raise fail(err) from err


def get_targets(repo: GitRepo, branches: dict[str, Branch], names: list[str]) -> list[Branch]:
    """Look up the branches to report on, defaulting to the current one."""
    if not names:
        names = [repo.get_current_branch_name()]

    targets = []
    for name in names:
        if name.startswith("heads/"):
            name = name[len("heads/") :]
        if name not in branches:
            raise BranchNotFoundError(name)
        targets.append(branches[name])
    return targets


@app.command()
def show(
    branches: Annotated[Optional[list[str]], typer.Argument(help="Branches to report on (default: current)")] = None,
    path: Annotated[Path, typer.Option(help="Path to git repository")] = Path("."),
    long: bool = typer.Option(False, "--long", "-l", help="Include author and date of each commit"),
    all_commits: bool = typer.Option(False, "--all", "-a", help="Show every commit instead of truncating lists"),
    short: bool = typer.Option(False, "--short", "-s", help="Leave out commit lists"),
    key: bool = typer.Option(False, "--key", "-k", help="Explain the checkbox symbols"),
    all_remotes: bool = typer.Option(False, "--all-remotes", help="Include branches of remotes other than origin"),
    dump_config: bool = typer.Option(False, "--dump-config", help="Print the effective configuration and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every git command"),
) -> None:
    """Show a branch's sync state with its remote and its merge state with related branches."""
    configure_logging(verbose)

    try:
        config = load_config(path)
    except ConfigError as err:
        raise fail(err) from err

    if dump_config:
        typer.echo(config.to_yaml(), nl=False)
        return

    repo = get_repo(path)
    options = ReportOptions(long=long, all_commits=all_commits, short=short)

    try:
        index = repo.get_branches(config, all_remotes=all_remotes)
        targets = get_targets(repo, index, branches or [])
        renderer = ReportRenderer(repo, index, config, options)

        for number, target in enumerate(targets):
            if number:
                console.print()
            for line in renderer.render(target):
                console.print(line)

        # Uncommitted work only concerns the checked out branch
        if not branches:
            for line in render_local_changes(repo.has_modified_files(), repo.has_staged_changes()):
                console.print(line)
    except GitError as err:
        raise fail(err) from err

    if key:
        for line in render_key():
            console.print(line)


if __name__ == "__main__":
    app()
