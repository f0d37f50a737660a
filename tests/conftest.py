"""Test configuration and fixtures."""

from pathlib import Path
from typing import Callable, Generator

import pytest
from git import Actor, Repo

AUTHOR = Actor("Test User", "test@example.com")


def _commit_file(repo: Repo, path: Path, name: str, content: str, message: str) -> None:
    """Write a file into the working tree and commit it."""
    (path / name).write_text(content)
    repo.index.add([name])
    repo.index.commit(message, author=AUTHOR, committer=AUTHOR)


@pytest.fixture
def commit_file() -> Callable[[Repo, Path, str, str, str], None]:
    """Helper that writes a file and commits it as the test user."""
    return _commit_file


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Branches in the local repository:
    - main: tracks origin/main, in sync
    - feature/merged: pushed and merged into main
    - feature/test: pushed, two commits not in main
    - feature/local: never pushed, one commit not in main
    - feature/ahead: pushed, plus one unpushed commit
    - origin/feature/remote: exists only on the remote

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    Repo.init(remote_path, bare=True)
    local_repo = Repo.init(local_path)

    with local_repo.config_writer() as writer:
        writer.set_value("user", "name", AUTHOR.name)
        writer.set_value("user", "email", AUTHOR.email)

    _commit_file(local_repo, local_path, "README.md", "# Test Repository", "Initial commit")
    # Whatever the default branch is called, make it main
    local_repo.git.branch("-M", "main")

    local_repo.create_remote("origin", url=str(remote_path))
    local_repo.git.push("-u", "origin", "main")

    def create_branch(name: str, push: bool = True, merge: bool = False) -> None:
        """Create a branch off main with one commit."""
        local_repo.git.checkout("main")
        local_repo.git.checkout("-b", name)
        _commit_file(local_repo, local_path, f"{name.replace('/', '_')}.txt", f"{name} content", f"Add {name}")

        if push:
            local_repo.git.push("-u", "origin", name)

        if merge:
            local_repo.git.checkout("main")
            local_repo.git.merge(name, "--no-ff", "--no-edit")
            local_repo.git.push("origin", "main")

    create_branch("feature/merged", merge=True)

    create_branch("feature/test")
    _commit_file(local_repo, local_path, "feature_test.txt", "More test branch content", "Update test branch")
    local_repo.git.push("origin", "feature/test")

    create_branch("feature/local", push=False)

    create_branch("feature/ahead")
    _commit_file(local_repo, local_path, "feature_ahead.txt", "Unpushed content", "Unpushed work")

    create_branch("feature/remote")
    local_repo.git.checkout("main")
    local_repo.git.branch("-D", "feature/remote")

    yield local_path, remote_path

    # Cleanup is handled by pytest's tmp_path fixture
