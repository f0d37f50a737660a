"""Git repository queries."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from gitwtf.config import Config

logger = logging.getLogger(__name__)

# Abbreviated hash, subject, author email, relative date separated by ASCII unit separators
COMMIT_FIELD_SEPARATOR = "\x1f"
COMMIT_FORMAT = "%h%x1f%s%x1f%ae%x1f%ar"
COMMIT_FIELD_COUNT = 4

DEFAULT_REMOTE = "origin"
LOCAL_REMOTE = "."

REMOTE_URL_PATTERN = re.compile(r"^remote\.(.+)\.url (.+)$")
TRACKING_PATTERN = re.compile(r"^branch\.(.+)\.(remote|merge) (.+)$")
MERGE_REF_PATTERN = re.compile(r"^(?:(?:refs/)?heads/)?(.+)$")


class GitError(Exception):
    """Git operation error."""


class BranchNotFoundError(GitError):
    """A requested branch is not in the branch index."""

    def __init__(self, name: str) -> None:
        super().__init__(f"can't find branch '{name}'")
        self.name = name


@dataclass(frozen=True)
class Commit:
    """One line of a commit list."""

    sha: str
    subject: str
    author_email: str
    relative_date: str


@dataclass
class Branch:
    """A branch and its remote counterpart.

    `local_ref` looks like `heads/<name>` and `remote_ref` like `<remote>/<branch>`,
    both usable as git revisions.
    """

    name: str
    local_ref: Optional[str] = None
    remote: Optional[str] = None
    remote_url: Optional[str] = None
    remote_ref: Optional[str] = None
    merge_point: Optional[str] = None
    hidden: bool = False

    @property
    def display_name(self) -> str:
        if self.local_ref:
            return self.local_ref[len("heads/") :]
        return self.name

    @property
    def head(self) -> str:
        """The ref to compare with, preferring the local one."""
        return self.local_ref or self.remote_ref or self.name

    @property
    def local_only(self) -> bool:
        return self.local_ref is not None and self.remote_ref is None

    @property
    def remote_only(self) -> bool:
        return self.local_ref is None and self.remote_ref is not None

    @property
    def ref_names(self) -> set[str]:
        """Every name the config may use to refer to this branch."""
        return {ref for ref in (self.name, self.local_ref, self.remote_ref) if ref}


class GitRepo:
    """Git repository queries."""

    def __init__(self, path: Path) -> None:
        """Initialize repository."""
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
            if self.repo.bare:
                raise GitError("Cannot operate on bare repository")
        except (GitCommandError, ValueError, InvalidGitRepositoryError, NoSuchPathError) as err:
            raise GitError(f"Failed to open repository: {err}") from err
        self._commits: dict[tuple[str, str], list[Commit]] = {}

    def _git(self, command: str, *args: str, no_match_status: Optional[int] = None) -> str:
        """Run a git command and return its output.

        Args:
            command: Git subcommand in GitPython's attribute form (`show_ref`)
            args: Command arguments
            no_match_status: Exit status the command uses for "nothing matched",
                which is returned as empty output instead of raising

        Raises:
            GitError: If the command exits non-zero for any other reason
        """
        logger.debug("git %s %s", command.replace("_", "-"), " ".join(args))
        try:
            return getattr(self.repo.git, command)(*args)
        except GitCommandError as err:
            if no_match_status is not None and err.status == no_match_status and not err.stderr:
                return ""
            raise GitError(f"git {command.replace('_', '-')} failed: {err}") from err

    def get_refs(self) -> list[str]:
        """Get every ref without its `refs/` prefix."""
        refs = []
        for line in self._git("show_ref", no_match_status=1).splitlines():
            try:
                _, ref = line.split(" ", 1)
            except ValueError as err:
                raise GitError(f"Unparsable git show-ref line: {line!r}") from err
            if ref.startswith("refs/"):
                refs.append(ref[len("refs/") :])
        return refs

    def get_remote_urls(self) -> dict[str, str]:
        """Get the URL of each configured remote."""
        urls: dict[str, str] = {}
        output = self._git("config", "--get-regexp", r"^remote\..*\.url", no_match_status=1)
        for line in output.splitlines():
            match = REMOTE_URL_PATTERN.match(line)
            if not match:
                raise GitError(f"Unparsable remote config line: {line!r}")
            urls.setdefault(match.group(1), match.group(2))
        return urls

    def get_tracking_config(self) -> dict[str, tuple[Optional[str], Optional[str]]]:
        """Get the (remote, merge point) each branch is configured to track."""
        tracking: dict[str, tuple[Optional[str], Optional[str]]] = {}
        output = self._git("config", "--get-regexp", r"^branch\.", no_match_status=1)
        for line in output.splitlines():
            match = TRACKING_PATTERN.match(line)
            if not match:
                # Other branch settings such as branch.<name>.rebase
                continue
            name, key, value = match.groups()
            remote, merge_point = tracking.get(name, (None, None))
            if key == "remote":
                remote = value
            else:
                merge_point = MERGE_REF_PATTERN.match(value).group(1)
            tracking[name] = (remote, merge_point)
        return tracking

    def get_current_branch_name(self) -> str:
        """Get current branch name."""
        # With -q a HEAD that isn't a symbolic ref exits 1 quietly; anything else is a real failure
        ref = self._git("symbolic_ref", "-q", "HEAD", no_match_status=1).strip()
        if not ref:
            raise GitError("HEAD is detached, name the branch to report on")
        if ref.startswith("refs/heads/"):
            return ref[len("refs/heads/") :]
        return ref

    def commits_between(self, from_ref: str, to_ref: str) -> list[Commit]:
        """Get commits reachable from `to_ref` but not from `from_ref`, newest first."""
        key = (from_ref, to_ref)
        if key not in self._commits:
            output = self._git("log", f"--pretty=format:{COMMIT_FORMAT}", f"{from_ref}..{to_ref}", "--")
            self._commits[key] = [self._parse_commit(line) for line in output.splitlines() if line]
        return self._commits[key]

    @staticmethod
    def _parse_commit(line: str) -> Commit:
        fields = line.split(COMMIT_FIELD_SEPARATOR)
        if len(fields) != COMMIT_FIELD_COUNT:
            raise GitError(f"Unparsable git log line: {line!r}")
        return Commit(*fields)

    def has_modified_files(self) -> bool:
        """Check for modified tracked files in the working directory."""
        return bool(self._git("ls_files", "-m").strip())

    def has_staged_changes(self) -> bool:
        """Check for staged but uncommitted changes."""
        return bool(self._git("diff_index", "--cached", "HEAD").strip())

    def get_branches(self, config: Config, all_remotes: bool = False) -> dict[str, Branch]:
        """Index every branch by name.

        Local branches are keyed by their name. A remote ref is attached to the
        local branch tracking it; any other remote ref gets its own entry keyed
        `<remote>/<branch>`. Branches the config ignores are left out.
        """
        remote_urls = self.get_remote_urls()
        tracking = self.get_tracking_config()

        branches: dict[str, Branch] = {}
        for name, (remote, merge_point) in tracking.items():
            branches[name] = Branch(
                name=name,
                remote=remote,
                remote_url=remote_urls.get(remote) if remote else None,
                merge_point=merge_point,
            )

        remote_refs = set()
        for ref in self.get_refs():
            if ref.startswith("heads/"):
                name = ref[len("heads/") :]
                if name == "HEAD":
                    continue
                branches.setdefault(name, Branch(name=name)).local_ref = ref
            elif ref.startswith("remotes/"):
                try:
                    remote, remote_branch = ref[len("remotes/") :].split("/", 1)
                except ValueError:
                    continue
                remote_ref = f"{remote}/{remote_branch}"
                remote_refs.add(remote_ref)
                if remote_branch == "HEAD":
                    continue

                tracked = branches.get(remote_branch)
                if tracked and tracked.remote == remote and tracked.merge_point == remote_branch:
                    name = remote_branch
                else:
                    name = remote_ref
                branch = branches.setdefault(name, Branch(name=name))
                branch.remote = remote
                branch.remote_url = remote_urls.get(remote)
                branch.remote_ref = remote_ref

        # Point tracking branches at their upstream, if it still exists
        for branch in branches.values():
            if not (branch.remote and branch.merge_point):
                continue
            if branch.remote == LOCAL_REMOTE:
                branch.remote_ref = branch.merge_point
            else:
                upstream = f"{branch.remote}/{branch.merge_point}"
                branch.remote_ref = upstream if upstream in remote_refs else None

        # An upstream tracked under a different name is already shown with its local branch
        attached = {branch.remote_ref for branch in branches.values() if branch.local_ref and branch.remote_ref}

        index = {}
        for name, branch in branches.items():
            if branch.local_ref is None and branch.remote_ref is None:
                continue
            if branch.remote_only and name == branch.remote_ref and name in attached:
                continue
            if config.is_ignored(branch.ref_names):
                logger.debug("Ignoring branch %s", name)
                continue
            branch.hidden = branch.remote_only and branch.remote != DEFAULT_REMOTE and not all_remotes
            index[name] = branch
        return index
