"""Branch report rendering."""

from dataclasses import dataclass
from typing import Optional, Protocol

from rich.text import Text

from gitwtf.config import Config
from gitwtf.git import Branch, Commit

COMMIT_PREFIX = "    "

KEY = """KEY:
() branch only exists locally
{} branch only exists on a remote repo
[] branch exists locally and remotely
x merge occurs both locally and remotely
~ merge occurs only locally
(space) branch isn't merged in"""


class CommitSource(Protocol):
    """Anything that can list the commits in one ref but not another."""

    def commits_between(self, from_ref: str, to_ref: str) -> list[Commit]: ...


@dataclass(frozen=True)
class ReportOptions:
    """Command line switches that affect rendering."""

    long: bool = False
    all_commits: bool = False
    short: bool = False


def pluralize(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def ahead_behind(ahead: list[Commit], behind: list[Commit]) -> str:
    parts = []
    if ahead:
        parts.append(f"{pluralize(len(ahead), 'commit')} ahead")
    if behind:
        parts.append(f"{pluralize(len(behind), 'commit')} behind")
    return "; ".join(parts)


def widget(merged: bool, remote_only: bool = False, local_only: bool = False, local_only_merge: bool = False) -> Text:
    """Checkbox showing where a branch exists and whether it's merged."""
    if remote_only:
        left, right = "{", "}"
    elif local_only:
        left, right = "(", ")"
    else:
        left, right = "[", "]"

    if merged and local_only_merge:
        middle = Text("~", style="green")
    elif merged:
        middle = Text("x", style="green")
    else:
        middle = Text(" ")
    return Text.assemble(left, middle, right)


def branch_style(branch: Branch) -> str:
    if branch.local_only:
        return "magenta"
    if branch.remote_only:
        return "cyan"
    return "green"


class ReportRenderer:
    """Render branch reports as lines of rich text."""

    def __init__(
        self,
        repo: CommitSource,
        branches: dict[str, Branch],
        config: Config,
        options: Optional[ReportOptions] = None,
    ) -> None:
        self.repo = repo
        self.branches = branches
        self.config = config
        self.options = options or ReportOptions()

    def render(self, branch: Branch) -> list[Text]:
        """Render the full report for one branch."""
        return self.render_sync(branch) + self.render_relations(branch)

    def render_commits(self, commits: list[Commit]) -> list[Text]:
        """Render a commit list, truncated to the configured maximum."""
        if self.options.short:
            return []
        if not commits:
            return [Text(f"{COMMIT_PREFIX} none")]

        limit = len(commits) if self.options.all_commits else max(self.config.max_commits, 0)
        # Never show "and 1 more"
        if limit == len(commits) - 1:
            limit = len(commits)

        lines = [self._format_commit(commit) for commit in commits[:limit]]
        if len(commits) > limit:
            lines.append(Text(f"{COMMIT_PREFIX}... and {len(commits) - limit} more (use --all to see all).", style="dim"))
        return lines

    def _format_commit(self, commit: Commit) -> Text:
        line = Text.assemble(COMMIT_PREFIX, "- ", commit.subject, " [", (commit.sha, "yellow"), "]")
        if self.options.long:
            line.append_text(Text.assemble(" (", (commit.author_email, "magenta"), f"; {commit.relative_date})"))
        return line

    def render_sync(self, branch: Branch) -> list[Text]:
        """Compare a branch with its remote counterpart."""
        lines: list[Text] = []
        have_both = bool(branch.local_ref and branch.remote_ref)

        unpushed: list[Commit] = []
        unpulled: list[Commit] = []
        if have_both:
            unpushed = self.repo.commits_between(branch.remote_ref, branch.local_ref)
            unpulled = self.repo.commits_between(branch.local_ref, branch.remote_ref)
        diverged = bool(unpushed and unpulled)

        if branch.local_ref:
            lines.append(Text.assemble("Local branch: ", (branch.display_name, "green")))
            if have_both:
                if not unpushed:
                    lines.append(Text.assemble(widget(True), " in sync with remote"))
                else:
                    action = "push after rebase / merge" if diverged else "push"
                    lines.append(Text.assemble(widget(False), f" NOT in sync with remote (you should {action})"))
                    lines.extend(self.render_commits(unpushed))

        if branch.remote_ref:
            line = Text.assemble("Remote branch: ", (branch.remote_ref, "cyan"))
            if branch.remote_url:
                line.append(f" ({branch.remote_url})")
            lines.append(line)
            if have_both:
                if not unpulled:
                    lines.append(Text.assemble(widget(True), " in sync with local"))
                else:
                    action = "rebase / merge" if unpushed else "merge"
                    lines.append(Text.assemble(widget(False), f" NOT in sync with local (you should {action})"))
                    lines.extend(self.render_commits(unpulled))

        if diverged:
            lines.append(Text())
            lines.append(
                Text.assemble(
                    ("WARNING", "red"),
                    ": local and remote branches have diverged. A merge will occur unless you rebase.",
                )
            )
        return lines

    def partition(self, branch: Branch) -> tuple[list[Branch], list[Branch]]:
        """Split the visible branches other than `branch` into (versions, features)."""
        versions: list[Branch] = []
        features: list[Branch] = []
        for name in sorted(self.branches):
            other = self.branches[name]
            if other.hidden or other.name == branch.name:
                continue
            if self.config.is_version(other.ref_names):
                versions.append(other)
            else:
                features.append(other)
        return versions, features

    def render_relations(self, branch: Branch) -> list[Text]:
        """Compare a branch with the complementary branch set."""
        versions, features = self.partition(branch)
        if self.config.is_version(branch.ref_names):
            return self.render_features(branch, features)
        return self.render_versions(branch, versions)

    def render_features(self, branch: Branch, features: list[Branch]) -> list[Text]:
        """Show which feature branches a version branch has merged in."""
        if not features:
            return []

        lines = [Text(), Text("Feature branches:")]
        for feature in features:
            remote_ahead = self.repo.commits_between(branch.remote_ref, feature.head) if branch.remote_ref else None
            local_ahead = self.repo.commits_between(branch.local_ref, feature.head) if branch.local_ref else None
            if local_ahead is None:
                local_ahead = remote_ahead or []
            if remote_ahead is None:
                remote_ahead = local_ahead

            name = Text(feature.name, style=branch_style(feature))
            local_only = " (local-only)" if feature.local_only else ""
            places = {"remote_only": feature.remote_only, "local_only": feature.local_only}

            if not local_ahead and not remote_ahead:
                lines.append(Text.assemble(widget(True, **places), " ", name, f"{local_only} is merged in"))
            elif not local_ahead:
                lines.append(
                    Text.assemble(widget(True, local_only_merge=True, **places), " ", name, " merged in (only locally)")
                )
            else:
                behind = self.repo.commits_between(feature.head, branch.head)
                lines.append(
                    Text.assemble(
                        widget(False, **places),
                        " ",
                        name,
                        f"{local_only} is NOT merged in ({ahead_behind(local_ahead, behind)})",
                    )
                )
                lines.extend(self.render_commits(local_ahead))
        return lines

    def render_versions(self, branch: Branch, versions: list[Branch]) -> list[Text]:
        """Show which version branches have a feature branch merged in."""
        if not versions:
            return []

        lines = [Text(), Text("Version branches:")]
        for version in versions:
            name = Text(version.name, style=branch_style(version))
            places = {"remote_only": version.remote_only, "local_only": version.local_only}
            ahead = self.repo.commits_between(version.head, branch.head)
            if not ahead:
                lines.append(Text.assemble(widget(True, **places), " ", name, " has this branch merged in"))
            else:
                lines.append(Text.assemble(widget(False, **places), " ", name, " does NOT have this branch merged in"))
                lines.extend(self.render_commits(ahead))
        return lines


def render_local_changes(modified: bool, staged: bool) -> list[Text]:
    """Notes about uncommitted work in the current checkout."""
    lines: list[Text] = []
    if modified or staged:
        lines.append(Text())
    if modified:
        lines.append(Text.assemble(("NOTE", "red"), ": working directory contains modified files."))
    if staged:
        lines.append(Text.assemble(("NOTE", "red"), ": staging area contains staged but uncommitted files."))
    return lines


def render_key() -> list[Text]:
    return [Text()] + [Text(line) for line in KEY.splitlines()]
