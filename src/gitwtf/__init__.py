"""Git branch relationship summary tool.

Features:
- Show whether a branch is in sync with its remote tracking branch
- Show which feature branches are merged into a version branch
- Show which version branches have a feature branch merged in
- Flag diverged branches and uncommitted local changes
- Per-repository configuration via a `.git-wtfrc` file
"""

__version__ = "0.1.0"
