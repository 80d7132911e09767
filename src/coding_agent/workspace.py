"""
Workspace sandbox.

Every filesystem operation a tool performs must land inside the
workspace root. PathSandbox is the single place that enforces this:
tools resolve every path through it before touching the disk.
"""

import os
from pathlib import Path


class OutsideWorkspaceError(PermissionError):
    """A path resolved to a location outside the workspace root."""

    def __init__(self, path: str, root: Path) -> None:
        super().__init__(f"Path {path} is outside workspace {root}")
        self.path = path
        self.root = root


class PathSandbox:
    """
    Resolves workspace-relative paths and rejects escapes.

    Both the root and the target are passed through realpath, so `..`
    segments and symlinks pointing out of the workspace are caught alike.
    Resolution is pure: nothing is created, read or written.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(os.path.realpath(os.path.expanduser(str(root))))

    def resolve(self, path: str | Path | None = None) -> Path:
        """
        Return the absolute path for `path`, relative to the workspace root.

        An empty path means the root itself.

        Raises:
            OutsideWorkspaceError: if the normalized path leaves the root.
        """
        raw = str(path) if path is not None else ""
        candidate = os.path.realpath(os.path.join(self.root, raw or "."))
        if not self.contains(candidate):
            raise OutsideWorkspaceError(raw, self.root)
        return Path(candidate)

    def contains(self, absolute_path: str | Path) -> bool:
        """True when `absolute_path` is the root or below it."""
        text = str(absolute_path)
        root = str(self.root)
        if text == root:
            return True
        prefix = root if root.endswith(os.sep) else root + os.sep
        return text.startswith(prefix)

    def relative(self, absolute_path: str | Path) -> str:
        """Workspace-relative form of an absolute path inside the root."""
        rel = os.path.relpath(str(absolute_path), str(self.root))
        return "." if rel == os.curdir else rel
