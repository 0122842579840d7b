from __future__ import annotations
from typing import List
from dataclasses import dataclass
from pathlib import Path
import logging

from git import Git
from git.exc import GitCommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class TrackedFile:
    """
    A path known to the git index, with what the working tree holds there.
    """
    path: str
    is_regular: bool = True
    is_symlink: bool = False

    @property
    def is_candidate(self) -> bool:
        # Symlinks and anything that isn't a plain file are never inspected
        return self.is_regular and not self.is_symlink

    @classmethod
    def at(cls, root: Path, path: str) -> TrackedFile:
        full_path = root / path
        return cls(
            path=path,
            is_regular=full_path.is_file(),
            is_symlink=full_path.is_symlink(),
        )


def list_tracked_files(root: Path) -> List[TrackedFile]:
    """
    List every file in the git index below `root`, relative to `root`.
    """
    if not root.is_dir():
        raise ValueError(f"Path {root} is not a valid directory.")

    try:
        # -z keeps paths with special characters unquoted
        output = Git(root).ls_files('-z')
    except GitCommandError as e:
        raise ValueError(f"Path {root} is not inside a git work tree: {str(e.stderr).strip()}") from e

    # Unmerged paths appear once per stage
    paths = list(dict.fromkeys(p for p in output.split('\0') if p))
    logger.debug(f"git ls-files returned {len(paths)} paths in {root}")

    return [TrackedFile.at(root, path) for path in paths]
