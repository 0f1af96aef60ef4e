"""Git-ignore lookup and directory pruning rules.

The ignored set is loaded once from ``git ls-files`` when the cache is
built; files git starts ignoring later are not picked up until a new cache
is created. Outside a git repository, or when git fails, nothing is
reported as ignored.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

# Default timeout for git commands
_GIT_TIMEOUT = 10

# Directory names never searched or watched (hidden directories also skipped)
IGNORED_DIRECTORIES: frozenset[str] = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        "node_modules",
        ".vscode",
        ".idea",
        "__pycache__",
        ".pytest_cache",
        "target",
        "build",
        "dist",
        ".next",
        ".nuxt",
        "vendor",
    }
)


def _run_git(args: list[str], cwd: Path) -> tuple[int, str, str]:
    """Run a git command and return exit code, stdout, stderr.

    Args:
        args: Git command arguments (without 'git' prefix).
        cwd: Working directory for git command.

    Returns:
        Tuple of (exit_code, stdout, stderr).

    """
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT,
        )
        return result.returncode, result.stdout.strip(), result.stderr.strip()
    except subprocess.TimeoutExpired:
        return 1, "", "Git command timed out"
    except FileNotFoundError:
        return 1, "", "Git not found in PATH"


def should_ignore_directory(path: str | Path) -> bool:
    """Check a directory name against the built-in prune list.

    Args:
        path: Directory path; only its final component is inspected.

    Returns:
        True for VCS, IDE, dependency and build directories, and for any
        hidden directory other than ``.`` itself.

    """
    name = Path(path).name
    if name in IGNORED_DIRECTORIES:
        return True
    return name.startswith(".") and name not in (".", "..")


class GitIgnoreCache:
    """Set of absolute paths git reports as ignored.

    Attributes:
        root: Repository root, or None when not in a git repository.

    """

    def __init__(self, root: Path | None = None, ignored: set[str] | None = None) -> None:
        self.root = root
        self._ignored: set[str] = set(ignored or ())
        self._lock = threading.Lock()

    @classmethod
    def for_directory(cls, directory: str | Path) -> GitIgnoreCache:
        """Build a cache for a watched directory.

        Args:
            directory: Directory being searched or watched. It must contain
                a ``.git`` directory to be treated as a repository.

        Returns:
            Populated cache, or an empty one when git is unavailable.

        """
        directory = Path(directory).resolve()
        if not (directory / ".git").is_dir():
            logger.info("Not a git repository: %s", directory)
            return cls()

        exit_code, stdout, stderr = _run_git(["rev-parse", "--show-toplevel"], directory)
        if exit_code != 0 or not stdout:
            logger.warning("Failed to find git root for %s: %s", directory, stderr)
            return cls()
        root = Path(stdout)
        logger.info("Git repository root: %s", root)

        exit_code, stdout, stderr = _run_git(
            ["ls-files", "--ignored", "--exclude-standard", "--others", "--directory"],
            root,
        )
        if exit_code != 0:
            logger.warning("Failed to list git-ignored files: %s", stderr)
            return cls(root=root)

        ignored = {
            str(root / line.rstrip("/")) for line in stdout.splitlines() if line.strip()
        }
        logger.info("Loaded %d git-ignored paths", len(ignored))
        return cls(root=root, ignored=ignored)

    def is_ignored(self, path: str | Path) -> bool:
        """Check whether a path or any of its parents is git-ignored."""
        candidate = Path(path).resolve()
        with self._lock:
            if not self._ignored:
                return False
            if str(candidate) in self._ignored:
                return True
            return any(str(parent) in self._ignored for parent in candidate.parents)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ignored)


def build_ignore_predicate(
    root: str | Path,
    git_cache: GitIgnoreCache | None = None,
) -> Callable[[Path], bool]:
    """Combine git ignores and the prune list into one predicate.

    Args:
        root: Directory being searched or watched.
        git_cache: Prebuilt cache (built from ``root`` when None).

    Returns:
        Callable returning True for paths that must be skipped. For a
        directory it applies the prune list; for any path it consults git.

    """
    cache = git_cache if git_cache is not None else GitIgnoreCache.for_directory(root)

    def is_ignored(path: Path) -> bool:
        if path.is_dir() and should_ignore_directory(path):
            return True
        return cache.is_ignored(path)

    return is_ignored
