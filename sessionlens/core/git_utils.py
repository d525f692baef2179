"""Git history and numstat operations."""

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..utils import ms_to_seconds, to_git_date

logger = logging.getLogger(__name__)

# Well-known id of git's empty tree, used as the parent of root commits.
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class GitCommandError(RuntimeError):
    """The git executable could not be run to completion."""


def _spawn_git(path: Path, args: tuple[str, ...], timeout: int) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            ["git", *args],
            cwd=path,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(f"git {' '.join(args)} timed out after {timeout}s") from e
    except OSError as e:
        raise GitCommandError(f"Failed to run git in {path}: {e}") from e


@dataclass
class GitCommit:
    """A single git commit."""

    sha: str
    timestamp: int
    message: str = ""

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def committed_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class GitRepo:
    """Read-only git operations for a project work tree."""

    def __init__(self, path: Path, timeout: int = 30):
        self.timeout = timeout
        self.path = Path(path).resolve()
        self.root = self._resolve_root()

    def _resolve_root(self) -> Path:
        """Validate this is a git work tree and return its top level."""
        if not self.path.is_dir():
            raise ValueError(f"Not a git repository: {self.path}")
        result = _spawn_git(self.path, ("rev-parse", "--show-toplevel"), self.timeout)
        if result.returncode != 0 or not result.stdout.strip():
            raise ValueError(f"Not a git repository: {self.path}")
        return Path(result.stdout.strip()).resolve()

    @classmethod
    def is_git_repo(cls, path: Path, timeout: int = 30) -> bool:
        """Check if a path is inside a git work tree."""
        path = Path(path)
        if not path.is_dir():
            return False
        result = _spawn_git(path, ("rev-parse", "--is-inside-work-tree"), timeout)
        return result.returncode == 0 and result.stdout.strip() == "true"

    def _run_git(self, *args: str) -> tuple[str, int]:
        """Run a git command and return output and return code."""
        result = _spawn_git(self.path, args, self.timeout)
        if result.returncode != 0:
            logger.debug("git %s exited %d: %s", " ".join(args), result.returncode, result.stderr.strip())
        # Preserve leading whitespace for tab-separated output parsing.
        return result.stdout.rstrip("\n"), result.returncode

    def has_commits(self) -> bool:
        """True once HEAD resolves to a commit."""
        _, code = self._run_git("rev-parse", "--verify", "--quiet", "HEAD")
        return code == 0

    def get_commits_between(self, start_t: int, end_t: int) -> list[GitCommit]:
        """Commits whose committer time lies in ``[start_t, end_t]`` (epoch ms), oldest first."""
        start_s = ms_to_seconds(start_t)
        end_s = ms_to_seconds(end_t, round_up=True)
        # git compares with second granularity; widen by a second and filter exactly below.
        output, code = self._run_git(
            "log",
            f"--since={to_git_date((start_s - 1) * 1000)}",
            f"--until={to_git_date((end_s + 1) * 1000)}",
            "--format=%H|%ct|%s",
        )
        if code != 0 or not output:
            return []

        commits = []
        for line in output.split("\n"):
            if not line:
                continue
            parts = line.split("|", 2)
            if len(parts) < 2:
                continue
            sha, timestamp_str = parts[0], parts[1]
            try:
                timestamp = int(timestamp_str)
            except ValueError:
                continue
            if start_s <= timestamp <= end_s:
                commits.append(GitCommit(sha=sha, timestamp=timestamp, message=parts[2] if len(parts) > 2 else ""))

        commits.reverse()
        return commits

    def get_commit_numstat(self, sha: str) -> str:
        """Numstat of a commit against its first parent (the empty tree for root commits)."""
        parent = f"{sha}^"
        _, code = self._run_git("rev-parse", "--verify", "--quiet", parent)
        base = parent if code == 0 else EMPTY_TREE_SHA
        output, code = self._run_git("diff", "--numstat", base, sha)
        return output if code == 0 else ""

    def get_working_tree_numstat(self, staged: bool = False, base: str = "HEAD") -> str:
        """Numstat of uncommitted changes against ``base``.

        ``staged=True`` limits the diff to the index (``--cached``).
        """
        args = ["diff", "--numstat"]
        if staged:
            args.append("--cached")
        args.append(base)
        output, code = self._run_git(*args)
        return output if code == 0 else ""

    def relative_path(self, file_path: str) -> str | None:
        """Repository-relative form of an absolute path inside the work tree."""
        candidate = Path(file_path)
        if not candidate.is_absolute():
            return None
        try:
            return candidate.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None
