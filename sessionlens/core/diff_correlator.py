"""Correlate a session's time window with git commits and working-tree changes."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import DEFAULT_CONFIG, DistillConfig
from .events import EDIT_TOOLS, PreToolUseEvent, parse_events
from .git_utils import GitRepo

logger = logging.getLogger(__name__)


def change_status(additions: int, deletions: int) -> str:
    """Classify a numstat row by its line counts alone."""
    if additions > 0 and deletions == 0:
        return "added"
    if deletions > 0 and additions == 0:
        return "deleted"
    return "modified"


@dataclass
class WorkingTreeChange:
    """Line counts for one file changed outside a commit."""

    file_path: str
    additions: int
    deletions: int
    matched_tool_use_id: str | None = None

    @property
    def status(self) -> str:
        return change_status(self.additions, self.deletions)

    def to_dict(self) -> dict:
        result = {
            "file_path": self.file_path,
            "status": self.status,
            "additions": self.additions,
            "deletions": self.deletions,
        }
        if self.matched_tool_use_id is not None:
            result["matched_tool_use_id"] = self.matched_tool_use_id
        return result


@dataclass
class DiffHunk(WorkingTreeChange):
    """Line counts for one file in one commit."""

    commit_hash: str = ""

    def to_dict(self) -> dict:
        return {"commit_hash": self.commit_hash, **super().to_dict()}


@dataclass
class GitDiffResult:
    """Commits, hunks and uncommitted changes attributed to a session."""

    commits: list[str] = field(default_factory=list)
    hunks: list[DiffHunk] = field(default_factory=list)
    working_tree_changes: list[WorkingTreeChange] = field(default_factory=list)
    staged_changes: list[WorkingTreeChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        result: dict[str, Any] = {
            "commits": list(self.commits),
            "hunks": [h.to_dict() for h in self.hunks],
        }
        if self.working_tree_changes:
            result["working_tree_changes"] = [c.to_dict() for c in self.working_tree_changes]
        if self.staged_changes:
            result["staged_changes"] = [c.to_dict() for c in self.staged_changes]
        return result


def _count(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_numstat_output(output: str) -> list[WorkingTreeChange]:
    """Parse ``git diff --numstat`` output.

    Each line is ``<additions>\\t<deletions>\\t<path>``. Binary files report
    ``-`` counts, which become 0. Lines without a path are dropped.
    """
    changes = []
    for line in output.strip().split("\n"):
        if not line.strip():
            continue
        parts = line.split("\t", 2)
        if len(parts) < 3 or not parts[2]:
            continue
        changes.append(
            WorkingTreeChange(
                file_path=parts[2],
                additions=_count(parts[0]),
                deletions=_count(parts[1]),
            )
        )
    return changes


@dataclass
class _EditCall:
    t: int
    file_path: str
    tool_use_id: str


def _edit_calls(events: list) -> list[_EditCall]:
    calls = []
    for event in events:
        if isinstance(event, PreToolUseEvent) and event.data.tool_name in EDIT_TOOLS:
            file_path = event.data.file_path
            if file_path:
                calls.append(_EditCall(event.t, file_path, event.data.tool_use_id or ""))
    return calls


def _suffix_match(edit_path: str, repo_path: str) -> bool:
    """Path-segment suffix match in either direction (covers bare basenames)."""
    edit_path = edit_path.replace("\\", "/")
    if edit_path.startswith("./"):
        edit_path = edit_path[2:]
    if edit_path == repo_path:
        return True
    return edit_path.endswith("/" + repo_path) or repo_path.endswith("/" + edit_path)


class DiffCorrelator:
    """Map a session window onto git history for one project directory."""

    def __init__(self, project_dir: Path | str, config: DistillConfig | None = None):
        self.project_dir = Path(project_dir)
        self.config = config or DEFAULT_CONFIG

    def _open_repo(self) -> GitRepo | None:
        timeout = self.config.git_timeout_seconds
        if not GitRepo.is_git_repo(self.project_dir, timeout=timeout):
            logger.debug("Skipping git correlation: %s is not a git work tree", self.project_dir)
            return None
        return GitRepo(self.project_dir, timeout=timeout)

    def extract(self, session_id: str, events: Iterable[Any]) -> GitDiffResult:
        parsed = parse_events(events)
        if not parsed:
            return GitDiffResult()

        repo = self._open_repo()
        if repo is None:
            return GitDiffResult()
        if not repo.has_commits():
            logger.debug("Skipping git correlation for %s: repository has no commits", session_id)
            return GitDiffResult()

        start_t = min(e.t for e in parsed)
        end_t = max(e.t for e in parsed) + self.config.commit_window_buffer_ms
        commits = repo.get_commits_between(start_t, end_t)
        if not commits:
            return GitDiffResult()

        edits = _edit_calls(parsed)
        hunks: list[DiffHunk] = []
        for commit in commits:
            for change in parse_numstat_output(repo.get_commit_numstat(commit.sha)):
                hunks.append(
                    DiffHunk(
                        file_path=change.file_path,
                        additions=change.additions,
                        deletions=change.deletions,
                        commit_hash=commit.sha,
                        matched_tool_use_id=self._match_edit(repo, edits, change.file_path),
                    )
                )

        working_tree = parse_numstat_output(repo.get_working_tree_numstat())
        staged = parse_numstat_output(repo.get_working_tree_numstat(staged=True))
        for change in working_tree + staged:
            change.matched_tool_use_id = self._match_edit(repo, edits, change.file_path)

        logger.info(
            "Session %s: %d commit(s), %d hunk(s), %d working tree change(s)",
            session_id,
            len(commits),
            len(hunks),
            len(working_tree),
        )
        return GitDiffResult(
            commits=[c.sha for c in commits],
            hunks=hunks,
            working_tree_changes=working_tree,
            staged_changes=staged,
        )

    @staticmethod
    def _match_edit(repo: GitRepo, edits: list[_EditCall], repo_path: str) -> str | None:
        """tool_use_id of the most recent Edit/Write targeting ``repo_path``."""
        for edit in reversed(edits):
            if Path(edit.file_path).is_absolute():
                # Absolute paths outside the work tree never match.
                if repo.relative_path(edit.file_path) == repo_path:
                    return edit.tool_use_id
                continue
            if _suffix_match(edit.file_path, repo_path):
                return edit.tool_use_id
        return None

    def net_changes(self, events: Iterable[Any]) -> list[WorkingTreeChange]:
        """Changes from the session's starting commit to the current work tree.

        Uses the ``git_commit`` recorded in the first SessionStart context, so
        it works whether or not the agent committed. Unstaged rows take
        precedence over staged rows for the same path.
        """
        start_commit = next(
            (
                e.context.git_commit
                for e in parse_events(events)
                if e.event == "SessionStart" and e.context is not None and e.context.git_commit
            ),
            None,
        )
        if not start_commit:
            return []

        repo = self._open_repo()
        if repo is None:
            return []

        unstaged = parse_numstat_output(repo.get_working_tree_numstat(base=start_commit))
        staged = parse_numstat_output(repo.get_working_tree_numstat(staged=True, base=start_commit))

        merged: dict[str, WorkingTreeChange] = {}
        for change in unstaged + staged:
            merged.setdefault(change.file_path, change)
        return list(merged.values())


def extract_git_diff(
    session_id: str,
    project_dir: Path | str,
    events: Iterable[Any],
    config: DistillConfig | None = None,
) -> GitDiffResult:
    """Correlate a session's events with the commits made during it.

    Returns an empty result when there are no events, ``project_dir`` is not
    a git work tree, the repository has no commits, or no commit falls in
    the session window. Raises ``GitCommandError`` only when git itself
    cannot be run.
    """
    return DiffCorrelator(project_dir, config).extract(session_id, events)


def extract_net_changes(
    project_dir: Path | str,
    events: Iterable[Any],
    config: DistillConfig | None = None,
) -> list[WorkingTreeChange]:
    """Net working-tree changes since the commit the session started from."""
    return DiffCorrelator(project_dir, config).net_changes(events)
