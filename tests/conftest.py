"""Pytest configuration and shared fixtures."""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path

import pytest

# 2026-02-10T10:00:00Z
SESSION_START_MS = 1_770_717_600_000


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


def git(cwd: Path, *args: str, env: dict | None = None) -> str:
    """Run git in ``cwd`` and return stdout, failing the test on error."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        env={**os.environ, **(env or {})},
    )
    assert result.returncode == 0, result.stderr
    return result.stdout.strip()


def commit_at(repo: Path, t_ms: int, message: str) -> str:
    """Stage everything and commit with author and committer time ``t_ms``."""
    stamp = f"@{t_ms // 1000} +0000"
    git(repo, "add", "-A")
    git(
        repo,
        "commit",
        "-m",
        message,
        env={"GIT_AUTHOR_DATE": stamp, "GIT_COMMITTER_DATE": stamp},
    )
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def empty_git_repo(temp_dir):
    """An initialized repository without commits."""
    git(temp_dir, "init")
    git(temp_dir, "config", "user.email", "test@test.com")
    git(temp_dir, "config", "user.name", "Test User")
    git(temp_dir, "config", "commit.gpgsign", "false")
    return temp_dir


@pytest.fixture
def git_repo(empty_git_repo):
    """A repository with one commit made an hour before the test session."""
    (empty_git_repo / "README.md").write_text("# Test\n")
    commit_at(empty_git_repo, SESSION_START_MS - 3_600_000, "Initial commit")
    return empty_git_repo


def pre_tool(t: int, tool_name: str, tool_use_id: str, **tool_input) -> dict:
    return {
        "t": t,
        "event": "PreToolUse",
        "sid": "s1",
        "data": {"tool_name": tool_name, "tool_use_id": tool_use_id, "tool_input": tool_input},
    }


def tool_failure(t: int, tool_name: str, tool_use_id: str, error: str = "boom", **tool_input) -> dict:
    return {
        "t": t,
        "event": "PostToolUseFailure",
        "sid": "s1",
        "data": {
            "tool_name": tool_name,
            "tool_use_id": tool_use_id,
            "tool_input": tool_input,
            "error": error,
        },
    }
