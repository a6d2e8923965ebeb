"""Capture a snapshot of the project environment for a session."""

from __future__ import annotations

import logging
import os
import subprocess
from datetime import UTC, datetime
from pathlib import Path

from foreman.core.config import load_project_instructions
from foreman.types.session import EnvironmentSnapshot, FileSnapshot, GitStatus

logger = logging.getLogger(__name__)

ENV_ALLOWLIST: tuple[str, ...] = (
    "USER",
    "HOME",
    "SHELL",
    "PWD",
    "LANG",
    "TERM",
    "VIRTUAL_ENV",
    "FOREMAN_PROVIDER",
    "FOREMAN_MODEL",
)

_SKIP_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv", "venv", ".foreman"})
_MAX_FILES = 500
_GIT_TIMEOUT = 5.0


def capture_environment(cwd: str | Path) -> EnvironmentSnapshot:
    """Snapshot cwd, tracked files, git state, allowlisted env, and FOREMAN.md."""
    root = Path(cwd).resolve()
    return EnvironmentSnapshot(
        cwd=str(root),
        files=tuple(_snapshot_files(root)),
        git_status=get_git_status(root),
        env_vars={k: os.environ[k] for k in ENV_ALLOWLIST if k in os.environ},
        project_instructions=load_project_instructions(root),
    )


def _git(root: Path, *args: str) -> str | None:
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("git %s failed in %s: %s", " ".join(args), root, exc)
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout


def get_git_status(root: Path) -> GitStatus | None:
    """Parse ``git status --porcelain -b``; None outside a repository."""
    out = _git(root, "status", "--porcelain", "-b")
    if out is None:
        return None

    branch = ""
    modified: list[str] = []
    staged: list[str] = []
    untracked: list[str] = []
    for line in out.splitlines():
        if line.startswith("## "):
            # "## main...origin/main [ahead 1]" or "## No commits yet on main"
            head = line[3:].split("...")[0].split(" ")[0]
            branch = line[3:].rsplit(" ", 1)[-1] if head == "No" else head
            continue
        if len(line) < 4:
            continue
        index_flag, tree_flag, path = line[0], line[1], line[3:]
        if index_flag == "?":
            untracked.append(path)
            continue
        if index_flag not in (" ", "?"):
            staged.append(path)
        if tree_flag not in (" ", "?"):
            modified.append(path)
    return GitStatus(
        branch=branch,
        modified=tuple(modified),
        staged=tuple(staged),
        untracked=tuple(untracked),
    )


def _snapshot_files(root: Path) -> list[FileSnapshot]:
    listed = _git(root, "ls-files")
    if listed is not None:
        candidates = [root / line for line in listed.splitlines() if line]
    else:
        candidates = list(_walk_files(root))

    snapshots: list[FileSnapshot] = []
    for path in candidates[:_MAX_FILES]:
        try:
            st = path.stat()
        except OSError:
            continue
        snapshots.append(FileSnapshot(
            path=str(path.relative_to(root)),
            modified=datetime.fromtimestamp(st.st_mtime, tz=UTC),
            size=st.st_size,
        ))
    return snapshots


def _walk_files(root: Path):
    count = 0
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
        for name in sorted(filenames):
            yield Path(dirpath) / name
            count += 1
            if count >= _MAX_FILES:
                return
