"""JSON session persistence: active/archived session bodies plus an index."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from foreman.errors import PersistenceError
from foreman.types.messages import utcnow
from foreman.types.session import Session, SessionIndexEntry

logger = logging.getLogger(__name__)

# One lock per process: every storage instance shares the index file format,
# and subagent loops save concurrently with their parent.
_INDEX_LOCK = threading.Lock()


def default_sessions_dir() -> Path:
    """Get the default sessions directory under the user's Foreman home."""
    home = os.environ.get("FOREMAN_HOME")
    base = Path(home).expanduser() if home else Path.home() / ".foreman"
    return base / "sessions"


def hash_path(project_path: str | Path) -> str:
    """Stable short identifier for a project directory."""
    resolved = str(Path(project_path).expanduser().resolve())
    return hashlib.sha256(resolved.encode("utf-8")).hexdigest()[:12]


def _atomic_write(path: Path, data: str) -> None:
    """Write to a temp file beside *path*, then rename over it."""
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(data, encoding="utf-8")
    os.replace(tmp_path, path)


class SessionStorage:
    """Stores one JSON document per session.

    Layout under *root*::

        active/<id>.json
        archived/<YYYY-MM-DD>/<id>.json
        index.json

    The body is always written before the index, so a completed ``save``
    never leaves an index row pointing at a missing file.
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root) if root is not None else default_sessions_dir()
        self.active_dir = self.root / "active"
        self.archived_dir = self.root / "archived"
        self.index_path = self.root / "index.json"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, session: Session) -> None:
        """Persist *session* and refresh its index row."""
        session.updated = utcnow()
        body = json.dumps(session.to_dict(), indent=2, default=str)
        try:
            self.active_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write(self.active_dir / f"{session.id}.json", body)
            with _INDEX_LOCK:
                index = self._read_index()
                entry = SessionIndexEntry(
                    id=session.id,
                    project_path=session.project_path,
                    project_hash=hash_path(session.project_path),
                    created=session.created,
                    updated=session.updated,
                    message_count=session.metadata.message_count,
                    parent_id=session.parent_id,
                )
                index[session.id] = entry.to_dict()
                self._write_index(index)
        except OSError as exc:
            raise PersistenceError(f"Failed to save session {session.id}: {exc}") from exc
        logger.debug("Saved session %s (%d entries)", session.id, len(session.conversation))

    def archive(self, session_id: str) -> Path | None:
        """Move an active session into today's archive bucket.

        Returns the archived path, or None when the session is not active.
        """
        src = self.active_dir / f"{session_id}.json"
        if not src.exists():
            return None
        date = utcnow().strftime("%Y-%m-%d")
        bucket = self.archived_dir / date
        dest = bucket / f"{session_id}.json"
        try:
            bucket.mkdir(parents=True, exist_ok=True)
            os.replace(src, dest)
            with _INDEX_LOCK:
                index = self._read_index()
                row = index.get(session_id)
                if row is not None:
                    row["archived"] = True
                    row["archivedDate"] = date
                    self._write_index(index)
        except OSError as exc:
            raise PersistenceError(f"Failed to archive session {session_id}: {exc}") from exc
        logger.info("Archived session %s to %s", session_id, dest)
        return dest

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load(self, session_id: str) -> Session | None:
        """Load a session by id, active first, then the archive."""
        path = self._find_body(session_id)
        if path is None:
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Session.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Cannot read session %s from %s: %s", session_id, path, exc)
            return None

    def find_most_recent(self, project_path: str | Path) -> Session | None:
        """Return the latest non-archived top-level session for a project."""
        for entry in self.list_sessions(project_path):
            if entry.archived or entry.parent_id is not None:
                continue
            session = self.load(entry.id)
            if session is not None:
                return session
            logger.warning("Index lists session %s but its body is unreadable", entry.id)
        return None

    def list_sessions(self, project_path: str | Path | None = None) -> list[SessionIndexEntry]:
        """Index rows, most recently updated first, optionally for one project."""
        with _INDEX_LOCK:
            index = self._read_index()
        entries: list[SessionIndexEntry] = []
        for row in index.values():
            try:
                entries.append(SessionIndexEntry.from_dict(row))
            except (KeyError, ValueError, TypeError):
                logger.warning("Skipping malformed index row: %r", row)
        if project_path is not None:
            project_hash = hash_path(project_path)
            entries = [e for e in entries if e.project_hash == project_hash]
        entries.sort(key=lambda e: e.updated, reverse=True)
        return entries

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _find_body(self, session_id: str) -> Path | None:
        active = self.active_dir / f"{session_id}.json"
        if active.exists():
            return active
        if self.archived_dir.is_dir():
            for bucket in sorted(self.archived_dir.iterdir(), reverse=True):
                candidate = bucket / f"{session_id}.json"
                if candidate.exists():
                    return candidate
        return None

    def _read_index(self) -> dict[str, dict[str, Any]]:
        """Read the index keyed by session id; caller holds the lock."""
        if not self.index_path.exists():
            return {}
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
            rows = data["sessions"]
            return {row["id"]: row for row in rows}
        except (OSError, ValueError, KeyError, TypeError) as exc:
            backup = self.index_path.with_name(
                f"index.corrupt-{datetime.now().strftime('%Y%m%d%H%M%S')}.json"
            )
            logger.warning(
                "Session index %s is unreadable (%s); moving it to %s and starting fresh",
                self.index_path, exc, backup,
            )
            try:
                os.replace(self.index_path, backup)
            except OSError:
                logger.warning("Could not back up corrupt index %s", self.index_path)
            return {}

    def _write_index(self, index: dict[str, dict[str, Any]]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        payload = {"sessions": list(index.values())}
        _atomic_write(self.index_path, json.dumps(payload, indent=2))
