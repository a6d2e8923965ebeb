"""Session types: the persisted conversation document and its parts."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from foreman.types.messages import ConversationEntry, utcnow

SESSION_FORMAT_VERSION = "1.0.0"


@dataclass(frozen=True, slots=True)
class FileSnapshot:
    """A tracked file at capture time."""

    path: str
    modified: datetime
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "modified": self.modified.isoformat(), "size": self.size}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileSnapshot:
        return cls(
            path=data["path"],
            modified=datetime.fromisoformat(data["modified"]),
            size=int(data.get("size", 0)),
        )


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Branch and working-tree state of a git repository."""

    branch: str
    modified: tuple[str, ...] = ()
    staged: tuple[str, ...] = ()
    untracked: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "modified": list(self.modified),
            "staged": list(self.staged),
            "untracked": list(self.untracked),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GitStatus:
        return cls(
            branch=data.get("branch", ""),
            modified=tuple(data.get("modified", ())),
            staged=tuple(data.get("staged", ())),
            untracked=tuple(data.get("untracked", ())),
        )


@dataclass(frozen=True, slots=True)
class EnvironmentSnapshot:
    """Project environment captured when a session starts or continues."""

    cwd: str
    files: tuple[FileSnapshot, ...] = ()
    git_status: GitStatus | None = None
    env_vars: dict[str, str] = field(default_factory=dict)
    project_instructions: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cwd": self.cwd,
            "files": [f.to_dict() for f in self.files],
            "gitStatus": self.git_status.to_dict() if self.git_status else None,
            "envVars": dict(self.env_vars),
            "projectInstructions": self.project_instructions,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EnvironmentSnapshot:
        git = data.get("gitStatus")
        return cls(
            cwd=data.get("cwd", ""),
            files=tuple(FileSnapshot.from_dict(f) for f in data.get("files", ())),
            git_status=GitStatus.from_dict(git) if git else None,
            env_vars=dict(data.get("envVars") or {}),
            project_instructions=data.get("projectInstructions"),
        )


@dataclass(frozen=True, slots=True)
class CompressedHistory:
    """A summarised span of earlier conversation."""

    id: str
    start_time: datetime
    end_time: datetime
    summary: str
    key_points: tuple[str, ...] = ()
    tokens_saved: int = 0
    original_entries: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "summary": self.summary,
            "keyPoints": list(self.key_points),
            "tokensSaved": self.tokens_saved,
            "originalEntries": self.original_entries,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompressedHistory:
        return cls(
            id=data["id"],
            start_time=datetime.fromisoformat(data["startTime"]),
            end_time=datetime.fromisoformat(data["endTime"]),
            summary=data.get("summary", ""),
            key_points=tuple(data.get("keyPoints", ())),
            tokens_saved=int(data.get("tokensSaved", 0)),
            original_entries=int(data.get("originalEntries", 0)),
        )


@dataclass(slots=True)
class SessionMetadata:
    """Running counters kept alongside the conversation."""

    version: str = SESSION_FORMAT_VERSION
    token_count: int = 0
    message_count: int = 0
    tool_call_count: int = 0
    last_command: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "tokenCount": self.token_count,
            "messageCount": self.message_count,
            "toolCallCount": self.tool_call_count,
            "lastCommand": self.last_command,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionMetadata:
        return cls(
            version=data.get("version", SESSION_FORMAT_VERSION),
            token_count=int(data.get("tokenCount", 0)),
            message_count=int(data.get("messageCount", 0)),
            tool_call_count=int(data.get("toolCallCount", 0)),
            last_command=data.get("lastCommand"),
            tags=list(data.get("tags", ())),
        )


@dataclass(slots=True)
class Session:
    """A durable conversation tied to a project directory.

    ``conversation`` only ever grows; entries are appended by the
    conversation manager and persisted after every append.
    """

    project_path: str
    environment: EnvironmentSnapshot
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created: datetime = field(default_factory=utcnow)
    updated: datetime = field(default_factory=utcnow)
    metadata: SessionMetadata = field(default_factory=SessionMetadata)
    conversation: list[ConversationEntry] = field(default_factory=list)
    compressed: list[CompressedHistory] = field(default_factory=list)
    parent_id: str | None = None  # Set for subagent sessions

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "projectPath": self.project_path,
            "created": self.created.isoformat(),
            "updated": self.updated.isoformat(),
            "metadata": self.metadata.to_dict(),
            "conversation": [e.to_dict() for e in self.conversation],
            "environment": self.environment.to_dict(),
            "compressed": [c.to_dict() for c in self.compressed],
        }
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            id=data["id"],
            project_path=data["projectPath"],
            created=datetime.fromisoformat(data["created"]),
            updated=datetime.fromisoformat(data["updated"]),
            metadata=SessionMetadata.from_dict(data.get("metadata") or {}),
            conversation=[ConversationEntry.from_dict(e) for e in data.get("conversation", ())],
            environment=EnvironmentSnapshot.from_dict(data.get("environment") or {}),
            compressed=[CompressedHistory.from_dict(c) for c in data.get("compressed", ())],
            parent_id=data.get("parentId"),
        )


@dataclass(frozen=True, slots=True)
class SessionOptions:
    """How a conversation manager should pick its session."""

    continue_session: bool = False
    session_id: str | None = None
    new_session: bool = False


@dataclass(frozen=True, slots=True)
class SessionIndexEntry:
    """One row of the session index."""

    id: str
    project_path: str
    project_hash: str
    created: datetime
    updated: datetime
    message_count: int = 0
    archived: bool = False
    archived_date: str | None = None
    parent_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "projectPath": self.project_path,
            "projectHash": self.project_hash,
            "created": self.created.isoformat(),
            "updated": self.updated.isoformat(),
            "messageCount": self.message_count,
            "archived": self.archived,
        }
        if self.archived_date is not None:
            data["archivedDate"] = self.archived_date
        if self.parent_id is not None:
            data["parentId"] = self.parent_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionIndexEntry:
        return cls(
            id=data["id"],
            project_path=data.get("projectPath", ""),
            project_hash=data.get("projectHash", ""),
            created=datetime.fromisoformat(data["created"]),
            updated=datetime.fromisoformat(data["updated"]),
            message_count=int(data.get("messageCount", 0)),
            archived=bool(data.get("archived", False)),
            archived_date=data.get("archivedDate"),
            parent_id=data.get("parentId"),
        )
