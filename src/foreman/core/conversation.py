"""ConversationManager: the append-only, write-through conversation log."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from foreman.core.environment import capture_environment
from foreman.core.storage import SessionStorage
from foreman.types.messages import ConversationEntry, LoopMessage, ToolCall
from foreman.types.session import Session, SessionIndexEntry, SessionOptions

logger = logging.getLogger(__name__)


class ConversationManager:
    """Owns the current session for one master loop.

    Every append updates the session counters and is persisted before the
    call returns, so a crash never loses an acknowledged entry.

    Usage::

        conversation = ConversationManager(SessionStorage(), "/path/to/project")
        await conversation.start_session(SessionOptions(continue_session=True))
        await conversation.add_user_message("List the files")
    """

    def __init__(
        self,
        storage: SessionStorage,
        project_path: str | Path,
        *,
        parent_id: str | None = None,
    ) -> None:
        self._storage = storage
        self._project_path = str(Path(project_path).resolve())
        self._parent_id = parent_id
        self._session: Session | None = None

    @property
    def current_session(self) -> Session | None:
        return self._session

    @property
    def project_path(self) -> str:
        return self._project_path

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_session(self, options: SessionOptions | None = None) -> Session:
        """Adopt or create the session selected by *options*."""
        options = options or SessionOptions()

        if options.continue_session and not options.new_session:
            session = await self.continue_session()
            if session is not None:
                return session

        if options.session_id and not options.new_session:
            session = await self.load_session(options.session_id)
            if session is not None:
                return session
            logger.warning("Session %s not found; starting a new one", options.session_id)

        return await self._create_session()

    async def continue_session(self) -> Session | None:
        """Adopt the most recent session for this project, refreshing its environment."""
        session = await asyncio.to_thread(self._storage.find_most_recent, self._project_path)
        if session is None:
            return None
        session.environment = await asyncio.to_thread(capture_environment, self._project_path)
        self._session = session
        await self._persist()
        logger.info("Continuing session %s (%d entries)", session.id, len(session.conversation))
        return session

    async def load_session(self, session_id: str) -> Session | None:
        """Make a stored session current; None when it is missing or unreadable."""
        session = await asyncio.to_thread(self._storage.load, session_id)
        if session is None:
            return None
        self._session = session
        return session

    async def clear_conversation(self) -> Session:
        """Archive the current session and start a fresh one."""
        if self._session is not None:
            await asyncio.to_thread(self._storage.archive, self._session.id)
        return await self._create_session()

    async def list_sessions(self) -> list[SessionIndexEntry]:
        """Index rows for this project, most recent first."""
        return await asyncio.to_thread(self._storage.list_sessions, self._project_path)

    # ------------------------------------------------------------------
    # Appends
    # ------------------------------------------------------------------

    async def add_user_message(self, content: str) -> ConversationEntry:
        return await self._append(ConversationEntry.create("user", content))

    async def add_assistant_message(
        self,
        content: str,
        tool_calls: list[ToolCall] | None = None,
    ) -> ConversationEntry:
        return await self._append(
            ConversationEntry.create("assistant", content, tool_calls=tool_calls)
        )

    async def add_system_message(self, content: str) -> ConversationEntry:
        return await self._append(ConversationEntry.create("system", content))

    async def add_tool_results(self, results: list[Any]) -> ConversationEntry:
        """Record the results of one turn's tool calls as a single entry."""
        return await self._append(
            ConversationEntry.create("tool", "", tool_results=results)
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_conversation_history(self) -> list[LoopMessage]:
        """Project the conversation for the master loop, in append order."""
        if self._session is None:
            return []
        return [
            LoopMessage(
                role=e.role,
                content=e.content,
                timestamp=e.timestamp,
                tool_calls=e.tool_calls,
                tool_results=e.tool_results,
            )
            for e in self._session.conversation
        ]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _create_session(self) -> Session:
        environment = await asyncio.to_thread(capture_environment, self._project_path)
        session = Session(
            project_path=self._project_path,
            environment=environment,
            parent_id=self._parent_id,
        )
        if self._parent_id is not None:
            session.metadata.tags.append("subagent")
        self._session = session
        await self._persist()
        logger.info("Started session %s for %s", session.id, self._project_path)
        return session

    async def _append(self, entry: ConversationEntry) -> ConversationEntry:
        if self._session is None:
            await self._create_session()
        session = self._session
        assert session is not None
        session.conversation.append(entry)
        session.metadata.message_count += 1
        session.metadata.token_count += entry.token_count
        if entry.tool_calls:
            session.metadata.tool_call_count += len(entry.tool_calls)
        if entry.role == "user":
            session.metadata.last_command = entry.content
        await self._persist()
        return entry

    async def _persist(self) -> None:
        assert self._session is not None
        await asyncio.to_thread(self._storage.save, self._session)
