"""Registry of background shell processes shared by the shell tools."""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

EXIT_MARKER = "[Process exited]"
MAX_BUFFER_CHARS = 100_000


@dataclass(slots=True)
class BackgroundProcess:
    """A shell command started with ``run_in_background``.

    Unread output is kept within ``MAX_BUFFER_CHARS``; the oldest lines are
    dropped first and counted in ``dropped_lines``.
    """

    id: str
    command: str
    cwd: str
    process: asyncio.subprocess.Process
    output: deque[str] = field(default_factory=deque)
    buffered_chars: int = 0
    dropped_lines: int = 0
    readers: list[asyncio.Task[None]] = field(default_factory=list)
    watcher: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self.process.returncode is None

    @property
    def exit_code(self) -> int | None:
        return self.process.returncode

    @property
    def finished(self) -> bool:
        """Exited, with every line of output (and the exit marker) buffered."""
        return self.watcher is not None and self.watcher.done()

    def append(self, text: str) -> None:
        self.output.append(text)
        self.buffered_chars += len(text)
        while self.buffered_chars > MAX_BUFFER_CHARS and len(self.output) > 1:
            self.buffered_chars -= len(self.output.popleft())
            self.dropped_lines += 1

    def drain(self) -> list[str]:
        lines = list(self.output)
        if self.dropped_lines:
            lines.insert(0, f"[...{self.dropped_lines} earlier lines dropped]\n")
        self.output.clear()
        self.buffered_chars = 0
        self.dropped_lines = 0
        return lines


class BackgroundProcessRegistry:
    """Tracks background shells and buffers their output until it is read.

    One registry is created per engine and handed to every Bash, BashOutput
    and KillBash tool, so a parent loop and its subagents see the same
    handles.
    """

    def __init__(self) -> None:
        self._processes: dict[str, BackgroundProcess] = {}
        self._lock = threading.Lock()

    async def start(self, command: str, cwd: str | Path) -> str:
        """Spawn *command* and return its handle immediately."""
        proc = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
        )
        handle = f"bash_{uuid.uuid4().hex[:12]}"
        entry = BackgroundProcess(id=handle, command=command, cwd=str(cwd), process=proc)
        with self._lock:
            self._processes[handle] = entry
        entry.readers = [
            asyncio.create_task(self._pump(entry, proc.stdout, "")),
            asyncio.create_task(self._pump(entry, proc.stderr, "[stderr] ")),
        ]
        entry.watcher = asyncio.create_task(self._watch_exit(entry))
        logger.debug("Started background process %s: %s", handle, command)
        return handle

    def get(self, handle: str) -> BackgroundProcess | None:
        with self._lock:
            return self._processes.get(handle)

    def handles(self) -> list[str]:
        with self._lock:
            return list(self._processes)

    def read_output(self, handle: str, *, clear: bool = True) -> list[str] | None:
        """Buffered output lines for *handle*; None for an unknown handle.

        Draining the output of a finished process also forgets its handle.
        """
        with self._lock:
            entry = self._processes.get(handle)
            if entry is None:
                return None
            if not clear:
                return list(entry.output)
            lines = entry.drain()
            if entry.finished:
                del self._processes[handle]
                logger.debug("Reaped background process %s", handle)
        return lines

    async def kill(self, handle: str) -> bool:
        """Terminate and forget a background process."""
        with self._lock:
            entry = self._processes.pop(handle, None)
        if entry is None:
            return False
        if entry.running:
            try:
                entry.process.kill()
            except ProcessLookupError:
                pass
            await entry.process.wait()
        for reader in entry.readers:
            reader.cancel()
        if entry.watcher is not None:
            await asyncio.gather(entry.watcher, return_exceptions=True)
        logger.debug("Killed background process %s", handle)
        return True

    async def shutdown(self) -> None:
        """Kill every tracked process."""
        for handle in self.handles():
            await self.kill(handle)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _pump(
        self,
        entry: BackgroundProcess,
        stream: asyncio.StreamReader | None,
        prefix: str,
    ) -> None:
        if stream is None:
            return
        while True:
            line = await stream.readline()
            if not line:
                break
            text = prefix + line.decode("utf-8", errors="replace")
            with self._lock:
                entry.append(text)

    async def _watch_exit(self, entry: BackgroundProcess) -> None:
        code = await entry.process.wait()
        await asyncio.gather(*entry.readers, return_exceptions=True)
        with self._lock:
            entry.append(f"{EXIT_MARKER} (exit code {code})\n")
