import asyncio
import time
import logging
from typing import Dict, Optional
from uuid import UUID, uuid4

from anyio.streams.memory import MemoryObjectSendStream

logger = logging.getLogger("universal-mcp-sessions")


class SessionEntry:
    def __init__(self, session_id: UUID, stream: MemoryObjectSendStream):
        self.session_id = session_id
        self.stream = stream
        self.opened_at = time.time()
        self.pings_sent = 0


class SessionStore:
    """Open SSE connections, keyed by the session id handed to the client.

    Entries live exactly as long as their event stream: they are added when
    ``GET /sse`` opens and removed when the keep-alive task of that connection
    is torn down.
    """

    def __init__(self):
        self._sessions: Dict[UUID, SessionEntry] = {}
        self._lock = asyncio.Lock()

    async def open(self, stream: MemoryObjectSendStream) -> SessionEntry:
        async with self._lock:
            entry = SessionEntry(uuid4(), stream)
            self._sessions[entry.session_id] = entry
        logger.info(f"SSE session opened: {entry.session_id.hex} ({len(self._sessions)} active)")
        return entry

    def get(self, session_id: UUID) -> Optional[SessionEntry]:
        # Read is atomic for dict.get
        return self._sessions.get(session_id)

    async def close(self, session_id: UUID) -> None:
        async with self._lock:
            entry = self._sessions.pop(session_id, None)
        if entry is None:
            return
        await entry.stream.aclose()
        logger.info(
            f"SSE session closed: {session_id.hex} after {time.time() - entry.opened_at:.1f}s "
            f"and {entry.pings_sent} pings ({len(self._sessions)} active)"
        )

    async def close_all(self) -> None:
        async with self._lock:
            entries = list(self._sessions.values())
            self._sessions.clear()
        for entry in entries:
            await entry.stream.aclose()
        if entries:
            logger.info(f"SessionStore cleared ({len(entries)} sessions closed).")

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
