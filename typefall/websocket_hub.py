from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket


logger = logging.getLogger(__name__)


class SessionWebSocketHub:
    """In-process WebSocket fan-out keyed by session id.

    Contract:
      - attach a connection with `connect(session_id, websocket)`.
      - push snapshots with `broadcast(session_id, payload)` from async code, or
        `schedule_broadcast(...)` from synchronous timer callbacks.

    Payloads must be JSON-serializable dicts.
    """

    def __init__(self) -> None:
        self._by_session: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._latest: dict[str, dict[str, object]] = {}
        self._senders: dict[str, asyncio.Task[None]] = {}

    def has_listeners(self, session_id: str) -> bool:
        return bool(self._by_session.get(session_id))

    async def connect(self, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_session[session_id].add(websocket)

    async def disconnect(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_session.get(session_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_session.pop(session_id, None)
                self._latest.pop(session_id, None)

    async def broadcast(self, session_id: str, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._by_session.get(session_id, set()))

        if not conns:
            return

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                logger.debug("dropping dead websocket for session %s", session_id, exc_info=True)
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._by_session.get(session_id, set()).discard(ws)

    def schedule_broadcast(self, session_id: str, payload: dict[str, object]) -> None:
        """Queue `payload` for a session's sockets without awaiting.

        At most one sender task runs per session. Payloads scheduled while it is
        still sending replace each other, so a slow socket only ever receives
        the newest snapshot once it catches up.
        """

        # Called 60 times a second per session; skip the task when nobody listens.
        if not self.has_listeners(session_id):
            return
        self._latest[session_id] = payload

        sender = self._senders.get(session_id)
        if sender is not None and not sender.done():
            return

        task = asyncio.get_running_loop().create_task(self._drain(session_id))
        self._senders[session_id] = task

        def _forget(t: asyncio.Task[None]) -> None:
            if self._senders.get(session_id) is t:
                del self._senders[session_id]

        task.add_done_callback(_forget)

    def pending_senders(self) -> int:
        return sum(1 for t in self._senders.values() if not t.done())

    async def _drain(self, session_id: str) -> None:
        while session_id in self._latest:
            payload = self._latest.pop(session_id)
            await self.broadcast(session_id, payload)


hub = SessionWebSocketHub()
