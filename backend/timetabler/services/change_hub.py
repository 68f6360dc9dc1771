from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from anyio import from_thread
from fastapi import WebSocket

from timetabler.services.entries import TimetableEntry

logger = logging.getLogger(__name__)


class TimetableChangeHub:
    """Pushes timetable changes to every websocket subscribed to a school.

    Subscribers treat each event as a signal that their copy of the school's
    entries is stale and reload before the next conflict check. Events never
    cross schools.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    @staticmethod
    def event_for(action: str, entry: TimetableEntry) -> dict:
        return {"event": f"timetable.{action}", "entry": entry.to_dict()}

    async def subscribe(self, school_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._subscribers[school_id].add(websocket)

    async def unsubscribe(self, school_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._drop(school_id, [websocket])

    def subscriber_count(self, school_id: str) -> int:
        return len(self._subscribers.get(school_id, ()))

    async def broadcast(self, school_id: str, action: str, entry: TimetableEntry) -> int:
        """Send the change to the school's subscribers; returns how many received it."""
        async with self._lock:
            recipients = list(self._subscribers.get(school_id, ()))

        event = self.event_for(action, entry)
        dead: list[WebSocket] = []
        for websocket in recipients:
            try:
                await websocket.send_json(event)
            except Exception:  # pragma: no cover - network/runtime dependent
                dead.append(websocket)

        if dead:
            async with self._lock:
                self._drop(school_id, dead)
            logger.debug("Dropped %d closed timetable subscriber(s) for school %s", len(dead), school_id)
        return len(recipients) - len(dead)

    def announce(self, school_id: str, action: str, entry: TimetableEntry) -> None:
        """Broadcast from synchronous route code running in a worker thread."""
        try:
            from_thread.run(self.broadcast, school_id, action, entry)
        except Exception:  # pragma: no cover - runtime environment dependent
            logger.debug("Unable to push timetable %s for school %s", action, school_id, exc_info=True)

    def _drop(self, school_id: str, websockets: list[WebSocket]) -> None:
        subscribers = self._subscribers.get(school_id)
        if subscribers is None:
            return
        subscribers.difference_update(websockets)
        if not subscribers:
            del self._subscribers[school_id]


change_hub = TimetableChangeHub()
