"""In-memory WebSocket hub for live notification delivery."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)

NOTIFICATION_EVENT = "new-notification"


class NotificationHub:
    """Tracks live connections grouped into per-user rooms.

    A connection joins the room named after its principal's id. Delivery is
    best effort: a send that fails drops that connection and is logged, it
    never raises to the caller. Room bookkeeping never awaits, so it is
    atomic on the event loop.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._memberships: dict[WebSocket, set[str]] = {}

    async def connect(self, websocket: WebSocket, room: str | None = None) -> None:
        """Register an accepted connection, optionally joining a room."""
        self._memberships.setdefault(websocket, set())
        if room is not None:
            await self.join(websocket, room)

    async def join(self, websocket: WebSocket, room: str) -> None:
        """Add a connection to a user's room."""
        self._rooms[room].add(websocket)
        self._memberships.setdefault(websocket, set()).add(room)
        logger.debug("Connection joined room %s", room)

    async def disconnect(self, websocket: WebSocket) -> None:
        """Forget a connection and its room memberships."""
        rooms = self._memberships.pop(websocket, set())
        for room in rooms:
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                del self._rooms[room]

    async def send_to_user(self, user_id: str, event: str, data: Any) -> int:
        """Deliver to every connection in ``user_id``'s room.

        Returns:
            int: Number of connections reached.
        """
        targets = list(self._rooms.get(str(user_id), ()))
        return await self._deliver(targets, event, data)

    async def broadcast(self, event: str, data: Any) -> int:
        """Deliver to every connected client.

        Returns:
            int: Number of connections reached.
        """
        targets = list(self._memberships)
        return await self._deliver(targets, event, data)

    async def _deliver(self, targets: list[WebSocket], event: str, data: Any) -> int:
        delivered = 0
        for websocket in targets:
            try:
                await websocket.send_json({"event": event, "data": data})
                delivered += 1
            except Exception as e:
                logger.warning("Dropping connection after failed send: %s", e)
                await self.disconnect(websocket)
        return delivered

    @property
    def connection_count(self) -> int:
        """Number of registered connections."""
        return len(self._memberships)

    def room_size(self, room: str) -> int:
        """Number of connections in a room."""
        return len(self._rooms.get(room, ()))


# Global singleton instance
_notification_hub: NotificationHub | None = None


def get_notification_hub() -> NotificationHub:
    """Get or create the global notification hub."""
    global _notification_hub
    if _notification_hub is None:
        _notification_hub = NotificationHub()
    return _notification_hub
