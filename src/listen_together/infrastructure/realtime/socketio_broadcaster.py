"""python-socketio adapter for the Broadcaster port."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import socketio

from listen_together.application.interfaces.broadcaster import Broadcaster
from listen_together.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from listen_together.domain.sync.events import ServerEvent
    from listen_together.infrastructure.realtime.connections import ConnectionRegistry

logger = logging.getLogger(__name__)


class SocketIOBroadcaster(Broadcaster):
    """Emits server events through a ``socketio.AsyncServer``.

    Room channels are socket.io rooms named after the room id; user-scoped
    emissions fan out over every socket the connection registry knows for
    that user.
    """

    def __init__(self, sio: socketio.AsyncServer, connections: ConnectionRegistry) -> None:
        self._sio = sio
        self._connections = connections

    async def emit_to_room(self, room_id: str, event: ServerEvent) -> None:
        logger.debug(LogTemplates.EMIT, event.event_name, f"room {room_id}")
        await self._sio.emit(event.event_name, event.to_payload(), room=room_id)

    async def emit_to_socket(self, sid: str, event: ServerEvent) -> None:
        logger.debug(LogTemplates.EMIT, event.event_name, f"socket {sid}")
        await self._sio.emit(event.event_name, event.to_payload(), to=sid)

    async def emit_to_user(self, user_id: str, event: ServerEvent) -> None:
        payload = event.to_payload()
        for sid in self._connections.sockets_for(user_id):
            logger.debug(LogTemplates.EMIT, event.event_name, f"socket {sid} (user {user_id})")
            await self._sio.emit(event.event_name, payload, to=sid)

    async def subscribe_user(self, user_id: str, room_id: str) -> list[str]:
        sids = self._connections.sockets_for(user_id)
        for sid in sids:
            await self._sio.enter_room(sid, room_id)
        return sids

    async def unsubscribe_user(self, user_id: str, room_id: str) -> None:
        for sid in self._connections.sockets_for(user_id):
            await self._sio.leave_room(sid, room_id)
