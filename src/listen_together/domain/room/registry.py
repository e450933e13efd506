"""
Room Registry

The process-wide map from room id to Room. It is the only shared mutable
state between HTTP handlers and the realtime layer and needs no locking
under a single-threaded event loop.
"""

from __future__ import annotations

import logging

from listen_together.domain.room.entities import AutoNextListener, Room
from listen_together.domain.shared.datetime_utils import Clock, now_ms
from listen_together.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)


class RoomRegistry:
    """In-memory registry of live rooms."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._rooms: dict[str, Room] = {}
        self._clock: Clock = clock or now_ms
        self._auto_next_listener: AutoNextListener | None = None

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def set_auto_next_listener(self, listener: AutoNextListener | None) -> None:
        """Bind the automatic-transition broadcaster to every current and future room."""
        self._auto_next_listener = listener
        for room in self._rooms.values():
            room.bind_auto_next(listener)

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is not None:
            return room

        room = Room.create(room_id, clock=self._clock)
        if self._auto_next_listener is not None:
            room.bind_auto_next(self._auto_next_listener)
        self._rooms[room_id] = room
        logger.info(LogTemplates.ROOM_CREATED, room_id)
        return room

    def delete(self, room_id: str) -> bool:
        """Tear down a room, cancelling its timer."""
        room = self._rooms.pop(room_id, None)
        if room is None:
            return False
        room.close()
        logger.info(LogTemplates.ROOM_DESTROYED, room_id)
        return True

    def all_rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def rooms_for_user(self, user_id: str) -> list[Room]:
        """Rooms in which the user is a participant."""
        return [room for room in self._rooms.values() if room.has_participant(user_id)]

    def close(self) -> None:
        for room_id in list(self._rooms):
            self.delete(room_id)
