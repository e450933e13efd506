"""Port interface for fanning realtime events out to connected clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.sync.events import ServerEvent


class Broadcaster(ABC):
    """Interface for emitting server events to rooms, sockets and users."""

    @abstractmethod
    async def emit_to_room(self, room_id: str, event: "ServerEvent") -> None:
        """Emit to every connection subscribed to a room's channel."""
        ...

    @abstractmethod
    async def emit_to_socket(self, sid: str, event: "ServerEvent") -> None:
        """Emit to a single connection."""
        ...

    @abstractmethod
    async def emit_to_user(self, user_id: str, event: "ServerEvent") -> None:
        """Emit to every connection owned by a user (all of their tabs)."""
        ...

    @abstractmethod
    async def subscribe_user(self, user_id: str, room_id: str) -> list[str]:
        """Subscribe all of a user's connections to a room channel; return their ids."""
        ...

    @abstractmethod
    async def unsubscribe_user(self, user_id: str, room_id: str) -> None:
        """Remove all of a user's connections from a room channel."""
        ...
