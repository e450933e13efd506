"""Room Application Service - joining, leaving and room lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ...domain.room.entities import Participant, RoomState
from ...domain.shared.exceptions import EntityNotFoundError
from ...domain.shared.messages import ErrorMessages, LogTemplates
from .playback_models import ParticipantsResponse

if TYPE_CHECKING:
    from ...domain.room.entities import Room
    from ...domain.room.registry import RoomRegistry
    from ..interfaces.identity_verifier import Identity
    from .sync_publisher import SyncPublisher

logger = logging.getLogger(__name__)

AVATAR_URL = "https://cdn.discordapp.com/avatars/{user_id}/{avatar}.png"


def participant_from(identity: Identity, profile: Mapping[str, Any] | None, joined_at: float) -> Participant:
    """Build a participant from the verified identity.

    A client-supplied profile may refine the display name and avatar, but
    only when it describes the same user.
    """
    name = identity.name
    avatar = identity.avatar
    if profile and str(profile.get("id", "")) == identity.id:
        name = profile.get("global_name") or profile.get("username") or profile.get("name") or name
        if profile.get("avatar"):
            avatar = str(profile["avatar"])
            if not avatar.startswith("http"):
                avatar = AVATAR_URL.format(user_id=identity.id, avatar=avatar)
    return Participant(id=identity.id, name=str(name), avatar=avatar, joined_at=joined_at)


class RoomApplicationService:
    """Creates rooms on first join and destroys them when the last participant leaves."""

    def __init__(self, *, registry: RoomRegistry, publisher: SyncPublisher) -> None:
        self._registry = registry
        self._publisher = publisher

    def _require_room(self, room_id: str) -> Room:
        room = self._registry.get(room_id)
        if room is None:
            raise EntityNotFoundError("Room", room_id, ErrorMessages.ROOM_NOT_FOUND)
        return room

    def snapshot(self, room_id: str) -> RoomState:
        return self._require_room(room_id).snapshot()

    def participants(self, room_id: str) -> ParticipantsResponse:
        room = self._require_room(room_id)
        return ParticipantsResponse(participants=list(room.participants), count=len(room.participants))

    async def join(
        self, room_id: str, identity: Identity, profile: Mapping[str, Any] | None = None
    ) -> RoomState:
        """Add the user to the room, creating it if needed, and catch their sockets up."""
        room = self._registry.get_or_create(room_id)
        if room.add_participant(participant_from(identity, profile, room.now)):
            logger.info(LogTemplates.PARTICIPANT_JOINED, identity.id, room_id)

        sids = await self._publisher.broadcaster.subscribe_user(identity.id, room_id)
        await self._publisher.participants_update(room)
        if room.current_song is not None:
            for sid in sids:
                await self._publisher.playback_sync_to_socket(sid, room, initial_join=True)
        return room.snapshot()

    async def leave(self, room_id: str, user_id: str) -> int:
        """Remove the user; an empty room is destroyed. Returns the remaining count."""
        room = self._require_room(room_id)
        remaining = room.remove_participant(user_id)
        logger.info(LogTemplates.PARTICIPANT_LEFT, user_id, room_id, remaining)

        await self._publisher.broadcaster.unsubscribe_user(user_id, room_id)
        if remaining == 0:
            self._registry.delete(room_id)
        else:
            await self._publisher.participants_update(room)
        return remaining

    async def leave_all(self, user_id: str) -> list[str]:
        """Remove the user from every room they are in; return those room ids."""
        left: list[str] = []
        for room in self._registry.rooms_for_user(user_id):
            await self.leave(room.id, user_id)
            left.append(room.id)
        return left

    def rooms_for_user(self, user_id: str) -> list[Room]:
        return self._registry.rooms_for_user(user_id)

    def find(self, room_id: str) -> Room | None:
        return self._registry.get(room_id)
