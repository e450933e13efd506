"""Sync Publisher - turns room changes into realtime events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ...domain.room.value_objects import SyncAction
from ...domain.sync.events import (
    EventProcessed,
    ParticipantsUpdate,
    PlaybackEnded,
    PlaybackSync,
    QueueProcessing,
    QueueUpdate,
    RoomJoined,
    SkipVoteUpdate,
    TrackChange,
)

if TYPE_CHECKING:
    from ...domain.room.entities import Room, Track, Transition
    from ..interfaces.broadcaster import Broadcaster

logger = logging.getLogger(__name__)


class SyncPublisher:
    """Builds server events from room state and hands them to the broadcaster.

    :meth:`transition` is the one routine every advance goes through, manual
    or automatic, so all clients see the same sequence of events regardless
    of what triggered the change.
    """

    def __init__(self, broadcaster: Broadcaster) -> None:
        self._broadcaster = broadcaster

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    async def playback_sync(
        self,
        room: Room,
        action: SyncAction = SyncAction.NONE,
        position: float | None = None,
        **extra: Any,
    ) -> PlaybackSync:
        event = PlaybackSync.from_room(room, action=action, position=position, **extra)
        await self._broadcaster.emit_to_room(room.id, event)
        return event

    async def playback_sync_to_socket(self, sid: str, room: Room, **extra: Any) -> PlaybackSync:
        event = PlaybackSync.from_room(room, **extra)
        await self._broadcaster.emit_to_socket(sid, event)
        return event

    async def queue_update(self, room: Room) -> None:
        await self._broadcaster.emit_to_room(room.id, QueueUpdate(queue=list(room.queue)))

    async def participants_update(self, room: Room) -> None:
        event = ParticipantsUpdate(
            participants=list(room.participants),
            count=len(room.participants),
            timestamp=room.now,
        )
        await self._broadcaster.emit_to_room(room.id, event)

    async def track_change(
        self,
        room: Room,
        previous: Track | None,
        current: Track | None,
        *,
        skipped: bool = False,
        automatic: bool = False,
        client_reported: bool = False,
        voted_by: list[str] | None = None,
    ) -> None:
        event = TrackChange(
            previous_song_id=previous.id if previous else None,
            new_song_id=current.id if current else None,
            server_time=room.now,
            skipped=skipped,
            automatic=automatic,
            client_reported=client_reported,
            voted_by=voted_by,
        )
        await self._broadcaster.emit_to_room(room.id, event)

    async def playback_ended(self, room: Room, next_song: Track | None = None) -> None:
        await self._broadcaster.emit_to_room(
            room.id, PlaybackEnded(next_song=next_song, server_time=room.now)
        )

    async def skip_vote_update(self, room: Room, votes: int, needed: int) -> None:
        event = SkipVoteUpdate(current_votes=votes, votes_needed=needed, server_time=room.now)
        await self._broadcaster.emit_to_room(room.id, event)

    async def room_joined(self, sid: str, room: Room) -> None:
        await self._broadcaster.emit_to_socket(sid, RoomJoined(room=room.snapshot()))

    async def queue_processing(self, user_id: str, event: QueueProcessing) -> None:
        """Report queue-add progress to the requester's connections only."""
        await self._broadcaster.emit_to_user(user_id, event)

    async def event_processed(self, sid: str, event: EventProcessed) -> None:
        await self._broadcaster.emit_to_socket(sid, event)

    async def transition(
        self,
        room: Room,
        transition: Transition,
        *,
        skipped: bool = False,
        automatic: bool = False,
        client_reported: bool = False,
        voted_by: list[str] | None = None,
        triggered_by: str | None = None,
    ) -> None:
        """Broadcast the outcome of an advance.

        An advance emits playbackSync, trackChange and queueUpdate. An
        exhausted queue emits playbackEnded followed by a playbackSync that
        tells clients nothing is loaded.
        """
        previous_id = transition.previous.id if transition.previous else None

        if transition.advanced:
            await self.playback_sync(
                room,
                action=SyncAction.NEXT,
                previous_song=previous_id,
                end_triggered_by=triggered_by,
            )
            await self.track_change(
                room,
                transition.previous,
                transition.current,
                skipped=skipped,
                automatic=automatic,
                client_reported=client_reported,
                voted_by=voted_by,
            )
            await self.queue_update(room)
        elif transition.ended:
            await self.playback_ended(room, None)
            await self.playback_sync(
                room,
                no_more_songs=True,
                previous_song=previous_id,
                end_triggered_by=triggered_by,
            )

    async def automatic_transition(self, room: Room, transition: Transition) -> None:
        """Listener bound to every room's auto-next timer."""
        await self.transition(room, transition, automatic=True)
