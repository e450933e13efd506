"""Playback Application Service - transport commands and track transitions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...domain.room.value_objects import QueueEndPolicy, SkipVoteOutcome, SyncAction, TrackEndedOutcome
from ...domain.shared.exceptions import (
    AuthorizationError,
    EntityNotFoundError,
    InvalidOperationError,
    ValidationError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from .playback_models import PlaybackStatus, SkipVoteResponse

if TYPE_CHECKING:
    from ...domain.room.entities import Room
    from ...domain.room.registry import RoomRegistry
    from .sync_publisher import SyncPublisher

logger = logging.getLogger(__name__)


class PlaybackApplicationService:
    """Applies transport commands to a room and broadcasts the result.

    Every command mutates the room synchronously, with no await between the
    state check and the change, and only then broadcasts.
    """

    def __init__(
        self,
        *,
        registry: RoomRegistry,
        publisher: SyncPublisher,
        track_ended_dedup_seconds: float = 5.0,
    ) -> None:
        self._registry = registry
        self._publisher = publisher
        self._dedup_seconds = track_ended_dedup_seconds

    # ── Lookups ─────────────────────────────────────────────────────

    def require_room(self, room_id: str) -> Room:
        room = self._registry.get(room_id)
        if room is None:
            raise EntityNotFoundError("Room", room_id, ErrorMessages.ROOM_NOT_FOUND)
        return room

    def require_member(self, room_id: str, user_id: str) -> Room:
        room = self.require_room(room_id)
        if not room.has_participant(user_id):
            raise AuthorizationError(room_id, user_id, ErrorMessages.NOT_A_PARTICIPANT)
        return room

    @staticmethod
    def _require_song(room: Room, operation: str, message: str = ErrorMessages.NO_SONG_LOADED) -> None:
        if room.current_song is None:
            raise InvalidOperationError(operation, "empty", message)

    # ── Transport ───────────────────────────────────────────────────

    async def toggle(self, room_id: str, user_id: str) -> PlaybackStatus:
        room = self.require_member(room_id, user_id)
        self._require_song(room, "toggle", ErrorMessages.CANNOT_TOGGLE)

        if room.is_playing:
            return await self._pause(room)
        return await self._resume(room)

    async def play(self, room_id: str, user_id: str) -> PlaybackStatus:
        room = self.require_member(room_id, user_id)
        self._require_song(room, "play")

        if room.is_playing:
            return PlaybackStatus.of(room, "Already playing")
        return await self._resume(room)

    async def pause(self, room_id: str, user_id: str) -> PlaybackStatus:
        room = self.require_member(room_id, user_id)
        self._require_song(room, "pause")

        if not room.is_playing:
            return PlaybackStatus.of(room, "Already paused")
        return await self._pause(room)

    async def seek(self, room_id: str, user_id: str, position: float) -> PlaybackStatus:
        room = self.require_member(room_id, user_id)
        self._require_song(room, "seek")

        if not room.is_valid_position(position):
            duration = room.current_song.duration if room.current_song else None
            raise ValidationError(
                ErrorMessages.INVALID_SEEK_POSITION.format(duration=duration), field="position"
            )

        room.seek_to(position)
        await self._publisher.playback_sync(room, action=SyncAction.SEEK, position=position)
        return PlaybackStatus.of(room, "Seek successful")

    async def _pause(self, room: Room) -> PlaybackStatus:
        position = room.get_current_playback_time()
        room.pause_playback(position)
        await self._publisher.playback_sync(room, action=SyncAction.PAUSE, position=position)
        return PlaybackStatus.of(room, "Playback paused")

    async def _resume(self, room: Room) -> PlaybackStatus:
        room.resume_playback()
        await self._publisher.playback_sync(room, action=SyncAction.PLAY)
        return PlaybackStatus.of(room, "Playback started")

    # ── Transitions ─────────────────────────────────────────────────

    async def next(self, room_id: str, user_id: str) -> PlaybackStatus:
        """Advance; an empty queue clears the current track and ends playback."""
        room = self.require_member(room_id, user_id)

        transition = room.advance(QueueEndPolicy.CLEAR_CURRENT)
        if transition.changed:
            await self._publisher.transition(room, transition, triggered_by=user_id)
        else:
            await self._publisher.playback_sync(room)
        return PlaybackStatus.of(room, include_queue=True)

    async def previous(self, room_id: str, user_id: str) -> PlaybackStatus:
        room = self.require_member(room_id, user_id)
        before = room.current_song

        if not room.play_previous():
            raise InvalidOperationError("previous", "no_history", ErrorMessages.NO_PREVIOUS_SONG)

        await self._publisher.playback_sync(room, action=SyncAction.NEXT)
        await self._publisher.track_change(room, before, room.current_song)
        await self._publisher.queue_update(room)
        return PlaybackStatus.of(room, "Playing previous song", include_queue=True)

    async def play_song(self, room_id: str, user_id: str, song_id: str) -> PlaybackStatus:
        """Start a specific queued track right away."""
        room = self.require_member(room_id, user_id)
        before = room.current_song

        if not room.play_song(song_id):
            raise EntityNotFoundError("Song", song_id, ErrorMessages.SONG_NOT_IN_QUEUE)

        await self._publisher.playback_sync(room, action=SyncAction.NEXT)
        await self._publisher.track_change(room, before, room.current_song)
        await self._publisher.queue_update(room)
        return PlaybackStatus.of(room, "Playing selected song", include_queue=True)

    async def skip(self, room_id: str, user_id: str) -> SkipVoteResponse:
        """Cast a skip vote; a majority skips without clearing on an empty queue."""
        room = self.require_member(room_id, user_id)
        result = room.add_skip_vote(user_id)

        if result.outcome is SkipVoteOutcome.SKIPPED:
            await self._publisher.playback_sync(room, action=SyncAction.NEXT)
            await self._publisher.track_change(
                room,
                result.previous,
                result.current,
                skipped=True,
                voted_by=list(result.voted_by),
            )
            await self._publisher.queue_update(room)
        elif result.outcome is SkipVoteOutcome.VOTE_RECORDED:
            await self._publisher.skip_vote_update(room, result.votes, result.needed)

        return SkipVoteResponse(
            success=result.outcome.is_success,
            message=result.message,
            skipped=result.outcome.action_executed,
            current_votes=0 if result.outcome.action_executed else result.votes,
            votes_needed=0 if result.outcome.action_executed else result.needed,
        )

    # ── Client-reported end of track ────────────────────────────────

    async def handle_track_ended(
        self, room_id: str, song_id: str, user_id: str, sid: str | None = None
    ) -> TrackEndedOutcome:
        """Reconcile a client's report that ``song_id`` finished playing.

        Repeats inside the dedup window are ignored. A report for a track
        that is no longer current gets a corrective sync sent back to the
        reporter. A report that arrives after the room already emptied its
        current track, while the queue still has songs, advances anyway so
        the room never stalls.
        """
        room = self._registry.get(room_id)
        if room is None:
            return TrackEndedOutcome.IGNORED

        logger.info(LogTemplates.TRACK_ENDED_RECEIVED, song_id, room_id, user_id)

        if room.is_duplicate_track_end(song_id, self._dedup_seconds):
            logger.debug(LogTemplates.TRACK_ENDED_DUPLICATE, song_id, room_id)
            return TrackEndedOutcome.DUPLICATE

        current = room.current_song
        if current is not None and current.id == song_id:
            room.mark_track_ended(song_id)
            transition = room.advance(QueueEndPolicy.CLEAR_CURRENT)
            await self._publisher.transition(
                room,
                transition,
                automatic=True,
                client_reported=True,
                triggered_by=user_id,
            )
            return TrackEndedOutcome.ADVANCED if transition.advanced else TrackEndedOutcome.QUEUE_ENDED

        if current is None:
            if not room.queue:
                return TrackEndedOutcome.IGNORED
            logger.warning(LogTemplates.TRACK_ENDED_RECOVERY, room_id)
            room.mark_track_ended(song_id)
            transition = room.advance(QueueEndPolicy.CLEAR_CURRENT)
            await self._publisher.transition(
                room, transition, automatic=True, client_reported=True, triggered_by=user_id
            )
            return TrackEndedOutcome.RECOVERED

        logger.info(LogTemplates.TRACK_ENDED_MISMATCH, room_id, song_id, current.id)
        if sid is not None:
            await self._publisher.playback_sync_to_socket(
                sid, room, forced_sync=True, mismatch_song_id=song_id
            )
        return TrackEndedOutcome.MISMATCH
