"""Queue Coordinator - queue mutations with background stream resolution."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from ...domain.room.services import QueueRules
from ...domain.room.value_objects import QueueProcessingStatus, SyncAction
from ...domain.shared.exceptions import (
    AuthorizationError,
    BusinessRuleViolationError,
    EntityNotFoundError,
    StreamResolutionError,
    ValidationError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates, QueueProcessingMessages
from ...domain.sync.events import QueueProcessing
from ...utils.retry import RetryPolicy, retry_async
from .playback_models import QueueAccepted, QueueResponse
from .queue_models import PendingAdd, TrackRequest

if TYPE_CHECKING:
    from ...domain.room.entities import Room, Track
    from ...domain.room.registry import RoomRegistry
    from ..interfaces.identity_verifier import Identity
    from ..interfaces.stream_resolver import StreamResolver
    from .sync_publisher import SyncPublisher

logger = logging.getLogger(__name__)


class QueueCoordinator:
    """Coordinates edits to room queues.

    Adds are answered immediately and finished in a background task that
    resolves the stream URL. The room is only touched once resolution has
    succeeded, so a failed add never leaves a half-added track behind.
    """

    def __init__(
        self,
        *,
        registry: RoomRegistry,
        publisher: SyncPublisher,
        resolver: StreamResolver,
        retry_policy: RetryPolicy | None = None,
        per_user_limit: int = QueueRules.DEFAULT_PER_USER_LIMIT,
    ) -> None:
        self._registry = registry
        self._publisher = publisher
        self._resolver = resolver
        self._retry_policy = retry_policy or RetryPolicy(max_attempts=3, base_delay=2.0, timeout=15.0)
        self._per_user_limit = per_user_limit
        self._pending: set[PendingAdd] = set()
        self._tasks: dict[asyncio.Task[None], PendingAdd] = {}

    @property
    def pending(self) -> frozenset[PendingAdd]:
        return frozenset(self._pending)

    # ── Lookups ─────────────────────────────────────────────────────

    def _require_room(self, room_id: str) -> Room:
        room = self._registry.get(room_id)
        if room is None:
            raise EntityNotFoundError("Room", room_id, ErrorMessages.ROOM_NOT_FOUND)
        return room

    def _require_member(self, room_id: str, user_id: str) -> Room:
        room = self._require_room(room_id)
        if not room.has_participant(user_id):
            raise AuthorizationError(room_id, user_id, ErrorMessages.NOT_A_PARTICIPANT)
        return room

    def _pending_for(self, room_id: str) -> list[PendingAdd]:
        return [p for p in self._pending if p.room_id == room_id]

    # ── Queries ─────────────────────────────────────────────────────

    def get_queue(self, room_id: str) -> QueueResponse:
        room = self._require_room(room_id)
        return QueueResponse(queue=list(room.queue), current_song=room.current_song)

    # ── Add ─────────────────────────────────────────────────────────

    async def add(
        self, room_id: str, requester: Identity, song: Mapping[str, Any] | None
    ) -> QueueAccepted:
        """Validate and accept a song; resolution and commit continue in the background.

        Raises:
            EntityNotFoundError: Unknown room.
            AuthorizationError: Requester is not a participant.
            ValidationError: Missing song or song id.
            BusinessRuleViolationError: Per-user limit reached
                (``USER_QUEUE_LIMIT``) or duplicate (``NO_DUPLICATES``).
        """
        room = self._require_member(room_id, requester.id)

        if not song or not song.get("id"):
            raise ValidationError(ErrorMessages.INVALID_TRACK, field="song")
        try:
            track = TrackRequest.model_validate(song).to_track()
        except PydanticValidationError as e:
            raise ValidationError(ErrorMessages.INVALID_TRACK, field="song") from e

        pending = self._pending_for(room_id)
        waiting = QueueRules.count_by_requester(room.queue, requester.id) + sum(
            1 for p in pending if p.user_id == requester.id
        )
        if waiting >= self._per_user_limit:
            raise BusinessRuleViolationError(
                rule="USER_QUEUE_LIMIT",
                message=ErrorMessages.USER_QUEUE_LIMIT.format(limit=self._per_user_limit),
            )

        if QueueRules.is_duplicate(room.queue, room.current_song, track.id) or any(
            p.track_id == track.id for p in pending
        ):
            raise BusinessRuleViolationError(rule="NO_DUPLICATES", message=ErrorMessages.DUPLICATE_TRACK)

        participant = room.get_participant(requester.id)
        requester_name = participant.name if participant else requester.name
        track = track.with_requester(requester.id, requester_name, room.now)

        entry = PendingAdd(room_id=room_id, track_id=track.id, user_id=requester.id)
        self._pending.add(entry)
        task = asyncio.create_task(self._process(entry, track))
        self._tasks[task] = entry
        task.add_done_callback(self._on_task_done)

        logger.info(LogTemplates.QUEUE_ACCEPTED, track.title, requester.id, room_id)
        return QueueAccepted(message=QueueProcessingMessages.ACCEPTED, song_id=track.id)

    async def _process(self, entry: PendingAdd, track: Track) -> None:
        policy = self._retry_policy

        async def report(status: QueueProcessingStatus, message: str, **extra: Any) -> None:
            await self._publisher.queue_processing(
                entry.user_id,
                QueueProcessing(
                    song_id=track.id, title=track.title, status=status, message=message, **extra
                ),
            )

        async def on_retry(attempt: int, error: BaseException) -> None:
            await report(
                QueueProcessingStatus.RETRYING,
                QueueProcessingMessages.RETRYING.format(attempt=attempt, max_attempts=policy.max_attempts),
                attempt=attempt,
                max_attempts=policy.max_attempts,
            )

        try:
            await report(QueueProcessingStatus.FETCHING_STREAM_URL, QueueProcessingMessages.FETCHING)
            try:
                resolved = await retry_async(
                    lambda: self._resolver.resolve(track.id),
                    policy,
                    on_retry=on_retry,
                    description=f"resolve {track.id}",
                )
                if not resolved.stream_url:
                    raise StreamResolutionError(track.id, ErrorMessages.EMPTY_STREAM_URL)
            except Exception as e:
                error = str(e) or e.__class__.__name__
                logger.warning(LogTemplates.QUEUE_RESOLVE_FAILED, track.title, entry.room_id, error)
                await report(
                    QueueProcessingStatus.ERROR,
                    QueueProcessingMessages.FAILED.format(error=error),
                    error=error,
                )
                return

            room = self._registry.get(entry.room_id)
            if room is None:
                await report(
                    QueueProcessingStatus.ERROR,
                    QueueProcessingMessages.FAILED.format(error=ErrorMessages.ROOM_GONE),
                    error=ErrorMessages.ROOM_GONE,
                )
                return

            # Commit: no await between here and the end of the mutation
            self._pending.discard(entry)
            started = room.add_to_queue(track.with_stream(resolved.stream_url, resolved.duration))
            participant = room.get_participant(entry.user_id)
            if participant is not None:
                participant.songs_added += 1
            logger.info(LogTemplates.QUEUE_COMMITTED, track.title, entry.room_id, started)

            if started:
                await self._publisher.playback_sync(room, action=SyncAction.PLAY)
            await self._publisher.queue_update(room)
            await self._publisher.participants_update(room)
            await report(QueueProcessingStatus.SUCCESS, QueueProcessingMessages.SUCCESS)
        finally:
            self._pending.discard(entry)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        # A task cancelled before its first step never reaches _process.
        entry = self._tasks.pop(task, None)
        if entry is not None:
            self._pending.discard(entry)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(LogTemplates.QUEUE_TASK_FAILED, task.get_name(), exc_info=task.exception())

    async def drain(self) -> None:
        """Wait for every in-flight add to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()

    # ── Edits ───────────────────────────────────────────────────────

    async def remove(self, room_id: str, user_id: str, song_id: str) -> QueueResponse:
        room = self._require_member(room_id, user_id)
        if not room.remove_song(song_id):
            raise EntityNotFoundError("Song", song_id, ErrorMessages.SONG_NOT_IN_QUEUE)

        logger.info(LogTemplates.QUEUE_REMOVED, song_id, room_id)
        await self._publisher.queue_update(room)
        return QueueResponse(message="Song removed from queue", queue=list(room.queue))

    async def clear(self, room_id: str, user_id: str) -> QueueResponse:
        """Drop every pending track; the current track keeps playing."""
        room = self._require_member(room_id, user_id)
        count = room.clear_queue()

        logger.info(LogTemplates.QUEUE_CLEARED, count, room_id)
        await self._publisher.queue_update(room)
        return QueueResponse(
            message="Queue cleared", queue=list(room.queue), current_song=room.current_song
        )

    async def reorder(self, room_id: str, user_id: str, from_index: int, to_index: int) -> QueueResponse:
        room = self._require_member(room_id, user_id)
        if not room.reorder_queue(from_index, to_index):
            raise ValidationError(ErrorMessages.INVALID_REORDER, field="fromIndex")

        logger.info(LogTemplates.QUEUE_REORDERED, from_index, to_index, room_id)
        await self._publisher.queue_update(room)
        return QueueResponse(message="Queue reordered", queue=list(room.queue))

    async def shuffle(self, room_id: str, user_id: str) -> QueueResponse:
        room = self._require_member(room_id, user_id)
        room.shuffle_queue()

        logger.info(LogTemplates.QUEUE_SHUFFLED, room_id)
        await self._publisher.queue_update(room)
        return QueueResponse(message="Queue shuffled", queue=list(room.queue))
