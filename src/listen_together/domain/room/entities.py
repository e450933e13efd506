"""Core domain entities for the room bounded context."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from listen_together.domain.room.services import VotingRules
from listen_together.domain.room.timer import AutoNextTimer
from listen_together.domain.room.value_objects import QueueEndPolicy, SkipVoteOutcome
from listen_together.domain.shared.datetime_utils import Clock, ms_to_seconds, now_ms
from listen_together.domain.shared.messages import LogTemplates
from listen_together.domain.shared.types import (
    DurationSeconds,
    EpochMillis,
    NonEmptyStr,
    NonNegativeInt,
    RoomIdStr,
    Seconds,
    TrackIdStr,
    TrackTitleStr,
    UserIdStr,
)

logger = logging.getLogger(__name__)

AutoNextListener = Callable[["Room", "Transition"], Awaitable[None]]


class Track(BaseModel):
    """Immutable value object representing a queued or playing song."""

    model_config = ConfigDict(
        frozen=True, strict=True, alias_generator=to_camel, populate_by_name=True
    )

    id: TrackIdStr
    title: TrackTitleStr
    artist: NonEmptyStr | None = None
    duration: DurationSeconds | None = None
    thumbnail: NonEmptyStr | None = None
    stream_url: NonEmptyStr | None = None

    # Request metadata (set when queued)
    added_by: UserIdStr | None = None
    requested_by: NonEmptyStr | None = None
    added_at: EpochMillis | None = None

    @property
    def is_resolved(self) -> bool:
        return self.stream_url is not None

    def with_stream(self, stream_url: str, duration: float | None = None) -> Track:
        """Return a copy with the resolved stream URL (and duration, when known)."""
        update: dict[str, object] = {"stream_url": stream_url}
        if duration is not None:
            update["duration"] = float(duration)
        return self.model_copy(update=update)

    def with_requester(self, user_id: str, user_name: str, added_at: float) -> Track:
        return self.model_copy(
            update={"added_by": user_id, "requested_by": user_name, "added_at": added_at}
        )


class Participant(BaseModel):
    """A user present in a room."""

    model_config = ConfigDict(strict=True, alias_generator=to_camel, populate_by_name=True)

    id: UserIdStr
    name: NonEmptyStr
    avatar: str | None = None
    joined_at: EpochMillis = Field(default_factory=now_ms)
    songs_added: NonNegativeInt = 0


class Transition(BaseModel):
    """Result of advancing a room past its current track."""

    model_config = ConfigDict(frozen=True)

    previous: Track | None = None
    current: Track | None = None
    advanced: bool = False  # A new track was started
    ended: bool = False  # Queue exhausted and the current track was cleared

    @property
    def changed(self) -> bool:
        return self.advanced or self.ended


class SkipVoteResult(BaseModel):
    """Result of casting a skip vote."""

    model_config = ConfigDict(frozen=True)

    outcome: SkipVoteOutcome
    votes: int = 0
    needed: int = 0
    voted_by: tuple[str, ...] = ()
    previous: Track | None = None
    current: Track | None = None

    @property
    def message(self) -> str:
        return self.outcome.get_message(self.votes, self.needed)


class RoomState(BaseModel):
    """Full room snapshot sent on join and full resync."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    participants: list[Participant]
    queue: list[Track]
    current_song: Track | None
    is_playing: bool
    current_position: float
    start_timestamp: float | None
    pause_timestamp: float | None
    accumulated_time: float
    playback_history: list[Track]
    server_time: float


class Room(BaseModel):
    """Aggregate root owning one shared playback timeline.

    The current position is derived, never stored: ``accumulated_time`` when
    paused, otherwise ``accumulated_time`` plus the wall time elapsed since
    ``start_timestamp``, clamped to the track's duration.

    Every operation that changes the timeline cancels the auto-next timer
    and, when the room is playing, re-arms it for the new remaining time.
    The timer only arms once a listener is bound through
    :meth:`bind_auto_next`.
    """

    HISTORY_LIMIT: ClassVar[int] = 20
    AUTO_NEXT_BUFFER_MS: ClassVar[float] = 500.0

    id: RoomIdStr
    participants: list[Participant] = Field(default_factory=list)
    queue: list[Track] = Field(default_factory=list)
    current_song: Track | None = None
    is_playing: bool = False
    start_timestamp: float | None = None
    pause_timestamp: float | None = None
    accumulated_time: Seconds = 0.0
    playback_history: list[Track] = Field(default_factory=list)
    skip_votes: set[str] = Field(default_factory=set)
    last_command_time: float = Field(default_factory=now_ms)
    created_at: float = Field(default_factory=now_ms)

    _clock: Clock = PrivateAttr(default_factory=lambda: now_ms)
    _timer: AutoNextTimer | None = PrivateAttr(default=None)
    _listener: AutoNextListener | None = PrivateAttr(default=None)
    _last_ended: tuple[str, float] | None = PrivateAttr(default=None)
    _tasks: set[asyncio.Task[None]] = PrivateAttr(default_factory=set)

    def model_post_init(self, context: object, /) -> None:
        self._timer = AutoNextTimer(self._on_auto_next_due)

    @classmethod
    def create(cls, room_id: str, clock: Clock | None = None) -> Room:
        """Create an empty room, optionally driven by a custom clock."""
        clock = clock or now_ms
        now = clock()
        room = cls(id=room_id, last_command_time=now, created_at=now)
        room._clock = clock
        return room

    # ── Properties ──────────────────────────────────────────────────

    @property
    def now(self) -> float:
        return self._clock()

    @property
    def is_empty(self) -> bool:
        return not self.participants

    @property
    def has_song(self) -> bool:
        return self.current_song is not None

    @property
    def auto_next_armed(self) -> bool:
        return self._timer is not None and self._timer.armed

    @property
    def auto_next_delay(self) -> float | None:
        """Seconds until the armed auto-next timer fires, if armed."""
        return self._timer.delay if self._timer is not None else None

    def touch(self) -> None:
        self.last_command_time = self._clock()

    # ── Participants ────────────────────────────────────────────────

    def get_participant(self, user_id: str) -> Participant | None:
        return next((p for p in self.participants if p.id == user_id), None)

    def has_participant(self, user_id: str) -> bool:
        return self.get_participant(user_id) is not None

    def add_participant(self, participant: Participant) -> bool:
        """Add a participant unless one with the same id is already present."""
        if self.has_participant(participant.id):
            return False
        self.participants.append(participant)
        return True

    def remove_participant(self, user_id: str) -> int:
        """Remove a participant and their pending skip vote; return the remaining count."""
        self.participants = [p for p in self.participants if p.id != user_id]
        self.skip_votes.discard(user_id)
        return len(self.participants)

    # ── Timeline ────────────────────────────────────────────────────

    def get_current_playback_time(self) -> float:
        """Current position in seconds, clamped to ``[0, duration]``."""
        if self.current_song is None:
            return 0.0

        position = self.accumulated_time
        if self.is_playing and self.start_timestamp is not None:
            position += ms_to_seconds(self._clock() - self.start_timestamp)

        position = max(0.0, position)
        duration = self.current_song.duration
        if duration is not None and position > duration:
            return duration
        return position

    def start_playback(self, track: Track) -> None:
        """Load a track at position 0 and start the transport."""
        now = self._clock()
        self.current_song = track
        self.is_playing = True
        self.accumulated_time = 0.0
        self.start_timestamp = now
        self.last_command_time = now
        self.skip_votes.clear()
        self._arm_auto_next()
        logger.info(LogTemplates.TRACK_STARTED, track.title, self.id)

    def pause_playback(self, position: float | None = None) -> bool:
        """Freeze the timeline at ``position`` or at the computed current position."""
        if self.current_song is None or not self.is_playing:
            return False

        frozen = self.get_current_playback_time() if position is None else position
        now = self._clock()
        self.accumulated_time = self._clamp(frozen)
        self.is_playing = False
        self.pause_timestamp = now
        self.last_command_time = now
        self._cancel_auto_next()
        logger.info(LogTemplates.PLAYBACK_PAUSED, self.id, self.accumulated_time)
        return True

    def resume_playback(self) -> bool:
        """Restart the transport from the frozen position and re-arm auto-next."""
        if self.current_song is None or self.is_playing:
            return False

        now = self._clock()
        self.is_playing = True
        self.start_timestamp = now
        self.last_command_time = now
        self._arm_auto_next()
        logger.info(LogTemplates.PLAYBACK_RESUMED, self.id, self.accumulated_time)
        return True

    def toggle_playback(self) -> bool:
        if self.current_song is None:
            return False
        if self.is_playing:
            return self.pause_playback()
        return self.resume_playback()

    def is_valid_position(self, position: float) -> bool:
        if position < 0:
            return False
        duration = self.current_song.duration if self.current_song else None
        return duration is None or position <= duration

    def seek_to(self, position: float) -> bool:
        """Move the timeline to ``position``, keeping the transport state."""
        if self.current_song is None or not self.is_valid_position(position):
            return False

        now = self._clock()
        self.accumulated_time = position
        self.last_command_time = now
        if self.is_playing:
            self.start_timestamp = now
            self._arm_auto_next()
        logger.info(LogTemplates.PLAYBACK_SEEKED, self.id, position)
        return True

    # ── Track transitions ───────────────────────────────────────────

    def add_to_queue(self, track: Track) -> bool:
        """Append a track; start it right away when nothing is loaded.

        Returns:
            True if playback was started, so the caller broadcasts a full
            playbackSync instead of only a queueUpdate.
        """
        self.queue.append(track)
        self.touch()
        if self.current_song is None:
            self.start_playback(self.queue.pop(0))
            return True
        return False

    def play_next(self) -> bool:
        """Promote the queue head to the current track.

        Returns False, without touching the current track, when the queue is
        empty. What happens then is decided by the caller through
        :meth:`advance`.
        """
        self._cancel_auto_next()
        if not self.queue:
            return False

        self._push_history(self.current_song)
        self.start_playback(self.queue.pop(0))
        return True

    def advance(self, policy: QueueEndPolicy) -> Transition:
        """Advance past the current track, applying ``policy`` if the queue is empty."""
        previous = self.current_song
        if self.play_next():
            logger.info(
                LogTemplates.TRACK_ADVANCED,
                self.id,
                previous.id if previous else None,
                self.current_song.id if self.current_song else None,
                policy.value,
            )
            return Transition(previous=previous, current=self.current_song, advanced=True)

        if policy is QueueEndPolicy.CLEAR_CURRENT and previous is not None:
            self.stop_and_clear()
            logger.info(LogTemplates.QUEUE_EXHAUSTED, self.id)
            return Transition(previous=previous, current=None, ended=True)

        return Transition(previous=previous, current=previous)

    def stop_and_clear(self) -> None:
        """Move the current track to history and return to the empty state."""
        self._cancel_auto_next()
        now = self._clock()
        self._push_history(self.current_song)
        self.current_song = None
        self.is_playing = False
        self.accumulated_time = 0.0
        self.start_timestamp = None
        self.pause_timestamp = now
        self.last_command_time = now
        self.skip_votes.clear()

    def play_previous(self) -> bool:
        """Restart the most recent history entry, pushing the current track back to the queue front."""
        if not self.playback_history:
            return False

        previous = self.playback_history.pop(0)
        if self.current_song is not None:
            self.queue.insert(0, self.current_song)
        self.start_playback(previous)
        logger.info(LogTemplates.PREVIOUS_TRACK, previous.title, self.id)
        return True

    def play_song(self, song_id: str) -> bool:
        """Start a specific queued track now."""
        index = self._index_of(song_id)
        if index is None:
            return False

        track = self.queue.pop(index)
        self._cancel_auto_next()
        self._push_history(self.current_song)
        self.start_playback(track)
        return True

    # ── Skip votes ──────────────────────────────────────────────────

    def add_skip_vote(self, user_id: str) -> SkipVoteResult:
        """Record a skip vote and skip once a majority is reached."""
        if self.current_song is None:
            return SkipVoteResult(outcome=SkipVoteOutcome.NO_SONG_PLAYING)

        needed = VotingRules.calculate_threshold(len(self.participants))
        if user_id in self.skip_votes:
            return SkipVoteResult(
                outcome=SkipVoteOutcome.ALREADY_VOTED, votes=len(self.skip_votes), needed=needed
            )

        self.skip_votes.add(user_id)
        votes = len(self.skip_votes)
        if not VotingRules.threshold_met(votes, len(self.participants)):
            logger.info(LogTemplates.SKIP_VOTE_RECORDED, user_id, self.id, votes, needed)
            return SkipVoteResult(outcome=SkipVoteOutcome.VOTE_RECORDED, votes=votes, needed=needed)

        voted_by = tuple(sorted(self.skip_votes))
        transition = self.advance(QueueEndPolicy.KEEP_CURRENT)
        if not transition.advanced:
            return SkipVoteResult(outcome=SkipVoteOutcome.NO_MORE_SONGS, votes=votes, needed=needed)

        logger.info(LogTemplates.SKIP_VOTE_PASSED, self.id)
        return SkipVoteResult(
            outcome=SkipVoteOutcome.SKIPPED,
            voted_by=voted_by,
            previous=transition.previous,
            current=transition.current,
        )

    # ── Queue editing ───────────────────────────────────────────────

    def remove_song(self, song_id: str) -> bool:
        original = len(self.queue)
        self.queue = [track for track in self.queue if track.id != song_id]
        if len(self.queue) == original:
            return False
        self.touch()
        return True

    def clear_queue(self) -> int:
        """Clear pending tracks and return the count removed; the current track stays."""
        count = len(self.queue)
        self.queue.clear()
        self.touch()
        return count

    def reorder_queue(self, from_index: int, to_index: int) -> bool:
        """Move a queue entry; out-of-range indices leave the queue unchanged."""
        size = len(self.queue)
        if not (0 <= from_index < size and 0 <= to_index < size):
            return False

        track = self.queue.pop(from_index)
        self.queue.insert(to_index, track)
        self.touch()
        return True

    def shuffle_queue(self) -> None:
        random.shuffle(self.queue)
        self.touch()

    # ── Track-ended bookkeeping ─────────────────────────────────────

    def is_duplicate_track_end(self, song_id: str, window_seconds: float) -> bool:
        """Check whether ``song_id`` was already reported ended inside the window."""
        if self._last_ended is None:
            return False
        last_id, at = self._last_ended
        return last_id == song_id and ms_to_seconds(self._clock() - at) < window_seconds

    def mark_track_ended(self, song_id: str) -> None:
        self._last_ended = (song_id, self._clock())

    # ── Snapshots and lifecycle ─────────────────────────────────────

    def snapshot(self) -> RoomState:
        return RoomState(
            id=self.id,
            participants=list(self.participants),
            queue=list(self.queue),
            current_song=self.current_song,
            is_playing=self.is_playing,
            current_position=self.get_current_playback_time(),
            start_timestamp=self.start_timestamp,
            pause_timestamp=self.pause_timestamp,
            accumulated_time=self.accumulated_time,
            playback_history=list(self.playback_history),
            server_time=self._clock(),
        )

    def bind_auto_next(self, listener: AutoNextListener | None) -> None:
        """Bind the coroutine that broadcasts automatic transitions.

        Binding re-arms the timer for a room that is already playing.
        """
        self._listener = listener
        if listener is None:
            self._cancel_auto_next()
        else:
            self._arm_auto_next()

    def close(self) -> None:
        """Cancel scheduled work; called when the room is torn down."""
        self._cancel_auto_next()
        self._listener = None

    # ── Internals ───────────────────────────────────────────────────

    def _clamp(self, position: float) -> float:
        position = max(0.0, position)
        duration = self.current_song.duration if self.current_song else None
        if duration is not None:
            position = min(position, duration)
        return position

    def _index_of(self, song_id: str) -> int | None:
        return next((i for i, track in enumerate(self.queue) if track.id == song_id), None)

    def _push_history(self, track: Track | None) -> None:
        if track is None:
            return
        self.playback_history.insert(0, track)
        del self.playback_history[self.HISTORY_LIMIT :]

    def _cancel_auto_next(self) -> None:
        if self._timer is not None:
            self._timer.cancel()

    def _arm_auto_next(self) -> None:
        self._cancel_auto_next()
        if self._listener is None or self._timer is None:
            return
        if self.current_song is None or not self.is_playing:
            return
        if not self.current_song.duration:
            logger.warning(LogTemplates.AUTO_NEXT_NO_DURATION, self.current_song.id)
            return

        remaining = max(0.0, self.current_song.duration - self.get_current_playback_time())
        delay = remaining + ms_to_seconds(self.AUTO_NEXT_BUFFER_MS)
        self._timer.arm(delay)
        logger.debug(LogTemplates.AUTO_NEXT_ARMED, self.id, delay)

    def _on_auto_next_due(self) -> None:
        logger.info(LogTemplates.AUTO_NEXT_FIRED, self.id)
        if self.current_song is not None:
            self.mark_track_ended(self.current_song.id)
        transition = self.advance(QueueEndPolicy.CLEAR_CURRENT)

        listener = self._listener
        if listener is None or not transition.changed:
            return
        task = asyncio.get_running_loop().create_task(listener(self, transition))
        self._tasks.add(task)
        task.add_done_callback(self._on_listener_done)

    def _on_listener_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(
                LogTemplates.AUTO_NEXT_BROADCAST_FAILED, self.id, exc_info=task.exception()
            )
