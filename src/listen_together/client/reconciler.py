"""Client-side playback reconciliation.

Turns the unordered, lossy stream of ``playbackSync`` events into commands
for a local media element, so every listener hears the same position.
The reconciler never touches audio directly; it drives a :class:`MediaElement`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Mapping
from enum import Enum
from typing import Any

from listen_together.domain.room.entities import Track
from listen_together.domain.room.value_objects import SyncAction
from listen_together.domain.shared.datetime_utils import Clock, ms_to_seconds, now_ms
from listen_together.domain.sync.events import PlaybackSync

logger = logging.getLogger(__name__)


class MediaElement(ABC):
    """Port for the local audio output."""

    @abstractmethod
    def load(self, track: Track, stream_url: str | None) -> None:
        """Replace the current source."""
        ...

    @abstractmethod
    def unload(self) -> None:
        ...

    @abstractmethod
    def play(self) -> None:
        ...

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def seek(self, position: float) -> None:
        ...

    @property
    @abstractmethod
    def position(self) -> float:
        """Local playback position in seconds."""
        ...

    @property
    @abstractmethod
    def duration(self) -> float | None:
        """Duration reported by the media, if the source is loaded."""
        ...

    @property
    @abstractmethod
    def paused(self) -> bool:
        ...


class SyncOutcome(str, Enum):
    """What :meth:`PlaybackReconciler.apply` did with an event."""

    SWITCHED = "switched"
    SNAPPED = "snapped"
    CORRECTED = "corrected"
    ABSORBED = "absorbed"
    UNLOADED = "unloaded"
    DUPLICATE = "duplicate"
    STALE = "stale"


class PlaybackReconciler:
    """Applies server sync events to a :class:`MediaElement`.

    Args:
        media: Local audio output.
        drift_tolerance: Drift (seconds) absorbed without seeking.
        end_threshold: Remaining time (seconds) at or below which a track
            counts as ended.
        clock: Local wall clock in epoch milliseconds.
        remembered_sync_ids: How many recent sync ids to remember.
    """

    def __init__(
        self,
        media: MediaElement,
        *,
        drift_tolerance: float = 1.0,
        end_threshold: float = 0.5,
        clock: Clock = now_ms,
        remembered_sync_ids: int = 64,
    ) -> None:
        self._media = media
        self._drift_tolerance = drift_tolerance
        self._end_threshold = end_threshold
        self._clock = clock

        self._sync_ids: deque[str] = deque(maxlen=remembered_sync_ids)
        self._last_server_time: float | None = None
        self._clock_offset_ms = 0.0

        self._track: Track | None = None
        self._end_reported = False

    @property
    def track(self) -> Track | None:
        return self._track

    @property
    def current_song_id(self) -> str | None:
        return self._track.id if self._track else None

    @property
    def clock_offset_ms(self) -> float:
        """``serverTime - localTime`` as of the last applied sync."""
        return self._clock_offset_ms

    def server_now(self) -> float:
        """Local estimate of the server clock."""
        return self._clock() + self._clock_offset_ms

    def expected_position(self, event: PlaybackSync) -> float:
        """Position the server implies for *now*, given ``event``."""
        position = event.current_position
        if event.is_playing and event.action is not SyncAction.PAUSE:
            server_now = self.server_now()
            if event.start_timestamp is not None:
                position = event.accumulated_time + ms_to_seconds(server_now - event.start_timestamp)
            else:
                position += max(0.0, ms_to_seconds(server_now - event.server_time))

        position = max(0.0, position)
        duration = event.current_song.duration if event.current_song else None
        if duration is not None and position > duration:
            position = duration
        return position

    def apply(self, event: PlaybackSync | Mapping[str, Any]) -> SyncOutcome:
        """Reconcile local playback with one ``playbackSync`` event."""
        if not isinstance(event, PlaybackSync):
            event = PlaybackSync.model_validate(event)

        if event.sync_id in self._sync_ids:
            logger.debug("Ignoring duplicate sync %s", event.sync_id)
            return SyncOutcome.DUPLICATE
        if self._last_server_time is not None and event.server_time < self._last_server_time:
            logger.debug(
                "Ignoring stale sync %s (%.0f < %.0f)",
                event.sync_id,
                event.server_time,
                self._last_server_time,
            )
            return SyncOutcome.STALE

        self._sync_ids.append(event.sync_id)
        self._last_server_time = event.server_time
        self._clock_offset_ms = event.server_time - self._clock()

        song = event.current_song
        if song is None:
            if self._track is not None:
                self._media.unload()
            self._track = None
            self._end_reported = False
            return SyncOutcome.UNLOADED

        position = self.expected_position(event)

        # A NEXT for the same id is a re-queued copy starting over.
        if song.id != self.current_song_id or event.action is SyncAction.NEXT:
            self._load(song, event.stream_url or song.stream_url)
            self._media.seek(position)
            self._apply_transport(event.is_playing)
            return SyncOutcome.SWITCHED

        if event.action in (SyncAction.PAUSE, SyncAction.PLAY):
            self._media.seek(position)
            self._apply_transport(event.is_playing)
            return SyncOutcome.SNAPPED

        self._apply_transport(event.is_playing)
        if abs(self._media.position - position) > self._drift_tolerance:
            logger.debug("Correcting drift %.2fs -> %.2fs", self._media.position, position)
            self._media.seek(position)
            return SyncOutcome.CORRECTED
        return SyncOutcome.ABSORBED

    def check_for_end(self) -> str | None:
        """Poll the media for end of track.

        Returns the id of a track that just ended and has not been reported
        yet, otherwise None. Each loaded track is reported at most once.
        """
        if self._track is None or self._end_reported:
            return None

        duration = self._media.duration or self._track.duration
        if not duration:
            return None
        if duration - self._media.position > self._end_threshold:
            return None

        self._end_reported = True
        return self._track.id

    def _load(self, track: Track, stream_url: str | None) -> None:
        self._media.load(track, stream_url)
        self._track = track
        self._end_reported = False

    def _apply_transport(self, is_playing: bool) -> None:
        if is_playing and self._media.paused:
            self._media.play()
        elif not is_playing and not self._media.paused:
            self._media.pause()
