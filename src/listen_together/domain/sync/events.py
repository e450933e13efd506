"""Realtime event payloads exchanged over the room channel.

Server-to-client events carry an ``event_name`` and serialize to the
camelCase JSON clients consume. Client-to-server events are validated at
the socket boundary; malformed payloads never reach application services.
"""

from __future__ import annotations

import secrets
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from listen_together.domain.room.entities import Participant, Room, RoomState, Track
from listen_together.domain.room.value_objects import QueueProcessingStatus, SyncAction
from listen_together.domain.shared.exceptions import ValidationError
from listen_together.domain.shared.types import EpochMillis, NonEmptyStr


def new_sync_id() -> str:
    """Fresh random token identifying one playbackSync emission."""
    return secrets.token_hex(12)


class ServerEvent(BaseModel):
    """Base class for all server-to-client events."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    event_name: ClassVar[str]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PlaybackSync(ServerEvent):
    """Everything a client needs to recompute the authoritative position."""

    event_name: ClassVar[str] = "playbackSync"

    current_song: Track | None
    is_playing: bool
    current_position: float
    stream_url: str | None = None
    start_timestamp: float | None = None
    pause_timestamp: float | None = None
    accumulated_time: float = 0.0
    server_time: float
    action: SyncAction = SyncAction.NONE
    sync_id: str = Field(default_factory=new_sync_id)

    # Contextual flags, present only where relevant
    initial_join: bool | None = None
    forced_sync: bool | None = None
    mismatch_song_id: str | None = None
    error_recovery: bool | None = None
    no_more_songs: bool | None = None
    previous_song: str | None = None
    end_triggered_by: str | None = None
    client_time: float | None = None
    time_offset: float | None = None
    client_last_sync: float | None = None

    @classmethod
    def from_room(
        cls,
        room: Room,
        action: SyncAction = SyncAction.NONE,
        position: float | None = None,
        **extra: Any,
    ) -> PlaybackSync:
        """Build a sync event from the room's current timeline.

        Args:
            room: The room to describe.
            action: Transport command clients should apply.
            position: Exact position to send instead of the computed one.
            **extra: Contextual flags (``initial_join``, ``forced_sync`` ...).
        """
        current = room.current_song
        return cls(
            current_song=current,
            is_playing=room.is_playing,
            current_position=room.get_current_playback_time() if position is None else position,
            stream_url=current.stream_url if current else None,
            start_timestamp=room.start_timestamp,
            pause_timestamp=room.pause_timestamp,
            accumulated_time=room.accumulated_time,
            server_time=room.now,
            action=action,
            **extra,
        )


class QueueUpdate(ServerEvent):
    event_name: ClassVar[str] = "queueUpdate"

    queue: list[Track]


class ParticipantsUpdate(ServerEvent):
    event_name: ClassVar[str] = "participantsUpdate"

    participants: list[Participant]
    count: int
    timestamp: float


class TrackChange(ServerEvent):
    """Announces a transition; the flags drive UX messaging only."""

    event_name: ClassVar[str] = "trackChange"

    previous_song_id: str | None
    new_song_id: str | None
    server_time: float
    skipped: bool = False
    automatic: bool = False
    client_reported: bool = False
    voted_by: list[str] | None = None


class PlaybackEnded(ServerEvent):
    """Emitted only when the queue is exhausted."""

    event_name: ClassVar[str] = "playbackEnded"

    next_song: Track | None = None
    server_time: float

    def to_payload(self) -> dict[str, Any]:
        # nextSong is always present, null included
        return self.model_dump(mode="json", by_alias=True)


class SkipVoteUpdate(ServerEvent):
    event_name: ClassVar[str] = "skipVoteUpdate"

    current_votes: int
    votes_needed: int
    server_time: float


class RoomJoined(ServerEvent):
    event_name: ClassVar[str] = "roomJoined"

    room: RoomState

    def to_payload(self) -> dict[str, Any]:
        return self.room.model_dump(mode="json", by_alias=True)


class QueueProcessing(ServerEvent):
    """Progress of one queue add, sent to the requester only."""

    event_name: ClassVar[str] = "queueProcessing"

    song_id: str
    title: str | None = None
    status: QueueProcessingStatus
    message: str
    attempt: int | None = None
    max_attempts: int | None = None
    error: str | None = None


class EventProcessed(ServerEvent):
    """Acknowledges a client event to the socket that reported it."""

    event_name: ClassVar[str] = "eventProcessed"

    type: str
    song_id: str | None = None
    processed: bool
    outcome: str | None = None
    timestamp: float


# ── Client-to-server events ─────────────────────────────────────────


class ClientEvent(BaseModel):
    """Base class for inbound payloads."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class Heartbeat(ClientEvent):
    room_id: str | None = None
    client_time: EpochMillis | None = None


class RequestSync(ClientEvent):
    room_id: NonEmptyStr
    client_time: EpochMillis | None = None
    last_sync_time: EpochMillis | None = None


class TrackEnded(ClientEvent):
    type: Literal["trackEnded"] = "trackEnded"
    song_id: NonEmptyStr
    room_id: NonEmptyStr
    timestamp: EpochMillis | None = None


CLIENT_EVENT_TYPES: dict[str, type[ClientEvent]] = {
    "trackEnded": TrackEnded,
}


def parse_client_event(data: Any) -> ClientEvent:
    """Validate a ``clientEvent`` payload into its tagged model.

    Raises:
        ValidationError: If the payload is not an object or its type is unknown.
        pydantic.ValidationError: If required fields are missing or malformed.
    """
    if not isinstance(data, dict):
        raise ValidationError("clientEvent payload must be an object", field="payload")
    model = CLIENT_EVENT_TYPES.get(data.get("type", ""))
    if model is None:
        raise ValidationError(f"Unknown client event type: {data.get('type')!r}", field="type")
    return model.model_validate(data)
