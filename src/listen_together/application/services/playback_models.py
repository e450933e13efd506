"""Response models returned by the playback and room services."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ...domain.room.entities import Participant, Room, Track


class _ResponseModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PlaybackStatus(_ResponseModel):
    """Transport state after a playback command."""

    success: bool = True
    message: str = ""
    is_playing: bool
    current_position: float
    current_song: Track | None = None
    queue: list[Track] | None = None
    server_time: float

    @classmethod
    def of(cls, room: Room, message: str = "", *, include_queue: bool = False, **extra) -> PlaybackStatus:
        return cls(
            message=message,
            is_playing=room.is_playing,
            current_position=room.get_current_playback_time(),
            current_song=room.current_song,
            queue=list(room.queue) if include_queue else None,
            server_time=room.now,
            **extra,
        )


class SkipVoteResponse(_ResponseModel):
    success: bool
    message: str
    skipped: bool
    current_votes: int = 0
    votes_needed: int = 0


class ParticipantsResponse(_ResponseModel):
    participants: list[Participant]
    count: int


class QueueAccepted(_ResponseModel):
    """Immediate answer to a queue add; resolution continues in the background."""

    success: bool = True
    message: str
    song_id: str
    status: str = "processing"


class QueueResponse(_ResponseModel):
    success: bool = True
    message: str = ""
    queue: list[Track]
    current_song: Track | None = None
