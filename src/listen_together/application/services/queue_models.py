"""Request models for queue operations."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ...domain.room.entities import Track
from ...domain.shared.types import DurationSeconds, TrackIdStr


class TrackRequest(BaseModel):
    """Song metadata as submitted by a client, before stream resolution."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: TrackIdStr
    title: str | None = None
    artist: str | None = None
    duration: DurationSeconds | None = None
    thumbnail: str | None = None

    def to_track(self) -> Track:
        return Track(
            id=self.id,
            title=(self.title or self.id)[:500],
            artist=self.artist or None,
            duration=float(self.duration) if self.duration is not None else None,
            thumbnail=self.thumbnail or None,
        )


class PendingAdd(BaseModel):
    """A queue add accepted but not yet committed to the room."""

    model_config = ConfigDict(frozen=True)

    room_id: str
    track_id: str
    user_id: str
