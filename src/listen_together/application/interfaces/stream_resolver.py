"""Port interface for resolving a track id to a playable stream."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from listen_together.domain.shared.types import DurationSeconds, NonEmptyStr


class ResolvedStream(BaseModel):
    """A playable audio URL plus the duration reported by the source."""

    model_config = ConfigDict(frozen=True)

    stream_url: NonEmptyStr
    duration: DurationSeconds | None = None


class StreamResolver(ABC):
    """Interface for the external audio-source integration."""

    @abstractmethod
    async def resolve(self, track_id: NonEmptyStr) -> ResolvedStream:
        """Resolve a track id to a playable stream.

        Raises:
            StreamResolutionError: If no stream can be obtained.
        """
        ...
