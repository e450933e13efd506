"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across contexts is defined here once, so models
can simply annotate their fields::

    from listen_together.domain.shared.types import NonEmptyStr, Seconds

    class MyModel(BaseModel):
        title: NonEmptyStr
        position: Seconds
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

# ── Numeric constraints ─────────────────────────────────────────────

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

PositiveInt = Annotated[int, Field(gt=0)]
"""Integer > 0."""

NonNegativeFloat = Annotated[float, Field(ge=0.0)]
"""Float >= 0.0."""

PositiveFloat = Annotated[float, Field(gt=0.0)]
"""Float > 0.0."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""

RoomIdStr = Annotated[str, Field(min_length=1, max_length=128)]
"""Opaque room identifier, derived from the hosting channel."""

UserIdStr = Annotated[str, Field(min_length=1, max_length=128)]
"""Stable user identifier issued by the identity service."""

TrackIdStr = Annotated[str, Field(min_length=1, max_length=256)]
"""Opaque audio-source identifier (e.g. a video id)."""

TrackTitleStr = Annotated[str, Field(min_length=1, max_length=500)]
"""Track title: 1-500 characters."""


# ── Timeline constraints ────────────────────────────────────────────

Seconds = Annotated[float, Field(ge=0.0)]
"""A playback position or duration in seconds."""

DurationSeconds = Annotated[float, Field(ge=0.0, le=86_400.0)]
"""Track duration in seconds: 0 … 86 400 (24 hours)."""

EpochMillis = Annotated[float, Field(ge=0.0)]
"""Wall-clock instant expressed as milliseconds since the Unix epoch."""

QueueIndex = Annotated[int, Field(ge=0)]
"""Zero-based queue position."""
