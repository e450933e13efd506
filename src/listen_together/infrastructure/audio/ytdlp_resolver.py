"""StreamResolver implementation using yt-dlp."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable
from typing import Any, Final, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator
from yt_dlp import YoutubeDL

from listen_together.application.interfaces.stream_resolver import ResolvedStream, StreamResolver
from listen_together.config.settings import ResolverSettings
from listen_together.domain.shared.exceptions import StreamResolutionError
from listen_together.domain.shared.messages import LogTemplates
from listen_together.domain.shared.types import NonEmptyStr, NonNegativeFloat, PositiveInt

logger = logging.getLogger(__name__)

CACHE_MAX_SIZE: Final[int] = 500
DEFAULT_HTTP_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB
WATCH_URL: Final[str] = "https://www.youtube.com/watch?v={track_id}"
URL_PATTERN: Final[re.Pattern[str]] = re.compile(r"^https?://")


# ── Pydantic models for yt-dlp data ────────────────────────────────────


class AudioFormatInfo(BaseModel):
    """A single format entry from yt-dlp extraction."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None
    acodec: str | None = None
    vcodec: str | None = None
    abr: float | None = None


class YtDlpStreamInfo(BaseModel):
    """The subset of a yt-dlp info dict needed to play a track."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None
    duration: NonNegativeFloat | None = None
    formats: list[AudioFormatInfo] = Field(default_factory=list)

    @field_validator("url", mode="before")
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        if not isinstance(v, str) or not v.strip():
            return None
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> float | None:
        """Coerce to a non-negative float; None for garbage values."""
        if v is None:
            return None
        try:
            val = float(v)
            return val if val >= 0 else None
        except (TypeError, ValueError):
            return None

    def best_audio_url(self) -> str | None:
        """Prefer the selected format's URL, else the audio-only format with the highest bitrate."""
        if self.url:
            return self.url
        audio = [f for f in self.formats if f.url and f.acodec not in (None, "none")]
        audio_only = [f for f in audio if f.vcodec in (None, "none")] or audio
        if not audio_only:
            return None
        return max(audio_only, key=lambda f: f.abr or 0.0).url


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    stream: ResolvedStream
    cached_at: NonNegativeFloat


class YtDlpOpts(BaseModel):
    """Typed yt-dlp configuration options passed to YoutubeDL."""

    model_config = ConfigDict(frozen=True)

    quiet: bool = True
    no_warnings: bool = True
    noprogress: bool = True
    noplaylist: bool = True
    forceipv4: bool = True
    skip_download: bool = True
    socket_timeout: PositiveInt = 10
    http_chunk_size: PositiveInt = DEFAULT_HTTP_CHUNK_SIZE
    format: NonEmptyStr = "bestaudio/best"


def source_url(track_id: str) -> str:
    """The page yt-dlp should extract for a track id (ids that are URLs pass through)."""
    if URL_PATTERN.match(track_id):
        return track_id
    return WATCH_URL.format(track_id=track_id)


class YtDlpStreamResolver(StreamResolver):
    """Resolves track ids to direct audio URLs off the event loop.

    Results are cached per instance for ``cache_ttl_seconds``; failures are
    never cached so the caller's retries reach yt-dlp again.
    """

    def __init__(
        self,
        settings: ResolverSettings | None = None,
        *,
        ydl_factory: Callable[..., Any] = YoutubeDL,
    ) -> None:
        self._settings = settings or ResolverSettings()
        self._opts = YtDlpOpts(
            format=self._settings.ytdlp_format,
            socket_timeout=self._settings.socket_timeout,
        )
        self._ydl_factory = ydl_factory
        self._cache: dict[str, CacheEntry] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _cached(self, track_id: str, now: float) -> ResolvedStream | None:
        entry = self._cache.get(track_id)
        if entry is None:
            return None
        if now - entry.cached_at < self._settings.cache_ttl_seconds:
            logger.debug(LogTemplates.RESOLVER_CACHE_HIT, track_id)
            return entry.stream
        self._cache.pop(track_id, None)
        return None

    def _store(self, track_id: str, stream: ResolvedStream, now: float) -> None:
        self._cache[track_id] = CacheEntry(stream=stream, cached_at=now)
        if len(self._cache) > CACHE_MAX_SIZE:
            ttl = self._settings.cache_ttl_seconds
            for key in [k for k, e in self._cache.items() if now - e.cached_at >= ttl]:
                self._cache.pop(key, None)
            for key in list(self._cache)[: max(0, len(self._cache) - CACHE_MAX_SIZE)]:
                self._cache.pop(key, None)

    def _extract_sync(self, track_id: str) -> ResolvedStream:
        now = time.time()
        cached = self._cached(track_id, now)
        if cached is not None:
            return cached

        try:
            with self._ydl_factory(params=cast(Any, self._opts.model_dump())) as ydl:
                data = ydl.extract_info(source_url(track_id), download=False)
        except Exception as e:
            logger.exception(LogTemplates.RESOLVER_FAILED, track_id)
            raise StreamResolutionError(track_id, str(e)) from e

        info = YtDlpStreamInfo.model_validate(dict(data)) if isinstance(data, dict) else None
        stream_url = info.best_audio_url() if info else None
        if not stream_url:
            logger.warning(LogTemplates.RESOLVER_NO_STREAM, track_id)
            raise StreamResolutionError(track_id)

        stream = ResolvedStream(stream_url=stream_url, duration=info.duration if info else None)
        self._store(track_id, stream, now)
        return stream

    async def resolve(self, track_id: str) -> ResolvedStream:
        return await asyncio.to_thread(self._extract_sync, track_id)
