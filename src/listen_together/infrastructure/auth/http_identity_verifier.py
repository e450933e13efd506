"""IdentityVerifier implementation that introspects bearer tokens over HTTP."""

from __future__ import annotations

import logging
import time
from typing import Any, Final

import httpx
from pydantic import BaseModel, ConfigDict

from listen_together.application.interfaces.identity_verifier import Identity, IdentityVerifier
from listen_together.config.settings import AuthSettings
from listen_together.domain.shared.exceptions import AuthenticationError, DependencyUnavailableError
from listen_together.domain.shared.messages import ErrorMessages, LogTemplates
from listen_together.domain.shared.types import NonNegativeFloat

logger = logging.getLogger(__name__)

AVATAR_URL: Final[str] = "https://cdn.discordapp.com/avatars/{user_id}/{avatar}.png"
CACHE_MAX_SIZE: Final[int] = 1000


class CacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: Identity
    cached_at: NonNegativeFloat

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        return now - self.cached_at >= ttl_seconds


def identity_from_profile(data: dict[str, Any]) -> Identity:
    """Map a user profile document to an Identity."""
    user_id = str(data.get("id") or "")
    if not user_id:
        raise AuthenticationError(ErrorMessages.TOKEN_INVALID)
    name = data.get("global_name") or data.get("username") or user_id
    avatar = data.get("avatar")
    if avatar and not str(avatar).startswith("http"):
        avatar = AVATAR_URL.format(user_id=user_id, avatar=avatar)
    return Identity(id=user_id, name=str(name), avatar=avatar or None)


class HttpIdentityVerifier(IdentityVerifier):
    """Verifies tokens against the identity service's "current user" endpoint.

    Successful lookups are cached per token; rejections are not.
    """

    def __init__(
        self,
        settings: AuthSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        max_size: int = CACHE_MAX_SIZE,
    ) -> None:
        self._settings = settings or AuthSettings()
        self._client = client
        self._max_size = max_size
        self._owns_client = client is None
        self._cache: dict[str, CacheEntry] = {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout_seconds)
        return self._client

    def _cached(self, token: str, now: float) -> Identity | None:
        entry = self._cache.get(token)
        if entry is None:
            return None
        if entry.is_expired(self._settings.cache_ttl_seconds, now):
            self._cache.pop(token, None)
            return None
        logger.debug(LogTemplates.IDENTITY_CACHE_HIT, token[-4:])
        return entry.identity

    async def verify(self, token: str) -> Identity:
        if not token:
            raise AuthenticationError(ErrorMessages.TOKEN_MISSING)

        now = time.monotonic()
        cached = self._cached(token, now)
        if cached is not None:
            return cached

        try:
            response = await self._get_client().get(
                self._settings.identity_url,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._settings.timeout_seconds,
            )
        except httpx.HTTPError as e:
            logger.warning(LogTemplates.IDENTITY_ERROR, e)
            raise DependencyUnavailableError("identity", ErrorMessages.IDENTITY_UNAVAILABLE) from e

        if response.status_code >= 500:
            logger.warning(LogTemplates.IDENTITY_SERVER_ERROR, response.status_code)
            raise DependencyUnavailableError("identity", ErrorMessages.IDENTITY_UNAVAILABLE)
        if response.status_code != 200:
            logger.info(LogTemplates.IDENTITY_REJECTED, response.status_code)
            raise AuthenticationError(ErrorMessages.TOKEN_INVALID)

        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError(ErrorMessages.TOKEN_INVALID) from e
        if not isinstance(data, dict):
            raise AuthenticationError(ErrorMessages.TOKEN_INVALID)

        identity = identity_from_profile(data)
        self._store(token, identity, now)
        return identity

    def _store(self, token: str, identity: Identity, now: float) -> None:
        self._cache[token] = CacheEntry(identity=identity, cached_at=now)
        if len(self._cache) <= self._max_size:
            return
        ttl = self._settings.cache_ttl_seconds
        for key in [k for k, e in self._cache.items() if e.is_expired(ttl, now)]:
            self._cache.pop(key, None)
        # Insertion order is oldest first.
        overflow = max(0, len(self._cache) - self._max_size)
        for key in list(self._cache)[:overflow]:
            self._cache.pop(key, None)

    def invalidate(self, token: str) -> None:
        self._cache.pop(token, None)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
