"""Connection registry: which sockets belong to which user, plus presence grace timers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from listen_together.application.interfaces.identity_verifier import Identity
from listen_together.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

ExpiryHandler = Callable[[str], Awaitable[object]]


class ConnectionRegistry:
    """Maps socket ids to users and users to all of their sockets.

    A user may hold several sockets at once (one per tab). When their last
    socket goes away a grace timer starts; reconnecting or sending a
    heartbeat before it expires cancels it.
    """

    def __init__(self) -> None:
        self._identities: dict[str, Identity] = {}
        self._user_sockets: dict[str, set[str]] = {}
        self._grace_tasks: dict[str, asyncio.Task[None]] = {}

    def bind(self, sid: str, identity: Identity) -> None:
        self._identities[sid] = identity
        self._user_sockets.setdefault(identity.id, set()).add(sid)

    def unbind(self, sid: str) -> Identity | None:
        """Forget a socket and return the identity it belonged to."""
        identity = self._identities.pop(sid, None)
        if identity is None:
            return None
        sockets = self._user_sockets.get(identity.id)
        if sockets is not None:
            sockets.discard(sid)
            if not sockets:
                del self._user_sockets[identity.id]
        return identity

    def user_for(self, sid: str) -> Identity | None:
        return self._identities.get(sid)

    def sockets_for(self, user_id: str) -> list[str]:
        return sorted(self._user_sockets.get(user_id, ()))

    def is_connected(self, user_id: str) -> bool:
        return bool(self._user_sockets.get(user_id))

    # ── Grace timers ────────────────────────────────────────────────

    def has_grace_timer(self, user_id: str) -> bool:
        return user_id in self._grace_tasks

    def start_grace_timer(self, user_id: str, delay_seconds: float, on_expire: ExpiryHandler) -> None:
        """Call ``on_expire(user_id)`` after ``delay_seconds`` unless cancelled first."""
        self.cancel_grace_timer(user_id)
        logger.info(LogTemplates.GRACE_TIMER_STARTED, user_id, delay_seconds)
        task = asyncio.create_task(self._expire_after(user_id, delay_seconds, on_expire))
        self._grace_tasks[user_id] = task

    def cancel_grace_timer(self, user_id: str) -> bool:
        task = self._grace_tasks.pop(user_id, None)
        if task is None:
            return False
        task.cancel()
        logger.info(LogTemplates.GRACE_TIMER_CANCELLED, user_id)
        return True

    async def _expire_after(self, user_id: str, delay_seconds: float, on_expire: ExpiryHandler) -> None:
        await asyncio.sleep(delay_seconds)
        self._grace_tasks.pop(user_id, None)
        if self.is_connected(user_id):
            return
        try:
            await on_expire(user_id)
        except Exception:
            logger.exception(LogTemplates.GRACE_TIMER_FAILED, user_id)

    def close(self) -> None:
        for user_id in list(self._grace_tasks):
            self.cancel_grace_timer(user_id)
