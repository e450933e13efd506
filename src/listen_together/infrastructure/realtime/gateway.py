"""Socket gateway: authenticates connections and handles client-to-server events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import socketio
from pydantic import ValidationError as PydanticValidationError
from socketio.exceptions import ConnectionRefusedError

from listen_together.domain.shared.datetime_utils import Clock, now_ms
from listen_together.domain.shared.exceptions import (
    AuthenticationError,
    DependencyUnavailableError,
    ValidationError,
)
from listen_together.domain.shared.messages import ErrorMessages, LogTemplates
from listen_together.domain.sync.events import (
    EventProcessed,
    Heartbeat,
    RequestSync,
    TrackEnded,
    parse_client_event,
)

if TYPE_CHECKING:
    from listen_together.application.interfaces.identity_verifier import IdentityVerifier
    from listen_together.application.services.playback_service import PlaybackApplicationService
    from listen_together.application.services.room_service import RoomApplicationService
    from listen_together.application.services.sync_publisher import SyncPublisher
    from listen_together.infrastructure.realtime.connections import ConnectionRegistry

logger = logging.getLogger(__name__)


def extract_token(environ: dict[str, Any], auth: Any) -> str | None:
    """Read the bearer token from the handshake auth payload or the Authorization header."""
    if isinstance(auth, dict) and auth.get("token"):
        return str(auth["token"])
    header = environ.get("HTTP_AUTHORIZATION", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


class SocketGateway:
    """Binds socket.io events to the application services."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        *,
        connections: ConnectionRegistry,
        identity_verifier: IdentityVerifier,
        rooms: RoomApplicationService,
        playback: PlaybackApplicationService,
        publisher: SyncPublisher,
        grace_period_seconds: float = 300.0,
        clock: Clock = now_ms,
    ) -> None:
        self._sio = sio
        self._connections = connections
        self._verifier = identity_verifier
        self._rooms = rooms
        self._playback = playback
        self._publisher = publisher
        self._grace_period = grace_period_seconds
        self._clock = clock

    def register(self) -> None:
        self._sio.on("connect", self.on_connect)
        self._sio.on("disconnect", self.on_disconnect)
        self._sio.on("heartbeat", self.on_heartbeat)
        self._sio.on("requestSync", self.on_request_sync)
        self._sio.on("clientEvent", self.on_client_event)

    # ── Connection lifecycle ────────────────────────────────────────

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        token = extract_token(environ, auth)
        if not token:
            logger.info(LogTemplates.SOCKET_REJECTED, sid, ErrorMessages.TOKEN_MISSING)
            raise ConnectionRefusedError(f"Authentication error: {ErrorMessages.TOKEN_MISSING}")
        try:
            identity = await self._verifier.verify(token)
        except (AuthenticationError, DependencyUnavailableError) as e:
            logger.info(LogTemplates.SOCKET_REJECTED, sid, e.message)
            raise ConnectionRefusedError(f"Authentication error: {e.message}") from e

        self._connections.bind(sid, identity)
        self._connections.cancel_grace_timer(identity.id)
        logger.info(LogTemplates.SOCKET_CONNECTED, sid, identity.id)

        for room in self._rooms.rooms_for_user(identity.id):
            await self._sio.enter_room(sid, room.id)
            await self._publisher.room_joined(sid, room)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        identity = self._connections.unbind(sid)
        logger.info(LogTemplates.SOCKET_DISCONNECTED, sid, identity.id if identity else None)
        if identity is not None and not self._connections.is_connected(identity.id):
            self._connections.start_grace_timer(identity.id, self._grace_period, self._expire_user)

    async def _expire_user(self, user_id: str) -> None:
        left = await self._rooms.leave_all(user_id)
        logger.info(LogTemplates.GRACE_TIMER_EXPIRED, user_id, left)

    # ── Client events ───────────────────────────────────────────────

    async def on_heartbeat(self, sid: str, data: Any = None) -> dict[str, Any]:
        identity = self._connections.user_for(sid)
        if identity is not None:
            self._connections.cancel_grace_timer(identity.id)
        heartbeat = Heartbeat.model_validate(data) if isinstance(data, dict) else Heartbeat()
        return {"ok": identity is not None, "clientTime": heartbeat.client_time}

    async def on_request_sync(self, sid: str, data: Any = None) -> None:
        try:
            request = RequestSync.model_validate(data)
        except PydanticValidationError as e:
            logger.warning(LogTemplates.SOCKET_MALFORMED_EVENT, "requestSync", sid, e.error_count())
            return

        room = self._rooms.find(request.room_id)
        if room is None:
            return

        logger.debug(LogTemplates.SYNC_REQUESTED, request.room_id, sid)
        extra: dict[str, Any] = {"client_last_sync": request.last_sync_time}
        if request.client_time is not None:
            extra["client_time"] = request.client_time
            extra["time_offset"] = room.now - request.client_time
        await self._publisher.playback_sync_to_socket(sid, room, **extra)

    async def on_client_event(self, sid: str, data: Any = None) -> dict[str, Any]:
        """Handle a typed client event; the return value is the socket.io acknowledgement."""
        try:
            event = parse_client_event(data)
        except (ValidationError, PydanticValidationError) as e:
            logger.warning(LogTemplates.SOCKET_MALFORMED_EVENT, "clientEvent", sid, e)
            return {"success": False, "error": "malformed event"}

        identity = self._connections.user_for(sid)
        if identity is None:
            return {"success": False, "error": ErrorMessages.TOKEN_INVALID}

        if not isinstance(event, TrackEnded):
            return {"success": False, "error": "unsupported event"}

        room = self._rooms.find(event.room_id)
        if room is not None and not room.has_participant(identity.id):
            logger.info(LogTemplates.SOCKET_EVENT_FORBIDDEN, event.type, sid, event.room_id)
            return {"success": False, "error": ErrorMessages.NOT_A_PARTICIPANT}

        try:
            outcome = await self._playback.handle_track_ended(
                event.room_id, event.song_id, identity.id, sid=sid
            )
        except Exception:
            logger.exception(LogTemplates.SOCKET_EVENT_FAILED, event.type, sid)
            room = self._rooms.find(event.room_id)
            if room is not None:
                await self._publisher.playback_sync_to_socket(sid, room, error_recovery=True)
            return {"success": False, "error": "processing failed"}

        ack = EventProcessed(
            type=event.type,
            song_id=event.song_id,
            processed=True,
            outcome=outcome.value,
            timestamp=self._clock(),
        )
        await self._publisher.event_processed(sid, ack)
        return {"success": True, "outcome": outcome.value}
