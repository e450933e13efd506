"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the registry, services and adapters.
Components are created on demand and cached for reuse; tests replace the
external adapters by passing them in before first access.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    import socketio

    from ..application.interfaces.broadcaster import Broadcaster
    from ..application.interfaces.identity_verifier import IdentityVerifier
    from ..application.interfaces.stream_resolver import StreamResolver
    from ..application.services.playback_service import PlaybackApplicationService
    from ..application.services.queue_coordinator import QueueCoordinator
    from ..application.services.room_service import RoomApplicationService
    from ..application.services.sync_publisher import SyncPublisher
    from ..domain.room.registry import RoomRegistry
    from ..domain.shared.datetime_utils import Clock
    from ..infrastructure.realtime.connections import ConnectionRegistry
    from ..infrastructure.realtime.gateway import SocketGateway
    from ..utils.retry import RetryPolicy
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    This container manages all application dependencies and their lifecycle.
    Components are lazily initialized when first accessed.
    """

    settings: Settings
    clock: Clock | None = None

    # Shared state
    _registry: RoomRegistry | None = None
    _connections: ConnectionRegistry | None = None

    # Infrastructure adapters
    _sio: socketio.AsyncServer | None = None
    _broadcaster: Broadcaster | None = None
    _identity_verifier: IdentityVerifier | None = None
    _stream_resolver: StreamResolver | None = None
    _gateway: SocketGateway | None = None

    # Application services
    _publisher: SyncPublisher | None = None
    _room_service: RoomApplicationService | None = None
    _playback_service: PlaybackApplicationService | None = None
    _queue_coordinator: QueueCoordinator | None = None

    # === Shared State ===

    @property
    def registry(self) -> RoomRegistry:
        """Get the process-wide room registry."""
        if self._registry is None:
            from ..domain.room.registry import RoomRegistry

            self._registry = RoomRegistry(clock=self.clock)
        return self._registry

    @property
    def connections(self) -> ConnectionRegistry:
        """Get the socket connection registry."""
        if self._connections is None:
            from ..infrastructure.realtime.connections import ConnectionRegistry

            self._connections = ConnectionRegistry()
        return self._connections

    # === Infrastructure Adapters ===

    @property
    def sio(self) -> socketio.AsyncServer:
        """Get the socket.io server."""
        if self._sio is None:
            import socketio

            origins = list(self.settings.server.cors_origins)
            self._sio = socketio.AsyncServer(
                async_mode="asgi",
                cors_allowed_origins="*" if origins == ["*"] else origins,
            )
        return self._sio

    @property
    def broadcaster(self) -> Broadcaster:
        """Get the realtime broadcaster."""
        if self._broadcaster is None:
            from ..infrastructure.realtime.socketio_broadcaster import SocketIOBroadcaster

            self._broadcaster = SocketIOBroadcaster(self.sio, self.connections)
        return self._broadcaster

    @property
    def identity_verifier(self) -> IdentityVerifier:
        """Get the bearer-token verifier."""
        if self._identity_verifier is None:
            from ..infrastructure.auth.http_identity_verifier import HttpIdentityVerifier

            self._identity_verifier = HttpIdentityVerifier(self.settings.auth)
        return self._identity_verifier

    @property
    def stream_resolver(self) -> StreamResolver:
        """Get the stream resolver."""
        if self._stream_resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpStreamResolver

            self._stream_resolver = YtDlpStreamResolver(self.settings.resolver)
        return self._stream_resolver

    @property
    def gateway(self) -> SocketGateway:
        """Get the socket gateway with its handlers registered."""
        if self._gateway is None:
            from ..infrastructure.realtime.gateway import SocketGateway

            self._gateway = SocketGateway(
                self.sio,
                connections=self.connections,
                identity_verifier=self.identity_verifier,
                rooms=self.room_service,
                playback=self.playback_service,
                publisher=self.publisher,
                grace_period_seconds=self.settings.presence.grace_period_seconds,
            )
            self._gateway.register()
        return self._gateway

    # === Application Services ===

    @property
    def publisher(self) -> SyncPublisher:
        """Get the sync publisher and bind it as every room's auto-next listener."""
        if self._publisher is None:
            from ..application.services.sync_publisher import SyncPublisher

            self._publisher = SyncPublisher(self.broadcaster)
            self.registry.set_auto_next_listener(self._publisher.automatic_transition)
        return self._publisher

    @property
    def room_service(self) -> RoomApplicationService:
        """Get the room application service."""
        if self._room_service is None:
            from ..application.services.room_service import RoomApplicationService

            self._room_service = RoomApplicationService(
                registry=self.registry, publisher=self.publisher
            )
        return self._room_service

    @property
    def playback_service(self) -> PlaybackApplicationService:
        """Get the playback application service."""
        if self._playback_service is None:
            from ..application.services.playback_service import PlaybackApplicationService

            self._playback_service = PlaybackApplicationService(
                registry=self.registry,
                publisher=self.publisher,
                track_ended_dedup_seconds=self.settings.playback.track_ended_dedup_seconds,
            )
        return self._playback_service

    @property
    def retry_policy(self) -> RetryPolicy:
        from ..utils.retry import RetryPolicy

        queue = self.settings.queue
        return RetryPolicy(
            max_attempts=queue.resolve_max_attempts,
            base_delay=queue.resolve_base_delay_seconds,
            timeout=queue.resolve_timeout_seconds,
        )

    @property
    def queue_coordinator(self) -> QueueCoordinator:
        """Get the queue coordinator."""
        if self._queue_coordinator is None:
            from ..application.services.queue_coordinator import QueueCoordinator

            self._queue_coordinator = QueueCoordinator(
                registry=self.registry,
                publisher=self.publisher,
                resolver=self.stream_resolver,
                retry_policy=self.retry_policy,
                per_user_limit=self.settings.queue.per_user_limit,
            )
        return self._queue_coordinator

    # === Lifecycle ===

    def initialize(self) -> None:
        """Wire the components that must exist before the first request."""
        _ = self.publisher
        _ = self.gateway

    async def shutdown(self) -> None:
        """Cancel background work and release network resources."""
        if self._queue_coordinator is not None:
            await self._queue_coordinator.close()
        if self._connections is not None:
            self._connections.close()
        if self._registry is not None:
            self._registry.close()

        close = getattr(self._identity_verifier, "close", None)
        if close is not None:
            try:
                await close()
            except Exception as exc:
                logger.warning("Failed closing identity verifier: %r", exc)


def create_container(settings: Settings, **overrides: object) -> Container:
    """Create a new dependency injection container.

    Keyword overrides pre-populate components, e.g.
    ``create_container(settings, _stream_resolver=FakeResolver())``.
    """
    return Container(settings, **overrides)  # type: ignore[arg-type]
