"""Realtime adapters built on python-socketio."""

from listen_together.infrastructure.realtime.connections import ConnectionRegistry
from listen_together.infrastructure.realtime.gateway import SocketGateway
from listen_together.infrastructure.realtime.socketio_broadcaster import SocketIOBroadcaster

__all__ = ["ConnectionRegistry", "SocketGateway", "SocketIOBroadcaster"]
