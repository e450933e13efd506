"""
Application Services

Orchestrate room state changes and the broadcasts that follow them.
"""

from listen_together.application.services.playback_service import PlaybackApplicationService
from listen_together.application.services.queue_coordinator import QueueCoordinator
from listen_together.application.services.room_service import RoomApplicationService
from listen_together.application.services.sync_publisher import SyncPublisher

__all__ = [
    "SyncPublisher",
    "PlaybackApplicationService",
    "QueueCoordinator",
    "RoomApplicationService",
]
