"""Listener-side playback reconciliation and the realtime room client."""

from listen_together.client.reconciler import MediaElement, PlaybackReconciler, SyncOutcome
from listen_together.client.room_client import EventNotAcknowledgedError, RoomClient

__all__ = [
    "EventNotAcknowledgedError",
    "MediaElement",
    "PlaybackReconciler",
    "RoomClient",
    "SyncOutcome",
]
