"""
Sync Bounded Context

The vocabulary of realtime events that keeps clients on one timeline.
"""

from listen_together.domain.sync.events import (
    EventProcessed,
    Heartbeat,
    ParticipantsUpdate,
    PlaybackEnded,
    PlaybackSync,
    QueueProcessing,
    QueueUpdate,
    RequestSync,
    RoomJoined,
    ServerEvent,
    SkipVoteUpdate,
    TrackChange,
    TrackEnded,
    parse_client_event,
)

__all__ = [
    # Server events
    "ServerEvent",
    "PlaybackSync",
    "QueueUpdate",
    "ParticipantsUpdate",
    "TrackChange",
    "PlaybackEnded",
    "SkipVoteUpdate",
    "RoomJoined",
    "QueueProcessing",
    "EventProcessed",
    # Client events
    "Heartbeat",
    "RequestSync",
    "TrackEnded",
    "parse_client_event",
]
