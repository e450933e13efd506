"""
Room Bounded Context

The authoritative per-room playback timeline, its queue and skip votes.
"""

from listen_together.domain.room.entities import (
    Participant,
    Room,
    RoomState,
    SkipVoteResult,
    Track,
    Transition,
)
from listen_together.domain.room.registry import RoomRegistry
from listen_together.domain.room.services import QueueRules, VotingRules
from listen_together.domain.room.value_objects import (
    QueueEndPolicy,
    QueueProcessingStatus,
    SkipVoteOutcome,
    SyncAction,
    TrackEndedOutcome,
)

__all__ = [
    # Entities
    "Track",
    "Participant",
    "Room",
    "RoomState",
    "Transition",
    "SkipVoteResult",
    # Value Objects
    "SyncAction",
    "QueueEndPolicy",
    "SkipVoteOutcome",
    "TrackEndedOutcome",
    "QueueProcessingStatus",
    # Services
    "VotingRules",
    "QueueRules",
    # Registry
    "RoomRegistry",
]
