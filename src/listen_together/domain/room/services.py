"""
Room Domain Services

Stateless business rules for skip voting and queue admission.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from listen_together.domain.room.entities import Track


class VotingRules:
    """Skip-vote threshold rules."""

    MINIMUM_THRESHOLD = 1

    @classmethod
    def calculate_threshold(cls, participant_count: int) -> int:
        """Calculate the votes required to skip.

        A simple majority: half of the participants, rounded up. A lone
        participant skips on their own vote.

        Args:
            participant_count: Number of participants in the room.

        Returns:
            The number of votes required to pass.
        """
        if participant_count <= 0:
            return cls.MINIMUM_THRESHOLD
        return max(cls.MINIMUM_THRESHOLD, math.ceil(participant_count / 2))

    @classmethod
    def threshold_met(cls, votes: int, participant_count: int) -> bool:
        return votes >= cls.calculate_threshold(participant_count) or participant_count == 1


class QueueRules:
    """Admission rules for tracks entering a room's queue."""

    DEFAULT_PER_USER_LIMIT = 20

    @staticmethod
    def count_by_requester(queue: Iterable[Track], user_id: str) -> int:
        return sum(1 for track in queue if track.added_by == user_id)

    @classmethod
    def exceeds_user_limit(
        cls, queue: Iterable[Track], user_id: str, limit: int = DEFAULT_PER_USER_LIMIT
    ) -> bool:
        """Check whether the user already has ``limit`` tracks waiting."""
        return cls.count_by_requester(queue, user_id) >= limit

    @staticmethod
    def is_duplicate(queue: Iterable[Track], current: Track | None, track_id: str) -> bool:
        """Check whether a track id is already waiting in the queue.

        Re-queueing the track that is currently playing is allowed, so a
        queued copy of the current track does not count as a duplicate.
        """
        if current is not None and current.id == track_id:
            return False
        return any(track.id == track_id for track in queue)
