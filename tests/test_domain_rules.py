"""
Unit Tests for Room Rules and Value Objects

Tests for:
- VotingRules: majority threshold
- QueueRules: per-user limit and duplicate detection
- SkipVoteOutcome / TrackEndedOutcome helpers
"""

import pytest
from conftest import make_track

from listen_together.domain.room.services import QueueRules, VotingRules
from listen_together.domain.room.value_objects import SkipVoteOutcome, TrackEndedOutcome


class TestVotingRules:
    """Unit tests for the skip threshold."""

    @pytest.mark.parametrize(
        ("participants", "needed"),
        [(0, 1), (1, 1), (2, 1), (3, 2), (4, 2), (5, 3), (10, 5)],
    )
    def test_threshold(self, participants, needed):
        assert VotingRules.calculate_threshold(participants) == needed

    def test_lone_listener_always_passes(self):
        assert VotingRules.threshold_met(1, 1) is True

    def test_below_threshold(self):
        assert VotingRules.threshold_met(1, 3) is False
        assert VotingRules.threshold_met(2, 3) is True


class TestQueueRules:
    """Unit tests for queue admission."""

    def test_count_by_requester(self):
        queue = [
            make_track("a", added_by="alice"),
            make_track("b", added_by="bob"),
            make_track("c", added_by="alice"),
        ]

        assert QueueRules.count_by_requester(queue, "alice") == 2
        assert QueueRules.exceeds_user_limit(queue, "alice", limit=2) is True
        assert QueueRules.exceeds_user_limit(queue, "bob", limit=2) is False

    def test_duplicate_in_queue(self):
        queue = [make_track("a")]

        assert QueueRules.is_duplicate(queue, None, "a") is True
        assert QueueRules.is_duplicate(queue, None, "b") is False

    def test_requeueing_current_track_allowed(self):
        current = make_track("a")

        assert QueueRules.is_duplicate([make_track("a")], current, "a") is False


class TestOutcomes:
    """Unit tests for outcome enums."""

    def test_skip_messages(self):
        assert SkipVoteOutcome.VOTE_RECORDED.get_message(1, 2) == "Skip vote added (1/2)"
        assert SkipVoteOutcome.SKIPPED.get_message() == "Song skipped"
        assert SkipVoteOutcome.ALREADY_VOTED.get_message() == "Already voted to skip"
        assert SkipVoteOutcome.NO_MORE_SONGS.get_message() == "No more songs in queue"

    def test_skip_flags(self):
        assert SkipVoteOutcome.SKIPPED.action_executed is True
        assert SkipVoteOutcome.VOTE_RECORDED.action_executed is False
        assert SkipVoteOutcome.NO_SONG_PLAYING.is_success is False

    def test_track_ended_advanced(self):
        assert TrackEndedOutcome.ADVANCED.advanced is True
        assert TrackEndedOutcome.DUPLICATE.advanced is False
        assert TrackEndedOutcome.MISMATCH.advanced is False
