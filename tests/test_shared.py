"""
Tests for the shared domain kernel

Covers the clock helpers and the exception hierarchy.
"""

import time

import pytest

from listen_together.domain.shared.datetime_utils import (
    ManualClock,
    ms_to_seconds,
    now_ms,
    seconds_to_ms,
)
from listen_together.domain.shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolationError,
    DomainError,
    EntityNotFoundError,
    InvalidOperationError,
    StreamResolutionError,
    ValidationError,
)


class TestClockHelpers:
    """Tests for millisecond clock helpers."""

    def test_now_ms_tracks_wall_clock(self):
        """Should be within a second of time.time()."""
        assert abs(now_ms() - time.time() * 1000.0) < 1000.0

    def test_conversions(self):
        assert ms_to_seconds(1500.0) == 1.5
        assert seconds_to_ms(2.25) == 2250.0

    def test_manual_clock(self):
        """Should only move when told to."""
        clock = ManualClock(start_ms=1000.0)

        assert clock() == 1000.0
        assert clock.advance(1.5) == 2500.0
        assert clock() == 2500.0
        clock.set(10.0)
        assert clock() == 10.0


class TestExceptions:
    """Tests for domain exception construction."""

    def test_domain_error_defaults_code_to_class_name(self):
        error = DomainError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.code == "DomainError"

    def test_validation_error_field(self):
        error = ValidationError("bad index", field="toIndex")

        assert error.code == "VALIDATION_ERROR"
        assert error.field == "toIndex"

    def test_authorization_error_default_message(self):
        error = AuthorizationError("r1", "u1")

        assert error.message == "User 'u1' is not a participant of room 'r1'"
        assert (error.room_id, error.user_id) == ("r1", "u1")

    def test_not_found_default_message(self):
        error = EntityNotFoundError("Room", "r1")

        assert error.message == "Room with id 'r1' not found"
        assert error.code == "ENTITY_NOT_FOUND"

    def test_business_rule(self):
        error = BusinessRuleViolationError("USER_QUEUE_LIMIT")

        assert error.rule == "USER_QUEUE_LIMIT"
        assert "USER_QUEUE_LIMIT" in error.message

    def test_invalid_operation(self):
        error = InvalidOperationError("seek", "empty")

        assert error.message == "Cannot perform 'seek' in state 'empty'"

    def test_stream_resolution_default_message(self):
        error = StreamResolutionError("abc")

        assert error.track_id == "abc"
        assert error.code == "STREAM_RESOLUTION_ERROR"

    @pytest.mark.parametrize(
        "error",
        [
            AuthenticationError("no"),
            AuthorizationError("r", "u"),
            EntityNotFoundError("Song", "s"),
            StreamResolutionError("t"),
        ],
    )
    def test_all_are_domain_errors(self, error):
        assert isinstance(error, DomainError)
