"""
Unit Tests for PlaybackApplicationService

Tests for:
- Membership and lookup errors
- Transport commands and their broadcasts
- next / previous / play_song / skip
- Client-reported end of track (dedup, mismatch, recovery)
"""

import pytest
from conftest import make_participant, make_track

from listen_together.application.services.playback_service import PlaybackApplicationService
from listen_together.domain.room.value_objects import TrackEndedOutcome
from listen_together.domain.shared.exceptions import (
    AuthorizationError,
    EntityNotFoundError,
    InvalidOperationError,
    ValidationError,
)


@pytest.fixture
def service(registry, publisher):
    return PlaybackApplicationService(registry=registry, publisher=publisher)


@pytest.fixture
def room(registry):
    """Room with alice, bob and carol; song-1 playing, song-2 queued."""
    room = registry.get_or_create("room-1")
    for user_id in ("alice", "bob", "carol"):
        room.add_participant(make_participant(user_id))
    room.add_to_queue(make_track("song-1", duration=200.0))
    room.add_to_queue(make_track("song-2", duration=200.0))
    return room


class TestAccess:
    """Lookup and membership checks."""

    @pytest.mark.asyncio
    async def test_unknown_room(self, service):
        with pytest.raises(EntityNotFoundError):
            await service.pause("missing", "alice")

    @pytest.mark.asyncio
    async def test_non_member_rejected(self, service, room, broadcaster):
        with pytest.raises(AuthorizationError):
            await service.pause("room-1", "mallory")

        assert room.is_playing is True
        assert broadcaster.emitted == []

    @pytest.mark.asyncio
    async def test_no_song_loaded(self, service, registry):
        registry.get_or_create("empty").add_participant(make_participant("alice"))

        with pytest.raises(InvalidOperationError):
            await service.toggle("empty", "alice")


class TestTransport:
    """Pause, play, toggle and seek."""

    @pytest.mark.asyncio
    async def test_pause_broadcasts_exact_position(self, service, room, clock, broadcaster):
        clock.advance(30)

        status = await service.pause("room-1", "alice")

        assert status.is_playing is False
        assert status.current_position == pytest.approx(30.0)
        [sync] = broadcaster.events("playbackSync")
        assert sync.action.value == "pause"
        assert sync.current_position == pytest.approx(30.0)
        assert broadcaster.targets("playbackSync") == [("room", "room-1")]

    @pytest.mark.asyncio
    async def test_pause_twice(self, service, room, broadcaster):
        await service.pause("room-1", "alice")
        broadcaster.clear()

        status = await service.pause("room-1", "alice")

        assert status.message == "Already paused"
        assert broadcaster.emitted == []

    @pytest.mark.asyncio
    async def test_play_resumes(self, service, room, broadcaster):
        await service.pause("room-1", "alice")

        status = await service.play("room-1", "bob")

        assert status.is_playing is True
        assert broadcaster.events("playbackSync")[-1].action.value == "play"

    @pytest.mark.asyncio
    async def test_play_when_playing(self, service, room):
        status = await service.play("room-1", "alice")

        assert status.message == "Already playing"

    @pytest.mark.asyncio
    async def test_toggle(self, service, room):
        assert (await service.toggle("room-1", "alice")).is_playing is False
        assert (await service.toggle("room-1", "alice")).is_playing is True

    @pytest.mark.asyncio
    async def test_seek(self, service, room, broadcaster):
        status = await service.seek("room-1", "alice", 120.0)

        assert status.current_position == pytest.approx(120.0)
        [sync] = broadcaster.events("playbackSync")
        assert sync.action.value == "seek"
        assert sync.current_position == 120.0

    @pytest.mark.asyncio
    async def test_seek_out_of_range(self, service, room, broadcaster):
        with pytest.raises(ValidationError):
            await service.seek("room-1", "alice", 500.0)

        assert room.get_current_playback_time() == 0.0
        assert broadcaster.emitted == []


class TestTransitions:
    """next, previous and play_song."""

    @pytest.mark.asyncio
    async def test_next(self, service, room, broadcaster):
        status = await service.next("room-1", "alice")

        assert status.current_song.id == "song-2"
        assert status.queue == []
        assert broadcaster.names() == ["playbackSync", "trackChange", "queueUpdate"]
        [change] = broadcaster.events("trackChange")
        assert (change.previous_song_id, change.new_song_id) == ("song-1", "song-2")

    @pytest.mark.asyncio
    async def test_next_on_last_song_ends_playback(self, service, room, broadcaster):
        await service.next("room-1", "alice")
        broadcaster.clear()

        status = await service.next("room-1", "alice")

        assert status.current_song is None
        assert status.is_playing is False
        assert broadcaster.names() == ["playbackEnded", "playbackSync"]
        assert broadcaster.events("playbackSync")[0].no_more_songs is True

    @pytest.mark.asyncio
    async def test_previous(self, service, room, broadcaster):
        await service.next("room-1", "alice")
        broadcaster.clear()

        status = await service.previous("room-1", "alice")

        assert status.current_song.id == "song-1"
        assert [t.id for t in status.queue] == ["song-2"]
        assert broadcaster.names() == ["playbackSync", "trackChange", "queueUpdate"]

    @pytest.mark.asyncio
    async def test_previous_without_history(self, service, room):
        with pytest.raises(InvalidOperationError):
            await service.previous("room-1", "alice")

    @pytest.mark.asyncio
    async def test_play_song(self, service, room):
        status = await service.play_song("room-1", "alice", "song-2")

        assert status.current_song.id == "song-2"

    @pytest.mark.asyncio
    async def test_play_unknown_song(self, service, room):
        with pytest.raises(EntityNotFoundError):
            await service.play_song("room-1", "alice", "nope")


class TestSkip:
    """Skip votes through the service."""

    @pytest.mark.asyncio
    async def test_first_vote_broadcasts_tally(self, service, room, broadcaster):
        response = await service.skip("room-1", "alice")

        assert response.success is True
        assert response.skipped is False
        assert (response.current_votes, response.votes_needed) == (1, 2)
        [update] = broadcaster.events("skipVoteUpdate")
        assert (update.current_votes, update.votes_needed) == (1, 2)

    @pytest.mark.asyncio
    async def test_majority_skips(self, service, room, broadcaster):
        await service.skip("room-1", "alice")

        response = await service.skip("room-1", "bob")

        assert response.skipped is True
        assert room.current_song.id == "song-2"
        [change] = broadcaster.events("trackChange")
        assert change.skipped is True
        assert change.voted_by == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_repeat_vote(self, service, room):
        await service.skip("room-1", "alice")

        response = await service.skip("room-1", "alice")

        assert response.success is False
        assert response.message == "Already voted to skip"


class TestTrackEnded:
    """Client-reported end of track."""

    @pytest.mark.asyncio
    async def test_matching_report_advances(self, service, room, broadcaster):
        outcome = await service.handle_track_ended("room-1", "song-1", "alice", sid="sid-a")

        assert outcome is TrackEndedOutcome.ADVANCED
        assert room.current_song.id == "song-2"
        [change] = broadcaster.events("trackChange")
        assert change.automatic is True
        assert change.client_reported is True
        assert broadcaster.events("playbackSync")[0].end_triggered_by == "alice"

    @pytest.mark.asyncio
    async def test_duplicate_reports_advance_once(self, service, room, broadcaster):
        first = await service.handle_track_ended("room-1", "song-1", "alice")
        second = await service.handle_track_ended("room-1", "song-1", "bob")

        assert first is TrackEndedOutcome.ADVANCED
        assert second is TrackEndedOutcome.DUPLICATE
        assert len(broadcaster.events("trackChange")) == 1
        assert room.current_song.id == "song-2"

    @pytest.mark.asyncio
    async def test_duplicate_window_expires(self, service, room, clock):
        await service.handle_track_ended("room-1", "song-1", "alice")
        clock.advance(6)

        outcome = await service.handle_track_ended("room-1", "song-1", "bob")

        assert outcome is TrackEndedOutcome.MISMATCH

    @pytest.mark.asyncio
    async def test_mismatch_sends_corrective_sync(self, service, room, broadcaster):
        outcome = await service.handle_track_ended("room-1", "old-song", "alice", sid="sid-a")

        assert outcome is TrackEndedOutcome.MISMATCH
        assert room.current_song.id == "song-1"
        assert broadcaster.targets("playbackSync") == [("socket", "sid-a")]
        [sync] = broadcaster.events("playbackSync")
        assert sync.forced_sync is True
        assert sync.mismatch_song_id == "old-song"

    @pytest.mark.asyncio
    async def test_last_track_ends_playback(self, service, room, broadcaster):
        await service.next("room-1", "alice")
        broadcaster.clear()

        outcome = await service.handle_track_ended("room-1", "song-2", "alice")

        assert outcome is TrackEndedOutcome.QUEUE_ENDED
        assert room.current_song is None
        assert broadcaster.names()[0] == "playbackEnded"

    @pytest.mark.asyncio
    async def test_recovers_stalled_room(self, service, room):
        room.stop_and_clear()
        assert room.queue

        outcome = await service.handle_track_ended("room-1", "song-1", "alice")

        assert outcome is TrackEndedOutcome.RECOVERED
        assert room.current_song.id == "song-2"

    @pytest.mark.asyncio
    async def test_unknown_room_ignored(self, service):
        assert await service.handle_track_ended("nope", "song-1", "alice") is TrackEndedOutcome.IGNORED
