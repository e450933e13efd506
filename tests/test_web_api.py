"""
Integration Tests for the HTTP API

Drives the FastAPI app through TestClient with a container whose identity
verifier, stream resolver and broadcaster are fakes.
"""

from unittest.mock import AsyncMock

import pytest
from conftest import FakeIdentityVerifier, FakeStreamResolver, RecordingBroadcaster, make_track
from fastapi.testclient import TestClient

from listen_together.application.interfaces.identity_verifier import Identity
from listen_together.config.container import create_container
from listen_together.config.settings import Settings
from listen_together.domain.shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolationError,
    DependencyUnavailableError,
    DomainError,
    EntityNotFoundError,
    InvalidOperationError,
    ValidationError,
)
from listen_together.domain.shared.messages import ErrorMessages
from listen_together.infrastructure.web.app import create_api
from listen_together.infrastructure.web.errors import status_for

ALICE = {"Authorization": "Bearer token-alice"}
BOB = {"Authorization": "Bearer token-bob"}


@pytest.fixture
def container(clock):
    return create_container(
        Settings(),
        clock=clock,
        _broadcaster=RecordingBroadcaster(),
        _identity_verifier=FakeIdentityVerifier(
            Identity(id="alice", name="Alice"), Identity(id="bob", name="Bob")
        ),
        _stream_resolver=FakeStreamResolver(),
    )


@pytest.fixture
def client(container):
    with TestClient(create_api(container)) as client:
        yield client


@pytest.fixture
def joined(client):
    """alice has joined room-1."""
    assert client.post("/rooms/room-1/join", headers=ALICE).status_code == 200
    return client


@pytest.fixture
def playing(joined, container):
    """room-1 has song-1 playing and song-2 queued (no known durations)."""
    room = container.registry.get("room-1")
    room.add_to_queue(make_track("song-1", duration=None))
    room.add_to_queue(make_track("song-2", duration=None))
    return joined


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/queue/room-1")

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert response.headers["www-authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        response = client.post("/rooms/room-1/join", headers={"Authorization": "Bearer forged"})

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_ERROR"

    def test_identity_service_down(self, client, container):
        container.identity_verifier.verify = AsyncMock(
            side_effect=DependencyUnavailableError("identity", ErrorMessages.IDENTITY_UNAVAILABLE)
        )

        response = client.post("/rooms/room-1/join", headers=ALICE)

        assert response.status_code == 503
        assert response.json()["code"] == "DEPENDENCY_UNAVAILABLE"
        assert "www-authenticate" not in response.headers


class TestRooms:
    """Room endpoints."""

    def test_join(self, client):
        response = client.post(
            "/rooms/room-1/join",
            headers=ALICE,
            json={"user": {"id": "alice", "global_name": "Ally"}},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Successfully joined room"
        assert body["room"]["id"] == "room-1"
        assert body["room"]["participants"][0]["name"] == "Ally"
        assert body["room"]["currentSong"] is None

    def test_snapshot(self, joined):
        response = joined.get("/rooms/room-1", headers=BOB)

        assert response.status_code == 200
        assert set(response.json()) >= {"queue", "isPlaying", "serverTime", "playbackHistory"}

    def test_unknown_room(self, client):
        assert client.get("/rooms/nope", headers=ALICE).status_code == 404

    def test_participants(self, joined):
        joined.post("/rooms/room-1/join", headers=BOB)

        response = joined.get("/rooms/room-1/participants", headers=ALICE)

        assert [p["id"] for p in response.json()] == ["alice", "bob"]
        assert "songsAdded" in response.json()[0]

    def test_leave_destroys_empty_room(self, joined, container):
        response = joined.post("/rooms/room-1/leave", headers=ALICE)

        assert response.status_code == 200
        assert "room-1" not in container.registry


class TestQueue:
    """Queue endpoints."""

    def test_add_is_accepted(self, joined):
        response = joined.post("/queue/room-1/add", headers=ALICE, json={"song": {"id": "abc"}})

        assert response.status_code == 202
        assert response.json() == {
            "success": True,
            "message": "Processing song request",
            "songId": "abc",
            "status": "processing",
        }

    def test_add_without_song(self, joined):
        response = joined.post("/queue/room-1/add", headers=ALICE, json={})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_add_by_non_member(self, joined):
        response = joined.post("/queue/room-1/add", headers=BOB, json={"song": {"id": "abc"}})

        assert response.status_code == 403

    def test_add_duplicate(self, playing):
        response = playing.post("/queue/room-1/add", headers=ALICE, json={"song": {"id": "song-2"}})

        assert response.status_code == 409

    def test_add_over_limit(self, joined, container):
        room = container.registry.get("room-1")
        room.add_to_queue(make_track("current", duration=None))
        for i in range(container.settings.queue.per_user_limit):
            room.add_to_queue(make_track(f"t{i}", duration=None, added_by="alice"))

        response = joined.post("/queue/room-1/add", headers=ALICE, json={"song": {"id": "one-more"}})

        assert response.status_code == 429

    def test_get_queue(self, playing):
        body = playing.get("/queue/room-1", headers=ALICE).json()

        assert [t["id"] for t in body["queue"]] == ["song-2"]
        assert body["currentSong"]["id"] == "song-1"

    def test_reorder_out_of_range(self, playing):
        response = playing.post(
            "/queue/room-1/reorder", headers=ALICE, json={"fromIndex": 0, "toIndex": 5}
        )

        assert response.status_code == 400

    def test_remove_and_clear(self, playing):
        assert playing.delete("/queue/room-1/song-2", headers=ALICE).json()["queue"] == []
        assert playing.delete("/queue/room-1/song-2", headers=ALICE).status_code == 404
        assert playing.delete("/queue/room-1", headers=ALICE).status_code == 200

    def test_shuffle(self, playing, container):
        response = playing.post("/queue/room-1/shuffle", headers=ALICE)

        assert response.status_code == 200
        assert container.broadcaster.names()[-1] == "queueUpdate"


class TestPlayback:
    """Playback endpoints."""

    def test_pause_and_play(self, playing):
        paused = playing.post("/playback/room-1/pause", headers=ALICE).json()
        resumed = playing.post("/playback/room-1/play", headers=ALICE).json()

        assert paused["isPlaying"] is False
        assert resumed["isPlaying"] is True

    def test_toggle(self, playing):
        assert playing.post("/playback/room-1/toggle", headers=ALICE).json()["isPlaying"] is False

    def test_toggle_without_song(self, joined):
        assert joined.post("/playback/room-1/toggle", headers=ALICE).status_code == 400

    def test_seek(self, playing, clock):
        body = playing.post("/playback/room-1/seek", headers=ALICE, json={"position": 42}).json()

        assert body["currentPosition"] == pytest.approx(42.0)

    def test_seek_negative(self, playing):
        response = playing.post("/playback/room-1/seek", headers=ALICE, json={"position": -3})

        assert response.status_code == 400

    def test_next_previous(self, playing):
        after_next = playing.post("/playback/room-1/next", headers=ALICE).json()
        after_previous = playing.post("/playback/room-1/previous", headers=ALICE).json()

        assert after_next["currentSong"]["id"] == "song-2"
        assert after_previous["currentSong"]["id"] == "song-1"

    def test_skip_lone_listener(self, playing):
        body = playing.post("/playback/room-1/skip", headers=ALICE).json()

        assert body["skipped"] is True

    def test_play_specific_song(self, playing):
        response = playing.post("/playback/room-1/songs/song-2/play", headers=ALICE)

        assert response.json()["currentSong"]["id"] == "song-2"

    def test_non_member(self, playing):
        assert playing.post("/playback/room-1/pause", headers=BOB).status_code == 403


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "rooms": 0}


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (ValidationError("bad"), 400),
            (InvalidOperationError("seek", "empty"), 400),
            (AuthenticationError("no"), 401),
            (AuthorizationError("r", "u"), 403),
            (EntityNotFoundError("Room", "r"), 404),
            (BusinessRuleViolationError("DUPLICATE_SONG"), 409),
            (BusinessRuleViolationError("USER_QUEUE_LIMIT"), 429),
            (DependencyUnavailableError("identity"), 503),
            (DomainError("unexpected"), 500),
        ],
    )
    def test_status_for(self, error, status):
        assert status_for(error) == status
