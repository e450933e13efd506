import pytest

from listen_together.application.interfaces.broadcaster import Broadcaster
from listen_together.application.interfaces.identity_verifier import Identity, IdentityVerifier
from listen_together.application.interfaces.stream_resolver import ResolvedStream, StreamResolver
from listen_together.domain.room.entities import Participant, Track
from listen_together.domain.shared.datetime_utils import ManualClock
from listen_together.domain.shared.exceptions import AuthenticationError, StreamResolutionError
from listen_together.domain.shared.messages import ErrorMessages

# ============================================================================
# Fakes for the application ports
# ============================================================================


class RecordingBroadcaster(Broadcaster):
    """Broadcaster that records every emission instead of sending it."""

    def __init__(self) -> None:
        self.emitted: list[tuple[str, str, object]] = []
        self.sockets: dict[str, list[str]] = {}
        self.subscriptions: set[tuple[str, str]] = set()

    async def emit_to_room(self, room_id, event):
        self.emitted.append(("room", room_id, event))

    async def emit_to_socket(self, sid, event):
        self.emitted.append(("socket", sid, event))

    async def emit_to_user(self, user_id, event):
        self.emitted.append(("user", user_id, event))

    async def subscribe_user(self, user_id, room_id):
        self.subscriptions.add((user_id, room_id))
        return list(self.sockets.get(user_id, []))

    async def unsubscribe_user(self, user_id, room_id):
        self.subscriptions.discard((user_id, room_id))

    def events(self, name: str) -> list:
        return [event for _, _, event in self.emitted if event.event_name == name]

    def names(self) -> list[str]:
        return [event.event_name for _, _, event in self.emitted]

    def targets(self, name: str) -> list[tuple[str, str]]:
        return [(scope, target) for scope, target, event in self.emitted if event.event_name == name]

    def clear(self) -> None:
        self.emitted.clear()


class FakeStreamResolver(StreamResolver):
    """Resolves every id to a fake URL; can be told to fail a number of times."""

    def __init__(self, duration: float | None = 180.0, failures: int = 0) -> None:
        self.duration = duration
        self.failures = failures
        self.calls: list[str] = []

    async def resolve(self, track_id):
        self.calls.append(track_id)
        if self.failures > 0:
            self.failures -= 1
            raise StreamResolutionError(track_id, "upstream unavailable")
        return ResolvedStream(stream_url=f"https://audio.example/{track_id}", duration=self.duration)


class FakeIdentityVerifier(IdentityVerifier):
    """Accepts ``token-<user>`` for every user it knows."""

    def __init__(self, *identities: Identity) -> None:
        self.identities = {f"token-{identity.id}": identity for identity in identities}

    async def verify(self, token):
        identity = self.identities.get(token)
        if identity is None:
            raise AuthenticationError(ErrorMessages.TOKEN_INVALID)
        return identity


# ============================================================================
# Builders
# ============================================================================


def make_track(track_id: str = "song-1", duration: float | None = 180.0, **kwargs) -> Track:
    kwargs.setdefault("title", f"Title {track_id}")
    return Track(id=track_id, duration=duration, **kwargs)


def make_participant(user_id: str, name: str | None = None) -> Participant:
    return Participant(id=user_id, name=name or user_id.title(), joined_at=0.0)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def clock():
    """A manual clock starting at a fixed epoch."""
    return ManualClock()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def resolver():
    return FakeStreamResolver()


@pytest.fixture
def alice():
    return Identity(id="alice", name="Alice")


@pytest.fixture
def bob():
    return Identity(id="bob", name="Bob")


@pytest.fixture
def carol():
    return Identity(id="carol", name="Carol")


@pytest.fixture
def verifier(alice, bob, carol):
    return FakeIdentityVerifier(alice, bob, carol)


@pytest.fixture
def registry(clock):
    from listen_together.domain.room.registry import RoomRegistry

    return RoomRegistry(clock=clock)


@pytest.fixture
def publisher(broadcaster):
    from listen_together.application.services.sync_publisher import SyncPublisher

    return SyncPublisher(broadcaster)
