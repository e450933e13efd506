"""FastAPI dependencies: container access and bearer authentication."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from listen_together.application.interfaces.identity_verifier import Identity
from listen_together.application.services.playback_service import PlaybackApplicationService
from listen_together.application.services.queue_coordinator import QueueCoordinator
from listen_together.application.services.room_service import RoomApplicationService
from listen_together.config.container import Container
from listen_together.domain.shared.exceptions import AuthenticationError
from listen_together.domain.shared.messages import ErrorMessages

bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_identity(
    container: Annotated[Container, Depends(get_container)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Identity:
    """Verify the request's bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(ErrorMessages.TOKEN_MISSING)
    return await container.identity_verifier.verify(credentials.credentials)


def get_room_service(container: Annotated[Container, Depends(get_container)]) -> RoomApplicationService:
    return container.room_service


def get_playback_service(
    container: Annotated[Container, Depends(get_container)],
) -> PlaybackApplicationService:
    return container.playback_service


def get_queue_coordinator(container: Annotated[Container, Depends(get_container)]) -> QueueCoordinator:
    return container.queue_coordinator


CurrentUser = Annotated[Identity, Depends(get_identity)]
Rooms = Annotated[RoomApplicationService, Depends(get_room_service)]
Playback = Annotated[PlaybackApplicationService, Depends(get_playback_service)]
Queue = Annotated[QueueCoordinator, Depends(get_queue_coordinator)]
