"""Port interface for verifying bearer credentials."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from listen_together.domain.shared.types import NonEmptyStr, UserIdStr


class Identity(BaseModel):
    """The user a verified credential belongs to."""

    model_config = ConfigDict(frozen=True)

    id: UserIdStr
    name: NonEmptyStr
    avatar: str | None = None


class IdentityVerifier(ABC):
    """Interface for the external identity service."""

    @abstractmethod
    async def verify(self, token: NonEmptyStr) -> Identity:
        """Return the identity behind ``token``.

        Raises:
            AuthenticationError: If the token is rejected.
            DependencyUnavailableError: If the identity service cannot be reached.
        """
        ...
