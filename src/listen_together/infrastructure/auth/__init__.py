"""Identity adapters."""

from listen_together.infrastructure.auth.http_identity_verifier import HttpIdentityVerifier

__all__ = ["HttpIdentityVerifier"]
