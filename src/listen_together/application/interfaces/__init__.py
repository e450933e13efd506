"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from listen_together.application.interfaces.broadcaster import Broadcaster
from listen_together.application.interfaces.identity_verifier import Identity, IdentityVerifier
from listen_together.application.interfaces.stream_resolver import ResolvedStream, StreamResolver

__all__ = [
    "Broadcaster",
    "StreamResolver",
    "ResolvedStream",
    "IdentityVerifier",
    "Identity",
]
