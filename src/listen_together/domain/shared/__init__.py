"""
Shared Domain Kernel

Exceptions, message templates, constrained types and clock helpers shared
across the room and sync contexts.
"""

from listen_together.domain.shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolationError,
    DependencyUnavailableError,
    DomainError,
    EntityNotFoundError,
    InvalidOperationError,
    StreamResolutionError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "EntityNotFoundError",
    "BusinessRuleViolationError",
    "InvalidOperationError",
    "StreamResolutionError",
    "DependencyUnavailableError",
]
