"""Base exception classes for domain-level errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ValidationError(DomainError):
    """Raised when a request payload or argument fails validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class AuthenticationError(DomainError):
    """Raised when a bearer credential is missing or rejected."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="AUTHENTICATION_ERROR")


class AuthorizationError(DomainError):
    """Raised when the requester is not allowed to act on a room."""

    def __init__(self, room_id: str, user_id: str, message: str | None = None) -> None:
        msg = message or f"User '{user_id}' is not a participant of room '{room_id}'"
        super().__init__(msg, code="AUTHORIZATION_ERROR")
        self.room_id = room_id
        self.user_id = user_id


class EntityNotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, identifier: str | int, message: str | None = None) -> None:
        msg = message or f"{entity_type} with id '{identifier}' not found"
        super().__init__(msg, code="ENTITY_NOT_FOUND")
        self.entity_type = entity_type
        self.identifier = identifier


class BusinessRuleViolationError(DomainError):
    """Raised when a business rule is violated."""

    def __init__(self, rule: str, message: str | None = None) -> None:
        msg = message or f"Business rule violated: {rule}"
        super().__init__(msg, code="BUSINESS_RULE_VIOLATION")
        self.rule = rule


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class StreamResolutionError(DomainError):
    """Raised when a playable stream URL cannot be obtained for a track."""

    def __init__(self, track_id: str, message: str | None = None) -> None:
        msg = message or f"Could not resolve a stream URL for track '{track_id}'"
        super().__init__(msg, code="STREAM_RESOLUTION_ERROR")
        self.track_id = track_id


class DependencyUnavailableError(DomainError):
    """Raised when an external service the request depends on cannot be reached."""

    def __init__(self, service: str, message: str | None = None) -> None:
        msg = message or f"{service} is unavailable"
        super().__init__(msg, code="DEPENDENCY_UNAVAILABLE")
        self.service = service
