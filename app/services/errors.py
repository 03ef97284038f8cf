"""
Tandem — Domain exceptions raised by the service layer.

The services only signal these conditions; ``app.main`` maps them onto HTTP
status codes.  Storage errors are never wrapped and propagate unchanged.
"""

from __future__ import annotations


class MatchingError(Exception):
    """Base class for all domain-level failures."""


class ValidationFailure(MatchingError):
    """A write was rejected before any mutation took place."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class OwnershipViolation(MatchingError):
    """The caller tried to read or act on another user's resources."""

    def __init__(self, message: str = "You may only access your own resources.") -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(MatchingError):
    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(f"{resource} {identifier} not found")
        self.resource = resource
        self.identifier = identifier
