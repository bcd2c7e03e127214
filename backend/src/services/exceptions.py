"""
Custom exceptions for service layer.

Provides specific exception types for roster business logic errors
that can be translated to appropriate HTTP responses.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""
    pass


class NotFoundError(ServiceError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class InvalidStateError(ServiceError):
    """Raised when an operation is not valid for the current event/slot status."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConflictError(ServiceError):
    """Raised when an operation would violate a roster invariant."""

    def __init__(self, message: str, slot_guid: Optional[str] = None):
        self.message = message
        self.slot_guid = slot_guid
        super().__init__(message)


class PermissionDeniedError(ServiceError):
    """Raised when the acting user is not allowed to perform an operation."""

    def __init__(self, message: str = "You are not allowed to perform this action"):
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class CycleDetectedError(ServiceError):
    """Raised when a communication node would become its own ancestor.

    The tree for an event must stay a forest; re-parenting a node under
    itself or under one of its descendants is rejected before any write.
    """

    def __init__(self, node_guid: str, parent_guid: str):
        self.node_guid = node_guid
        self.parent_guid = parent_guid
        self.message = (
            f"Cannot attach node '{node_guid}' under '{parent_guid}': "
            "the parent is the node itself or one of its descendants"
        )
        super().__init__(self.message)
