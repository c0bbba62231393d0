"""Error kinds raised by the scheduling and leave engine.

Every failure the core can report is one of the classes below. The HTTP layer
maps them to status codes; nothing in the core knows about transports.
"""
from __future__ import annotations


class OnCallError(Exception):
    """Base class for every error the core surfaces to its callers."""

    code = "ERROR"
    default_message = "The operation could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(OnCallError):
    code = "UNAUTHENTICATED"
    default_message = "A valid credential is required."


class InvalidRange(OnCallError):
    code = "INVALID_RANGE"
    default_message = "The end of the range must come after its start."


class OverlapConflict(OnCallError):
    code = "OVERLAP_CONFLICT"
    default_message = "An overlapping shift already exists in this delegation."


class DuplicateAssignment(OnCallError):
    code = "DUPLICATE_ASSIGNMENT"
    default_message = "A user or guard role appears more than once in the assignment set."


class UnknownUser(OnCallError):
    code = "UNKNOWN_USER"
    default_message = "One or more users do not exist."


class UnknownGuardRole(OnCallError):
    code = "UNKNOWN_GUARD_ROLE"
    default_message = "One or more guard roles do not exist."


class CrossDelegationAssignment(OnCallError):
    code = "CROSS_DELEGATION_ASSIGNMENT"
    default_message = "Every assigned user must belong to the shift's delegation."


class Forbidden(OnCallError):
    code = "FORBIDDEN"
    default_message = "You are not allowed to perform this action."


class RoleNotFound(OnCallError):
    """The caller's role id does not resolve: a data-integrity fault."""

    code = "ROLE_NOT_FOUND"
    default_message = "User role not found."


class CatalogIncomplete(OnCallError):
    """A required catalog row is missing: a data-integrity fault."""

    code = "CATALOG_INCOMPLETE"
    default_message = "A required catalog entry is missing."


class NotFound(OnCallError):
    code = "NOT_FOUND"
    default_message = "The requested record does not exist."


class Conflict(OnCallError):
    code = "CONFLICT"
    default_message = "The record already exists."


class InvalidTransition(OnCallError):
    code = "INVALID_TRANSITION"
    default_message = "This leave request cannot move to the requested status."


class UnknownStatus(OnCallError):
    code = "UNKNOWN_STATUS"
    default_message = "Unknown leave status."


class UnknownLeaveType(OnCallError):
    code = "UNKNOWN_LEAVE_TYPE"
    default_message = "Unknown leave type."


class CrossDelegationViolation(OnCallError):
    code = "CROSS_DELEGATION_VIOLATION"
    default_message = "User and team must belong to the same delegation."
