"""
Domain-specific exceptions for the messes app.

These exceptions represent business rule violations and are caught in
views and converted to HTTP responses. The three intermediate classes
group them by how the caller should treat them:

- ``MessLookupError``: the referenced mess, request or member is absent (404)
- ``MessPermissionError``: authenticated but not admin/member (403)
- ``MessConflictError``: a precondition on the current state failed (400)
"""


class MessServiceError(Exception):
    """Base exception for all messes service errors."""
    pass


class MessLookupError(MessServiceError):
    """Base for errors about something that does not exist."""
    pass


class MessPermissionError(MessServiceError):
    """Base for errors about missing admin or member rights."""
    pass


class MessConflictError(MessServiceError):
    """Base for errors about the current membership state."""
    pass


class MessNotFoundError(MessLookupError):
    """Raised when a mess does not exist or is inactive."""
    pass


class JoinRequestNotFoundError(MessLookupError):
    """Raised when no matching pending join request exists."""
    pass


class MemberNotFoundError(MessLookupError):
    """Raised when the target user is not an active member of the mess."""
    pass


class NotMessAdminError(MessPermissionError):
    """Raised when a user without admin rights attempts an admin action."""
    pass


class NotInMessError(MessPermissionError):
    """Raised when an action requires the user to be part of a mess."""
    pass


class AlreadyInMessError(MessConflictError):
    """Raised when a user who already belongs to a mess tries to join another."""
    pass


class AlreadyMemberError(MessConflictError):
    """Raised when the user is already an active member of the target mess."""
    pass


class DuplicateJoinRequestError(MessConflictError):
    """Raised when the user already has a pending request for the mess."""
    pass


class AdminCannotLeaveError(MessConflictError):
    """Raised when the mess admin tries to leave their mess."""
    pass


class CannotRemoveAdminError(MessConflictError):
    """Raised when attempting to remove the mess admin."""
    pass
