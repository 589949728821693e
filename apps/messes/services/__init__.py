"""Services for mess membership business logic."""

from .exceptions import (
    MessServiceError,
    MessLookupError,
    MessPermissionError,
    MessConflictError,
    MessNotFoundError,
    JoinRequestNotFoundError,
    MemberNotFoundError,
    NotMessAdminError,
    NotInMessError,
    AlreadyInMessError,
    AlreadyMemberError,
    DuplicateJoinRequestError,
    AdminCannotLeaveError,
    CannotRemoveAdminError,
)
from .identifier_codes import generate_identifier_code
from .member_projection import sync_member_projection
from .membership_service import MembershipService
from .reconciliation import ReconciliationReport, reconcile_memberships

__all__ = [
    # Exceptions
    'MessServiceError',
    'MessLookupError',
    'MessPermissionError',
    'MessConflictError',
    'MessNotFoundError',
    'JoinRequestNotFoundError',
    'MemberNotFoundError',
    'NotMessAdminError',
    'NotInMessError',
    'AlreadyInMessError',
    'AlreadyMemberError',
    'DuplicateJoinRequestError',
    'AdminCannotLeaveError',
    'CannotRemoveAdminError',
    # Services
    'MembershipService',
    'generate_identifier_code',
    'sync_member_projection',
    'reconcile_memberships',
    'ReconciliationReport',
]
