"""
Mess membership service.

Owns the join request state machine and keeps the three views of
membership consistent: the mess ledger (``MessMembership`` and
``JoinRequest`` rows), the user's ``current_mess``/``is_mess_admin`` and the
``Member`` projection. Each state change runs in one transaction and
publishes its realtime events only after commit.

Lock order is mess, then user, then join request rows.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.messes.models import Mess, MessMembership, JoinRequest, JoinRequestStatus
from apps.realtime.broadcasters import Broadcaster, NullBroadcaster
from apps.realtime.events import (
    build_mess_snapshot,
    get_status_message,
    publish_join_request_update,
    publish_mess_update,
)

from .exceptions import (
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

logger = logging.getLogger(__name__)


def _is_uuid(value) -> bool:
    if isinstance(value, UUID):
        return True
    try:
        UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


def _user_data(user: User) -> dict[str, Any]:
    return {
        'id': str(user.id),
        'display_name': user.get_display_name(),
        'email': user.email,
    }


class MembershipService:
    """
    Membership state transitions for messes.

    Args:
        broadcaster: Realtime publisher. Defaults to a no-op broadcaster so
            state changes succeed whether or not anyone is listening.
    """

    def __init__(self, broadcaster: Optional[Broadcaster] = None):
        self.broadcaster = broadcaster or NullBroadcaster()

    # ------------------------------------------------------------------
    # Locking helpers (must run inside transaction.atomic)
    # ------------------------------------------------------------------

    @staticmethod
    def _lock_user(user_id) -> User:
        return User.objects.select_for_update().get(pk=user_id)

    @staticmethod
    def _check_not_in_mess(user_id) -> None:
        """Unlocked pre-check so a member gets a conflict before any mess lookup."""
        if User.objects.filter(pk=user_id, current_mess__isnull=False).exists():
            raise AlreadyInMessError("User is already part of a mess")

    @staticmethod
    def _lock_mess(mess_id) -> Mess:
        if not _is_uuid(mess_id):
            raise MessNotFoundError("Mess not found")
        try:
            return Mess.objects.select_for_update().get(id=mess_id)
        except Mess.DoesNotExist:
            raise MessNotFoundError("Mess not found")

    def _lock_admin_mess(self, admin: User) -> Mess:
        """Lock and return the mess administered by ``admin``."""
        mess_id = (
            User.objects
            .filter(pk=admin.pk)
            .values_list('current_mess_id', flat=True)
            .first()
        )
        if mess_id is None:
            raise NotMessAdminError("Access denied. Mess admin required")

        mess = self._lock_mess(mess_id)
        if mess.admin_id != admin.pk:
            raise NotMessAdminError("Access denied. Mess admin required")
        return mess

    @staticmethod
    def _activate_membership(*, mess: Mess, user: User) -> MessMembership:
        """Reactivate the user's existing ledger entry or append a new one."""
        now = timezone.now()
        membership = (
            MessMembership.objects
            .select_for_update()
            .filter(mess=mess, user=user)
            .first()
        )
        if membership is None:
            return MessMembership.objects.create(
                mess=mess,
                user=user,
                joined_at=now,
                is_active=True,
            )

        membership.is_active = True
        membership.joined_at = now
        membership.save(update_fields=['is_active', 'joined_at'])
        return membership

    @staticmethod
    def _deactivate_membership(*, mess: Mess, user_id) -> int:
        return MessMembership.objects.filter(
            mess=mess,
            user_id=user_id,
            is_active=True,
        ).update(is_active=False)

    @staticmethod
    def _set_current_mess(user: User, mess: Optional[Mess], *, is_admin: bool = False) -> None:
        user.current_mess = mess
        user.is_mess_admin = is_admin if mess is not None else False
        user.save(update_fields=['current_mess', 'is_mess_admin'])

    # ------------------------------------------------------------------
    # Mess lifecycle
    # ------------------------------------------------------------------

    def create_mess(
        self,
        *,
        name: str,
        address: str,
        user: User,
        max_retries: int = 5
    ) -> Mess:
        """
        Create a mess with ``user`` as admin and only member.

        The identifier code is checked against existing messes before insert;
        a concurrent insert of the same code surfaces as IntegrityError and
        the whole creation is retried.

        Raises:
            AlreadyInMessError: If the user already belongs to a mess
            RuntimeError: If creation keeps colliding after retries
        """
        for attempt in range(max_retries):
            try:
                with transaction.atomic():
                    return self._create_mess(name=name, address=address, user_id=user.pk)
            except IntegrityError:
                if attempt == max_retries - 1:
                    raise RuntimeError(
                        f"Failed to create mess with a unique identifier code after {max_retries} attempts"
                    )
                logger.warning("Identifier code collision on mess creation, retrying")
                continue

        raise RuntimeError("Unexpected error in mess creation")

    def _create_mess(self, *, name: str, address: str, user_id) -> Mess:
        user = self._lock_user(user_id)
        if user.current_mess_id is not None:
            raise AlreadyInMessError("User is already part of a mess")

        mess = Mess.objects.create(
            name=name,
            address=address,
            identifier_code=generate_identifier_code(),
            admin=user,
        )
        MessMembership.objects.create(
            mess=mess,
            user=user,
            joined_at=timezone.now(),
            is_active=True,
        )
        self._set_current_mess(user, mess, is_admin=True)
        sync_member_projection(user=user, mess=mess, is_active=True)

        logger.info("User %s created mess %s (%s)", user.id, mess.id, mess.identifier_code)

        data = {**build_mess_snapshot(mess), 'admin': _user_data(user)}
        transaction.on_commit(
            lambda: publish_mess_update(self.broadcaster, mess.id, 'mess-created', data)
        )
        return mess

    # ------------------------------------------------------------------
    # Join requests
    # ------------------------------------------------------------------

    @transaction.atomic
    def request_to_join(self, *, mess_id: UUID, user: User) -> JoinRequest:
        """
        File a pending join request for an active mess.

        Raises:
            AlreadyInMessError: If the user already belongs to a mess
            MessNotFoundError: If the mess doesn't exist or is inactive
            AlreadyMemberError: If the user is an active member of this mess
            DuplicateJoinRequestError: If a pending request already exists
        """
        self._check_not_in_mess(user.pk)
        mess = self._lock_mess(mess_id)
        if not mess.is_active:
            raise MessNotFoundError("Mess not found")

        user = self._lock_user(user.pk)
        if user.current_mess_id is not None:
            raise AlreadyInMessError("User is already part of a mess")

        if mess.has_active_member(user):
            raise AlreadyMemberError("User is already a member of this mess")

        if JoinRequest.objects.filter(
            mess=mess,
            user=user,
            status=JoinRequestStatus.PENDING
        ).exists():
            raise DuplicateJoinRequestError("You already have a pending request for this mess")

        try:
            with transaction.atomic():
                join_request = JoinRequest.objects.create(
                    mess=mess,
                    user=user,
                    status=JoinRequestStatus.PENDING,
                )
        except IntegrityError:
            raise DuplicateJoinRequestError("You already have a pending request for this mess")

        logger.info("User %s requested to join mess %s", user.id, mess.id)

        data = {
            'request_id': str(join_request.id),
            'user': _user_data(user),
            'requested_at': join_request.requested_at.isoformat(),
        }

        def notify():
            publish_mess_update(self.broadcaster, mess.id, 'new-join-request', data)
            publish_join_request_update(self.broadcaster, user.id, 'pending', mess)

        transaction.on_commit(notify)
        return join_request

    @transaction.atomic
    def join_mess(self, *, mess_id: UUID, user: User) -> MessMembership:
        """
        Join an active mess directly, without admin approval.

        Raises:
            AlreadyInMessError: If the user already belongs to a mess
            MessNotFoundError: If the mess doesn't exist or is inactive
            AlreadyMemberError: If the user is an active member of this mess
        """
        self._check_not_in_mess(user.pk)
        mess = self._lock_mess(mess_id)
        if not mess.is_active:
            raise MessNotFoundError("Mess not found")

        user = self._lock_user(user.pk)
        if user.current_mess_id is not None:
            raise AlreadyInMessError("User is already part of a mess")

        if mess.has_active_member(user):
            raise AlreadyMemberError("User is already a member of this mess")

        membership = self._activate_membership(mess=mess, user=user)
        self._set_current_mess(user, mess)
        sync_member_projection(user=user, mess=mess, is_active=True)

        logger.info("User %s joined mess %s directly", user.id, mess.id)

        data = {'user': _user_data(user), 'joined_at': membership.joined_at.isoformat()}
        transaction.on_commit(
            lambda: publish_mess_update(self.broadcaster, mess.id, 'member-joined', data)
        )
        return membership

    def get_pending_requests(self, *, admin: User) -> QuerySet[JoinRequest]:
        """
        Pending join requests of the admin's mess, oldest first.

        Raises:
            NotMessAdminError: If ``admin`` does not administer a mess
        """
        mess = admin.current_mess
        if mess is None or mess.admin_id != admin.pk:
            raise NotMessAdminError("Access denied. Mess admin required")

        return (
            JoinRequest.objects
            .filter(mess=mess, status=JoinRequestStatus.PENDING)
            .select_related('user')
            .order_by('requested_at')
        )

    def _lock_pending_request(self, *, request_id: UUID, mess: Mess) -> JoinRequest:
        if not _is_uuid(request_id):
            raise JoinRequestNotFoundError("Request not found or already processed")
        try:
            return (
                JoinRequest.objects
                .select_for_update()
                .get(id=request_id, mess=mess, status=JoinRequestStatus.PENDING)
            )
        except JoinRequest.DoesNotExist:
            raise JoinRequestNotFoundError("Request not found or already processed")

    @transaction.atomic
    def accept_request(self, *, request_id: UUID, admin: User) -> JoinRequest:
        """
        Approve a pending request and make the requester an active member.

        Raises:
            NotMessAdminError: If ``admin`` does not administer a mess
            JoinRequestNotFoundError: If no pending request has this id
            AlreadyMemberError: If the requester is already an active member
            AlreadyInMessError: If the requester joined another mess meanwhile
        """
        mess = self._lock_admin_mess(admin)

        requester_id = (
            JoinRequest.objects
            .filter(id=request_id, mess=mess, status=JoinRequestStatus.PENDING)
            .values_list('user_id', flat=True)
            .first()
        ) if _is_uuid(request_id) else None
        if requester_id is None:
            raise JoinRequestNotFoundError("Request not found or already processed")

        requester = self._lock_user(requester_id)
        join_request = self._lock_pending_request(request_id=request_id, mess=mess)

        if mess.has_active_member(requester):
            raise AlreadyMemberError("User is already a member of this mess")
        if requester.current_mess_id is not None:
            raise AlreadyInMessError("User is already part of a mess")

        join_request.status = JoinRequestStatus.APPROVED
        join_request.processed_at = timezone.now()
        join_request.processed_by = admin
        join_request.save(update_fields=['status', 'processed_at', 'processed_by'])

        membership = self._activate_membership(mess=mess, user=requester)
        self._set_current_mess(requester, mess)
        sync_member_projection(user=requester, mess=mess, is_active=True)

        logger.info("Admin %s accepted user %s into mess %s", admin.pk, requester.id, mess.id)

        data = {'user': _user_data(requester), 'joined_at': membership.joined_at.isoformat()}

        def notify():
            publish_join_request_update(self.broadcaster, requester.id, 'accepted', mess)
            publish_mess_update(self.broadcaster, mess.id, 'member-joined', data)

        transaction.on_commit(notify)
        return join_request

    @transaction.atomic
    def reject_request(self, *, request_id: UUID, admin: User) -> JoinRequest:
        """
        Reject a pending request. Membership and user state are untouched.

        Raises:
            NotMessAdminError: If ``admin`` does not administer a mess
            JoinRequestNotFoundError: If no pending request has this id
        """
        mess = self._lock_admin_mess(admin)
        join_request = self._lock_pending_request(request_id=request_id, mess=mess)

        join_request.status = JoinRequestStatus.REJECTED
        join_request.processed_at = timezone.now()
        join_request.processed_by = admin
        join_request.save(update_fields=['status', 'processed_at', 'processed_by'])

        logger.info("Admin %s rejected request %s", admin.pk, join_request.id)

        requester_id = join_request.user_id
        transaction.on_commit(
            lambda: publish_join_request_update(self.broadcaster, requester_id, 'rejected', mess)
        )
        return join_request

    @transaction.atomic
    def cancel_request(self, *, user: User) -> int:
        """
        Withdraw the user's pending join request(s).

        Pending rows are deleted rather than marked, unlike rejection.

        Returns:
            Number of requests cancelled

        Raises:
            AlreadyInMessError: If the user already belongs to a mess
            JoinRequestNotFoundError: If the user has no pending request
        """
        user = self._lock_user(user.pk)
        if user.current_mess_id is not None:
            raise AlreadyInMessError("User is already part of a mess")

        pending = list(
            JoinRequest.objects
            .select_for_update()
            .filter(user=user, status=JoinRequestStatus.PENDING)
            .select_related('mess')
        )
        if not pending:
            raise JoinRequestNotFoundError("No pending request found")

        cancelled = [(str(jr.id), jr.mess) for jr in pending]
        JoinRequest.objects.filter(id__in=[jr.id for jr in pending]).delete()

        logger.info("User %s cancelled %d pending request(s)", user.id, len(cancelled))

        def notify():
            for request_id, mess in cancelled:
                publish_join_request_update(self.broadcaster, user.id, 'cancelled', mess)
                publish_mess_update(
                    self.broadcaster,
                    mess.id,
                    'request-cancelled',
                    {'request_id': request_id, 'user_id': str(user.id)},
                )

        transaction.on_commit(notify)
        return len(cancelled)

    # ------------------------------------------------------------------
    # Leaving and removal
    # ------------------------------------------------------------------

    @transaction.atomic
    def leave_mess(self, *, user: User) -> Mess:
        """
        Leave the current mess. The ledger entry is kept, marked inactive.

        Raises:
            NotInMessError: If the user is not part of any mess
            AdminCannotLeaveError: If the user is the mess admin
        """
        mess_id = (
            User.objects
            .filter(pk=user.pk)
            .values_list('current_mess_id', flat=True)
            .first()
        )
        if mess_id is None:
            raise NotInMessError("User is not part of any mess")

        mess = self._lock_mess(mess_id)
        user = self._lock_user(user.pk)
        if user.current_mess_id != mess.id:
            raise NotInMessError("User is not part of any mess")

        if mess.admin_id == user.pk:
            raise AdminCannotLeaveError("Mess admin cannot leave. Transfer admin role first.")

        self._deactivate_membership(mess=mess, user_id=user.pk)
        self._set_current_mess(user, None)
        sync_member_projection(user=user, mess=mess, is_active=False)

        logger.info("User %s left mess %s", user.id, mess.id)

        data = {'user_id': str(user.id), 'name': user.get_display_name()}
        transaction.on_commit(
            lambda: publish_mess_update(self.broadcaster, mess.id, 'member-left', data)
        )
        return mess

    @transaction.atomic
    def remove_member(self, *, member_id: UUID, admin: User) -> User:
        """
        Remove an active member from the admin's mess.

        Raises:
            NotMessAdminError: If ``admin`` does not administer a mess
            CannotRemoveAdminError: If the target is the mess admin
            MemberNotFoundError: If the target is not an active member
        """
        mess = self._lock_admin_mess(admin)

        if str(mess.admin_id) == str(member_id):
            raise CannotRemoveAdminError("Cannot remove mess admin")

        if not _is_uuid(member_id) or not mess.has_active_member(member_id):
            raise MemberNotFoundError("Member not found")

        member = self._lock_user(member_id)
        self._deactivate_membership(mess=mess, user_id=member.pk)
        if member.current_mess_id == mess.id:
            self._set_current_mess(member, None)
        sync_member_projection(user=member, mess=mess, is_active=False)

        logger.info("Admin %s removed user %s from mess %s", admin.pk, member.id, mess.id)

        data = {
            'user_id': str(member.id),
            'name': member.get_display_name(),
            'removed_by': str(admin.pk),
        }

        def notify():
            publish_mess_update(self.broadcaster, mess.id, 'member-removed', data)
            publish_join_request_update(self.broadcaster, member.id, 'removed', mess)

        transaction.on_commit(notify)
        return member

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def search_mess(self, *, code: str) -> Mess:
        """
        Find an active mess by identifier code.

        Raises:
            MessNotFoundError: If no active mess has this code
        """
        try:
            return (
                Mess.objects
                .select_related('admin')
                .get(identifier_code=code, is_active=True)
            )
        except Mess.DoesNotExist:
            raise MessNotFoundError("Mess not found")

    def get_mess_details(self, *, user: User) -> Mess:
        """
        The user's current mess with admin loaded.

        Raises:
            NotInMessError: If the user is not part of any mess
        """
        mess_id = (
            User.objects
            .filter(pk=user.pk)
            .values_list('current_mess_id', flat=True)
            .first()
        )
        if mess_id is None:
            raise NotInMessError("User is not part of any mess")

        try:
            return Mess.objects.select_related('admin').get(id=mess_id)
        except Mess.DoesNotExist:
            raise MessNotFoundError("Mess not found")

    def check_request_status(self, *, user: User) -> dict[str, Any]:
        """
        Derive the user's join status for clients without a live socket.

        Priority: accepted (in a mess), pending, rejected (most recent), none.
        """
        user = User.objects.select_related('current_mess').get(pk=user.pk)

        if user.current_mess_id is not None:
            status, mess, join_request = 'accepted', user.current_mess, None
        else:
            join_request = (
                JoinRequest.objects
                .filter(user=user, status=JoinRequestStatus.PENDING)
                .select_related('mess')
                .order_by('-requested_at')
                .first()
            )
            if join_request is not None:
                status = 'pending'
            else:
                join_request = (
                    JoinRequest.objects
                    .filter(user=user, status=JoinRequestStatus.REJECTED)
                    .select_related('mess')
                    .order_by('-processed_at', '-requested_at')
                    .first()
                )
                status = 'rejected' if join_request is not None else 'none'
            mess = join_request.mess if join_request is not None else None

        return {
            'status': status,
            'message': get_status_message(status),
            'mess': mess,
            'request': join_request,
        }

