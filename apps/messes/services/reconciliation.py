"""
Membership consistency checks.

The ledger (``MessMembership``) is the source of truth. User pointers and
the ``Member`` projection are compared against it and, with ``fix=True``,
realigned to it.
"""

import logging
from dataclasses import dataclass, field

from django.db import transaction

from apps.accounts.models import User
from apps.messes.models import Mess, MessMembership, Member

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    """Issues found by a reconciliation run, one human-readable line each."""

    dangling_pointers: list[str] = field(default_factory=list)
    orphaned_memberships: list[str] = field(default_factory=list)
    admin_flag_mismatches: list[str] = field(default_factory=list)
    projection_mismatches: list[str] = field(default_factory=list)
    fixed: bool = False

    @property
    def issue_count(self) -> int:
        return (
            len(self.dangling_pointers)
            + len(self.orphaned_memberships)
            + len(self.admin_flag_mismatches)
            + len(self.projection_mismatches)
        )

    @property
    def is_consistent(self) -> bool:
        return self.issue_count == 0


@transaction.atomic
def reconcile_memberships(*, fix: bool = False) -> ReconciliationReport:
    """
    Compare user pointers and the projection with the membership ledger.

    Checks:
        - user points at a mess without an active membership there
        - active membership whose user points nowhere (pointer restored)
        - active membership whose user points at another mess (deactivated)
        - ``is_mess_admin`` disagreeing with ``Mess.admin``
        - ``Member.is_active`` disagreeing with the ledger

    Args:
        fix: Apply corrections instead of only reporting

    Returns:
        ReconciliationReport describing what was found
    """
    report = ReconciliationReport(fixed=fix)

    active = set(
        MessMembership.objects
        .filter(is_active=True)
        .values_list('user_id', 'mess_id')
    )

    admin_pairs = set(Mess.objects.values_list('admin_id', 'id'))

    users = User.objects.all()
    if fix:
        users = users.select_for_update()

    for user in users:
        mess_id = user.current_mess_id

        if mess_id is not None and (user.pk, mess_id) not in active:
            report.dangling_pointers.append(
                f"{user.email} points at mess {mess_id} without an active membership"
            )
            if fix:
                user.current_mess = None
                user.is_mess_admin = False
                user.save(update_fields=['current_mess', 'is_mess_admin'])
                continue

        expected_admin = (user.pk, mess_id) in admin_pairs
        if user.is_mess_admin != expected_admin:
            report.admin_flag_mismatches.append(
                f"{user.email} has is_mess_admin={user.is_mess_admin}, expected {expected_admin}"
            )
            if fix:
                user.is_mess_admin = expected_admin
                user.save(update_fields=['is_mess_admin'])

    pointers = dict(User.objects.values_list('id', 'current_mess_id'))
    for user_id, mess_id in sorted(active, key=str):
        if pointers.get(user_id) == mess_id:
            continue
        report.orphaned_memberships.append(
            f"user {user_id} has an active membership in mess {mess_id} "
            f"but points at {pointers.get(user_id)}"
        )
        if not fix:
            continue
        if pointers.get(user_id) is None:
            User.objects.filter(pk=user_id).update(
                current_mess_id=mess_id,
                is_mess_admin=(user_id, mess_id) in admin_pairs,
            )
            pointers[user_id] = mess_id
        else:
            MessMembership.objects.filter(
                user_id=user_id,
                mess_id=mess_id,
            ).update(is_active=False)
            active.discard((user_id, mess_id))

    members = Member.objects.all()
    if fix:
        members = members.select_for_update()
    for member in members:
        expected = (member.user_id, member.mess_id) in active
        if member.is_active != expected:
            report.projection_mismatches.append(
                f"member {member.pk} ({member.name}) is_active={member.is_active}, expected {expected}"
            )
            if fix:
                member.is_active = expected
                member.save(update_fields=['is_active', 'updated_at'])

    if report.is_consistent:
        logger.info("Membership reconciliation found no issues")
    else:
        logger.warning(
            "Membership reconciliation found %d issue(s)%s",
            report.issue_count,
            " and fixed them" if fix else "",
        )
    return report
