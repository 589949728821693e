"""
Member projection sync.

Keeps the ``Member`` row for a (user, mess) pair aligned with the
``MessMembership`` active flag. Must be called inside the transaction of
the membership change it mirrors.
"""

from apps.accounts.models import User
from apps.messes.models import Mess, Member


def sync_member_projection(*, user: User, mess: Mess, is_active: bool) -> Member:
    """
    Create or flip the projection row for ``user`` in ``mess``.

    The display name is copied when the row is created or reactivated.
    """
    member = (
        Member.objects
        .select_for_update()
        .filter(user=user, mess=mess)
        .first()
    )

    if member is None:
        return Member.objects.create(
            user=user,
            mess=mess,
            name=user.get_display_name(),
            is_active=is_active,
        )

    update_fields = ['is_active', 'updated_at']
    if is_active and not member.is_active:
        member.name = user.get_display_name()
        update_fields.append('name')
    member.is_active = is_active
    member.save(update_fields=update_fields)
    return member
