# ==========================================
# apps/messes/models.py
# ==========================================

from django.db import models
from django.db.models import Q
import uuid


IDENTIFIER_CODE_LENGTH = 6


class JoinRequestStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


class Mess(models.Model):
    """Shared household group. Owns the membership ledger."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    address = models.CharField(max_length=500)
    identifier_code = models.CharField(
        max_length=IDENTIFIER_CODE_LENGTH,
        unique=True,
        db_index=True,
        editable=False,
    )
    admin = models.ForeignKey('accounts.User', on_delete=models.PROTECT, related_name='administered_messes')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'messes'
        verbose_name_plural = 'messes'
        indexes = [
            models.Index(fields=['admin', 'created_at'], name='messes_admin_i_0c1d7e_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def active_memberships(self):
        return self.memberships.filter(is_active=True).select_related('user')

    def has_active_member(self, user_or_id):
        user_id = getattr(user_or_id, 'pk', user_or_id)
        return self.memberships.filter(user_id=user_id, is_active=True).exists()

    def is_admin(self, user):
        return self.admin_id == user.pk


class MessMembership(models.Model):
    """
    A user's entry in a mess member list.

    Rows are never deleted: leaving or removal flips ``is_active`` and a
    later rejoin reactivates the same row.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    mess = models.ForeignKey(Mess, on_delete=models.CASCADE, related_name='memberships')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='mess_memberships')
    joined_at = models.DateTimeField()
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'mess_memberships'
        unique_together = [['mess', 'user']]
        indexes = [
            models.Index(fields=['mess', 'is_active'], name='mess_member_mess_id_5b0e2a_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        state = 'active' if self.is_active else 'inactive'
        return f"{self.user.get_display_name()} in {self.mess.name} ({state})"


class JoinRequest(models.Model):
    """Request by a user to join a mess, decided by the mess admin."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    mess = models.ForeignKey(Mess, on_delete=models.CASCADE, related_name='join_requests')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='join_requests')
    status = models.CharField(
        max_length=20,
        choices=JoinRequestStatus.choices,
        default=JoinRequestStatus.PENDING,
    )
    requested_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    processed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_join_requests',
    )

    class Meta:
        db_table = 'mess_join_requests'
        constraints = [
            models.UniqueConstraint(
                fields=['mess', 'user'],
                condition=Q(status='pending'),
                name='unique_pending_join_request',
            ),
        ]
        indexes = [
            models.Index(fields=['mess', 'status'], name='mess_join_r_mess_id_8f3c41_idx'),
            models.Index(fields=['user', 'status'], name='mess_join_r_user_id_2d9a6b_idx'),
        ]
        ordering = ['requested_at']

    def __str__(self):
        return f"{self.user.get_display_name()} -> {self.mess.name} ({self.status})"


class Member(models.Model):
    """
    Per-(user, mess) projection of the member list used by reporting.

    ``name`` is copied from the user when the row is (re)activated and is
    not kept in sync with later renames.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='member_records')
    mess = models.ForeignKey(Mess, on_delete=models.CASCADE, related_name='member_records')
    name = models.CharField(max_length=100)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'members'
        unique_together = [['user', 'mess']]
        indexes = [
            models.Index(fields=['mess', 'is_active'], name='members_mess_id_7a2f90_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.name} ({self.mess.name})"
