import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.messes.models import Mess, MessMembership, JoinRequest, JoinRequestStatus, Member


@pytest.mark.django_db
class TestMessModel:
    """Tests for Mess model helpers and constraints."""

    def test_identifier_code_unique(self, mess, other_user):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Mess.objects.create(
                    name='Clash',
                    address='Road',
                    identifier_code=mess.identifier_code,
                    admin=other_user,
                )

    def test_has_active_member(self, mess, mess_admin, member, other_user):
        assert mess.has_active_member(mess_admin)
        assert mess.has_active_member(member.id)
        assert not mess.has_active_member(other_user)

    def test_inactive_membership_not_counted(self, mess, member):
        MessMembership.objects.filter(mess=mess, user=member).update(is_active=False)

        assert not mess.has_active_member(member)
        assert list(mess.active_memberships().values_list('user_id', flat=True)) == [mess.admin_id]

    def test_is_admin(self, mess, mess_admin, member):
        assert mess.is_admin(mess_admin)
        assert not mess.is_admin(member)

    def test_str(self, mess):
        assert str(mess) == 'Green House'


@pytest.mark.django_db
class TestJoinRequestModel:
    """Tests for JoinRequest constraints."""

    def test_one_pending_request_per_user_and_mess(self, mess, requester, pending_request):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                JoinRequest.objects.create(mess=mess, user=requester)

    def test_processed_requests_do_not_block_new_ones(self, mess, mess_admin, requester):
        JoinRequest.objects.create(
            mess=mess,
            user=requester,
            status=JoinRequestStatus.REJECTED,
            processed_at=timezone.now(),
            processed_by=mess_admin,
        )
        JoinRequest.objects.create(
            mess=mess,
            user=requester,
            status=JoinRequestStatus.REJECTED,
            processed_at=timezone.now(),
            processed_by=mess_admin,
        )

        pending = JoinRequest.objects.create(mess=mess, user=requester)

        assert pending.status == JoinRequestStatus.PENDING
        assert JoinRequest.objects.filter(mess=mess, user=requester).count() == 3

    def test_str(self, pending_request):
        assert str(pending_request) == 'Requester -> Green House (pending)'


@pytest.mark.django_db
class TestMemberModel:
    """Tests for the member projection row."""

    def test_one_row_per_user_and_mess(self, mess, mess_admin):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Member.objects.create(mess=mess, user=mess_admin, name='Duplicate')

    def test_str(self, mess, mess_admin):
        assert str(Member.objects.get(mess=mess, user=mess_admin)) == 'Mess Admin (Green House)'
