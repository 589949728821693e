import pytest
from uuid import uuid4
from django.test import override_settings
from django.urls import reverse
from rest_framework import status

from apps.accounts.models import User
from apps.messes.models import Mess, JoinRequest, JoinRequestStatus


# =============================================================================
# Create / Details / Search
# =============================================================================

@pytest.mark.django_db
class TestMessRoot:
    """Tests for POST and GET /api/mess/"""

    def test_create_mess(self, client_for, mess_admin):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:mess'), {
            'name': 'Green House',
            'address': '12 College Road',
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['name'] == 'Green House'
        assert response.data['address'] == '12 College Road'
        assert len(response.data['identifier_code']) == 6
        assert response.data['admin']['email'] == mess_admin.email

        mess_admin.refresh_from_db()
        assert str(mess_admin.current_mess_id) == response.data['id']
        assert mess_admin.is_mess_admin is True

    def test_create_mess_missing_fields(self, client_for, mess_admin):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:mess'), {'name': 'No Address'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'address' in response.data

    def test_create_mess_blank_name(self, client_for, mess_admin):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:mess'), {'name': '   ', 'address': 'Road'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'name' in response.data

    def test_create_second_mess_fails(self, client_for, mess, mess_admin):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:mess'), {'name': 'Second', 'address': 'Road'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'User is already part of a mess'

    def test_create_mess_unauthenticated(self, api_client):
        response = api_client.post(reverse('messes:mess'), {'name': 'X', 'address': 'Y'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_get_mess_details(self, client_for, mess, member):
        client = client_for(member)
        response = client.get(reverse('messes:mess'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == str(mess.id)
        assert response.data['member_count'] == 2
        emails = {m['user']['email'] for m in response.data['members']}
        assert emails == {'admin@example.com', 'requester@example.com'}

    def test_get_mess_details_without_mess(self, client_for, requester):
        client = client_for(requester)
        response = client.get(reverse('messes:mess'))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['error'] == 'User is not part of any mess'


@pytest.mark.django_db
class TestSearchMess:
    """Tests for GET /api/mess/search/<code>/"""

    def test_search_found(self, client_for, mess, requester):
        client = client_for(requester)
        response = client.get(reverse('messes:search', args=[mess.identifier_code]))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == str(mess.id)
        assert response.data['name'] == 'Green House'
        assert response.data['admin']['display_name'] == 'Mess Admin'

    def test_search_not_found(self, client_for, mess, requester):
        code = '100000' if mess.identifier_code != '100000' else '100001'
        client = client_for(requester)
        response = client.get(reverse('messes:search', args=[code]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'Mess not found'


# =============================================================================
# Join Request Lifecycle
# =============================================================================

@pytest.mark.django_db
class TestJoinMess:
    """Tests for POST /api/mess/join/"""

    def test_request_to_join(self, client_for, mess, requester):
        client = client_for(requester)
        response = client.post(reverse('messes:join'), {'mess_id': str(mess.id)})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['message'] == 'Join request sent successfully'
        assert response.data['request']['status'] == 'pending'
        assert JoinRequest.objects.filter(user=requester, status=JoinRequestStatus.PENDING).exists()

        requester.refresh_from_db()
        assert requester.current_mess_id is None

    def test_duplicate_request(self, client_for, mess, requester, pending_request):
        client = client_for(requester)
        response = client.post(reverse('messes:join'), {'mess_id': str(mess.id)})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'You already have a pending request for this mess'

    def test_unknown_mess(self, client_for, requester):
        client = client_for(requester)
        response = client.post(reverse('messes:join'), {'mess_id': str(uuid4())})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_member_with_unknown_mess(self, client_for, member):
        client = client_for(member)
        response = client.post(reverse('messes:join'), {'mess_id': str(uuid4())})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'User is already part of a mess'

    def test_invalid_mess_id(self, client_for, requester):
        client = client_for(requester)
        response = client.post(reverse('messes:join'), {'mess_id': 'abc'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'mess_id' in response.data

    @override_settings(MESS_JOIN_REQUIRES_APPROVAL=False)
    def test_direct_join_when_approval_disabled(self, client_for, mess, requester):
        client = client_for(requester)
        response = client.post(reverse('messes:join'), {'mess_id': str(mess.id)})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['message'] == 'Joined mess successfully'
        assert response.data['mess']['id'] == str(mess.id)

        requester.refresh_from_db()
        assert requester.current_mess_id == mess.id
        assert not JoinRequest.objects.filter(user=requester).exists()


@pytest.mark.django_db
class TestPendingRequests:
    """Tests for GET /api/mess/pending-requests/"""

    def test_admin_lists_pending(self, client_for, mess_admin, requester, pending_request):
        client = client_for(mess_admin)
        response = client.get(reverse('messes:pending-requests'))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]['request_id'] == str(pending_request.id)
        assert response.data[0]['user']['email'] == requester.email

    def test_member_denied(self, client_for, member):
        client = client_for(member)
        response = client.get(reverse('messes:pending-requests'))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_user_without_mess_denied(self, client_for, other_user):
        client = client_for(other_user)
        response = client.get(reverse('messes:pending-requests'))

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestAcceptRejectRequest:
    """Tests for POST /api/mess/accept-request/ and /api/mess/reject-request/"""

    def test_accept(self, client_for, mess, mess_admin, requester, pending_request):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:accept-request'), {'request_id': str(pending_request.id)})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Request accepted successfully'

        requester.refresh_from_db()
        assert requester.current_mess_id == mess.id
        assert requester.is_mess_admin is False

    def test_accept_twice(self, client_for, mess_admin, pending_request):
        client = client_for(mess_admin)
        url = reverse('messes:accept-request')
        client.post(url, {'request_id': str(pending_request.id)})
        response = client.post(url, {'request_id': str(pending_request.id)})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'Request not found or already processed'

    def test_accept_by_non_admin(self, client_for, pending_request, other_user):
        client = client_for(other_user)
        response = client.post(reverse('messes:accept-request'), {'request_id': str(pending_request.id)})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert JoinRequest.objects.get(pk=pending_request.pk).status == JoinRequestStatus.PENDING

    def test_accept_missing_request_id(self, client_for, mess_admin, mess):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:accept-request'), {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_reject(self, client_for, mess_admin, requester, pending_request):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:reject-request'), {'request_id': str(pending_request.id)})

        assert response.status_code == status.HTTP_200_OK
        assert JoinRequest.objects.get(pk=pending_request.pk).status == JoinRequestStatus.REJECTED

        requester.refresh_from_db()
        assert requester.current_mess_id is None


@pytest.mark.django_db
class TestCancelRequest:
    """Tests for POST /api/mess/cancel-request/"""

    def test_cancel(self, client_for, requester, pending_request):
        client = client_for(requester)
        response = client.post(reverse('messes:cancel-request'))

        assert response.status_code == status.HTTP_200_OK
        assert not JoinRequest.objects.filter(pk=pending_request.pk).exists()

    def test_cancel_twice(self, client_for, requester, pending_request):
        client = client_for(requester)
        client.post(reverse('messes:cancel-request'))
        response = client.post(reverse('messes:cancel-request'))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'No pending request found'


@pytest.mark.django_db
class TestCheckRequestStatus:
    """Tests for GET /api/mess/check-request-status/"""

    def test_none(self, client_for, requester):
        client = client_for(requester)
        response = client.get(reverse('messes:check-request-status'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'none'
        assert response.data['mess'] is None
        assert response.data['request_id'] is None

    def test_pending(self, client_for, mess, requester, pending_request):
        client = client_for(requester)
        response = client.get(reverse('messes:check-request-status'))

        assert response.data['status'] == 'pending'
        assert response.data['mess']['id'] == str(mess.id)
        assert response.data['request_id'] == str(pending_request.id)

    def test_accepted(self, client_for, mess, member):
        client = client_for(member)
        response = client.get(reverse('messes:check-request-status'))

        assert response.data['status'] == 'accepted'
        assert response.data['message'] == 'Your join request has been accepted!'
        assert response.data['mess']['identifier_code'] == mess.identifier_code


# =============================================================================
# Leave / Remove
# =============================================================================

@pytest.mark.django_db
class TestLeaveMess:
    """Tests for POST /api/mess/leave/"""

    def test_member_leaves(self, client_for, member):
        client = client_for(member)
        response = client.post(reverse('messes:leave'))

        assert response.status_code == status.HTTP_200_OK
        member.refresh_from_db()
        assert member.current_mess_id is None

    def test_admin_cannot_leave(self, client_for, mess, mess_admin):
        client = client_for(mess_admin)
        response = client.post(reverse('messes:leave'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Mess admin cannot leave. Transfer admin role first.'

    def test_user_without_mess(self, client_for, requester):
        client = client_for(requester)
        response = client.post(reverse('messes:leave'))

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestRemoveMember:
    """Tests for DELETE /api/mess/members/<member_id>/"""

    def test_admin_removes_member(self, client_for, mess_admin, member):
        client = client_for(mess_admin)
        response = client.delete(reverse('messes:remove-member', args=[member.id]))

        assert response.status_code == status.HTTP_200_OK
        member.refresh_from_db()
        assert member.current_mess_id is None

    def test_admin_cannot_remove_self(self, client_for, mess, mess_admin):
        client = client_for(mess_admin)
        response = client.delete(reverse('messes:remove-member', args=[mess_admin.id]))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Cannot remove mess admin'

    def test_remove_unknown_member(self, client_for, mess, mess_admin):
        client = client_for(mess_admin)
        response = client.delete(reverse('messes:remove-member', args=[uuid4()]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'Member not found'

    def test_member_cannot_remove(self, client_for, mess_admin, member):
        client = client_for(member)
        response = client.delete(reverse('messes:remove-member', args=[mess_admin.id]))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert User.objects.get(pk=mess_admin.pk).current_mess_id is not None


# =============================================================================
# Full Flow
# =============================================================================

@pytest.mark.django_db
def test_full_join_flow(client_for, mess_admin, requester):
    """Create, search, request, accept and see the new member."""
    admin_client = client_for(mess_admin)
    requester_client = client_for(requester)

    created = admin_client.post(reverse('messes:mess'), {'name': 'Flow Mess', 'address': 'Road'})
    code = created.data['identifier_code']

    found = requester_client.get(reverse('messes:search', args=[code]))
    requester_client.post(reverse('messes:join'), {'mess_id': found.data['id']})

    pending = admin_client.get(reverse('messes:pending-requests'))
    admin_client.post(reverse('messes:accept-request'), {'request_id': pending.data[0]['request_id']})

    details = requester_client.get(reverse('messes:mess'))
    assert details.status_code == status.HTTP_200_OK
    assert details.data['member_count'] == 2
    assert Mess.objects.get(identifier_code=code).memberships.filter(is_active=True).count() == 2
