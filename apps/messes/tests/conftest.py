import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User
from apps.messes.services import MembershipService
from apps.realtime import broadcasters
from apps.realtime.broadcasters import InMemoryBroadcaster


@pytest.fixture(autouse=True)
def clear_outbox():
    """Start every test with an empty broadcast outbox."""
    broadcasters.outbox.clear()
    yield
    broadcasters.outbox.clear()


@pytest.fixture
def outbox():
    return broadcasters.outbox


@pytest.fixture
def service():
    """Membership service recording broadcasts in the outbox."""
    return MembershipService(broadcaster=InMemoryBroadcaster())


@pytest.fixture
def mess_admin(db):
    """Create and return the user who will administer the mess."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        display_name='Mess Admin',
    )


@pytest.fixture
def requester(db):
    """Create and return a user with no mess."""
    return User.objects.create_user(
        email='requester@example.com',
        password='TestPass123!',
        display_name='Requester',
    )


@pytest.fixture
def other_user(db):
    """Create and return another user with no mess."""
    return User.objects.create_user(
        email='other@example.com',
        password='TestPass123!',
        display_name='Other User',
    )


@pytest.fixture
def mess(service, mess_admin):
    """Create a mess administered by ``mess_admin``."""
    return service.create_mess(
        name='Green House',
        address='12 College Road',
        user=mess_admin,
    )


@pytest.fixture
def pending_request(service, mess, requester):
    """A pending join request from ``requester`` to ``mess``."""
    return service.request_to_join(mess_id=mess.id, user=requester)


@pytest.fixture
def member(service, mess, mess_admin, requester):
    """``requester`` accepted into ``mess``, reloaded from the database."""
    join_request = service.request_to_join(mess_id=mess.id, user=requester)
    service.accept_request(request_id=join_request.id, admin=mess_admin)
    return User.objects.get(pk=requester.pk)


@pytest.fixture
def other_member(service, mess, mess_admin, other_user):
    """``other_user`` accepted into ``mess``, reloaded from the database."""
    join_request = service.request_to_join(mess_id=mess.id, user=other_user)
    service.accept_request(request_id=join_request.id, admin=mess_admin)
    return User.objects.get(pk=other_user.pk)


@pytest.fixture
def client_for():
    """Return a factory building an API client authenticated as a user."""
    def make(user):
        client = APIClient()
        refresh = RefreshToken.for_user(user)
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return client
    return make


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()
