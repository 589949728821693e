import pytest
from rest_framework_simplejwt.tokens import AccessToken

from apps.accounts.models import User
from apps.messes.services import MembershipService
from apps.realtime import broadcasters


@pytest.fixture(autouse=True)
def clear_outbox():
    broadcasters.outbox.clear()
    yield
    broadcasters.outbox.clear()


@pytest.fixture
def user(db):
    """Create and return a test user."""
    return User.objects.create_user(
        email='socket@example.com',
        password='TestPass123!',
        display_name='Socket User',
    )


@pytest.fixture
def outsider(db):
    """Create and return a user who belongs to no mess."""
    return User.objects.create_user(
        email='outsider@example.com',
        password='TestPass123!',
        display_name='Outsider',
    )


@pytest.fixture
def mess(user):
    """A mess administered by ``user``."""
    return MembershipService().create_mess(name='Socket Mess', address='Road', user=user)


@pytest.fixture
def access_token(user):
    return str(AccessToken.for_user(user))
