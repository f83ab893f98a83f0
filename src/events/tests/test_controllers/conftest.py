import pytest
from django.test.client import Client
from ninja_jwt.tokens import RefreshToken

from accounts.models import BoxOfficeUser


def _client_for(user: BoxOfficeUser) -> Client:
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def organizer_client(organizer: BoxOfficeUser) -> Client:
    """API client for the event's organizer."""
    return _client_for(organizer)


@pytest.fixture
def other_organizer_client(other_organizer: BoxOfficeUser) -> Client:
    return _client_for(other_organizer)


@pytest.fixture
def admin_client_jwt(platform_admin: BoxOfficeUser) -> Client:
    """API client for a platform admin."""
    return _client_for(platform_admin)
