import uuid

import pytest
from conftest import BoxOfficeUserFactory

from accounts.models import BoxOfficeUser
from accounts.service.perspective import PerspectiveError, resolve_acting_organizer
from common.exceptions import FailureCode

pytestmark = pytest.mark.django_db


def test_no_perspective_returns_the_user(organizer: BoxOfficeUser) -> None:
    assert resolve_acting_organizer(organizer) == organizer
    assert resolve_acting_organizer(organizer, str(organizer.pk)) == organizer


def test_admin_can_act_as_organizer(platform_admin: BoxOfficeUser, organizer: BoxOfficeUser) -> None:
    assert resolve_acting_organizer(platform_admin, organizer.pk) == organizer


def test_superuser_counts_as_admin(user_factory: BoxOfficeUserFactory, organizer: BoxOfficeUser) -> None:
    superuser = user_factory(is_superuser=True)

    assert resolve_acting_organizer(superuser, organizer.pk) == organizer


def test_organizer_cannot_switch(other_organizer: BoxOfficeUser, organizer: BoxOfficeUser) -> None:
    with pytest.raises(PerspectiveError) as exc_info:
        resolve_acting_organizer(other_organizer, organizer.pk)

    assert exc_info.value.code == FailureCode.UNAUTHORIZED


@pytest.mark.parametrize("target", ["attendee", "missing", "garbage"])
def test_invalid_target(platform_admin: BoxOfficeUser, attendee: BoxOfficeUser, target: str) -> None:
    target_id = {"attendee": str(attendee.pk), "missing": str(uuid.uuid4()), "garbage": "not-a-uuid"}[target]

    with pytest.raises(PerspectiveError) as exc_info:
        resolve_acting_organizer(platform_admin, target_id)

    assert exc_info.value.code == FailureCode.NOT_FOUND
    assert exc_info.value.message == "Organizer not found."


def test_inactive_organizer_is_not_a_target(platform_admin: BoxOfficeUser, organizer: BoxOfficeUser) -> None:
    BoxOfficeUser.objects.filter(pk=organizer.pk).update(is_active=False)

    with pytest.raises(PerspectiveError):
        resolve_acting_organizer(platform_admin, organizer.pk)


def test_display_name(user_factory: BoxOfficeUserFactory) -> None:
    assert user_factory(username="jane_doe@example.com", first_name="", last_name="").display_name == "Jane Doe"
    assert user_factory(organization_name="Night Owls").display_name == "Night Owls"
