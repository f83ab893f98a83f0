import secrets
import string
import typing as t

import faker
import pytest

from accounts.models import BoxOfficeUser
from boxoffice.celery import app as celery_app


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> t.Iterator[None]:
    """Run Celery tasks synchronously so their side effects can be asserted."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True
    celery_app.conf.task_always_eager = True
    celery_app.conf.task_eager_propagates = True
    yield


class BoxOfficeUserFactory:
    """Factory for creating BoxOfficeUser instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> BoxOfficeUser:
        username = kwargs.pop(
            "username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)) + "@user.test"
        )
        email = kwargs.pop("email", username + ("@test.com" if "@" not in username else ""))
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        return BoxOfficeUser.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> BoxOfficeUser:
        return self.create_user(**kwargs)


@pytest.fixture
def user_factory() -> BoxOfficeUserFactory:
    return BoxOfficeUserFactory()


@pytest.fixture
def organizer(user_factory: BoxOfficeUserFactory) -> BoxOfficeUser:
    """An organizer whose Stripe account is ready for payouts."""
    return user_factory(
        username="organizer@user.test",
        role=BoxOfficeUser.Role.ORGANIZER,
        organization_name="Night Owls",
        stripe_account_id="acct_organizer",
        stripe_onboarding_completed=True,
        default_currency="CAD",
    )


@pytest.fixture
def other_organizer(user_factory: BoxOfficeUserFactory) -> BoxOfficeUser:
    return user_factory(
        username="rival@user.test",
        role=BoxOfficeUser.Role.ORGANIZER,
        stripe_account_id="acct_rival",
        stripe_onboarding_completed=True,
    )


@pytest.fixture
def platform_admin(user_factory: BoxOfficeUserFactory) -> BoxOfficeUser:
    return user_factory(username="admin@user.test", role=BoxOfficeUser.Role.ADMIN)


@pytest.fixture
def attendee(user_factory: BoxOfficeUserFactory) -> BoxOfficeUser:
    return user_factory(username="attendee@user.test")

