import re
import uuid

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class BoxOfficeUserQueryset(models.QuerySet["BoxOfficeUser"]):
    """Queryset for BoxOfficeUser."""

    def organizers(self) -> "BoxOfficeUserQueryset":
        """Accounts that may own events."""
        return self.filter(role__in=BoxOfficeUser.ORGANIZER_ROLES, is_active=True)


class BoxOfficeUserManager(UserManager["BoxOfficeUser"]):
    def get_queryset(self) -> BoxOfficeUserQueryset:
        """Get queryset for BoxOfficeUser."""
        return BoxOfficeUserQueryset(self.model)

    def organizers(self) -> BoxOfficeUserQueryset:
        """Accounts that may own events."""
        return self.get_queryset().organizers()


class BoxOfficeUser(AbstractUser):
    class Role(models.TextChoices):
        ATTENDEE = "attendee", "Attendee"
        ORGANIZER = "organizer", "Organizer"
        NON_PROFIT = "non_profit", "Non-profit"
        ADMIN = "admin", "Admin"

    class StripeAccountType(models.TextChoices):
        EXPRESS = "express", "Express"
        STANDARD = "standard", "Standard"

    ORGANIZER_ROLES = (Role.ORGANIZER, Role.NON_PROFIT)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.ATTENDEE, db_index=True)
    organization_name = models.CharField(max_length=255, blank=True, default="")

    stripe_account_id = models.CharField(max_length=255, blank=True, null=True, unique=True)
    stripe_account_type = models.CharField(
        max_length=20, choices=StripeAccountType.choices, blank=True, null=True, default=None
    )
    stripe_onboarding_completed = models.BooleanField(default=False)
    default_currency = models.CharField(max_length=3, blank=True, default="")

    objects = BoxOfficeUserManager()  # type: ignore[misc]

    class Meta:
        ordering = ["username"]

    @property
    def is_platform_admin(self) -> bool:
        """Admins may act on behalf of any organizer."""
        return self.role == self.Role.ADMIN or self.is_superuser

    @property
    def is_organizer(self) -> bool:
        return self.role in self.ORGANIZER_ROLES

    @property
    def payouts_connected(self) -> bool:
        """Whether the connected Stripe account can receive payouts."""
        return bool(self.stripe_account_id) and self.stripe_onboarding_completed

    @property
    def display_name(self) -> str:
        """Display name."""
        return (
            self.organization_name
            or self.get_full_name()
            or re.sub(r"(\W|_)+", " ", self.username.split("@")[0]).title()
        )
