import secrets
import typing as t
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models, transaction
from simple_history.models import HistoricalRecords

from common.models import TimeStampedModel

from .event import Event, fields_except

if t.TYPE_CHECKING:
    from accounts.models import BoxOfficeUser


def generate_qr_code_secret() -> str:
    return secrets.token_urlsafe(24)


class TicketTier(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="ticket_tiers")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0"), validators=[MinValueValidator(Decimal("0"))]
    )
    currency = models.CharField(max_length=3, blank=True, default="")
    initial_quantity = models.PositiveIntegerField(default=0)
    # Only ever changed through single-statement F() deltas in events.service.inventory.
    remaining_quantity = models.PositiveIntegerField(default=0)
    max_per_order = models.PositiveIntegerField(default=10, validators=[MinValueValidator(1)])
    sales_start_at = models.DateTimeField(null=True, blank=True)
    sales_end_at = models.DateTimeField(null=True, blank=True)
    is_hidden = models.BooleanField(default=False)

    class Meta:
        ordering = ["price", "name"]
        constraints = [
            models.CheckConstraint(condition=models.Q(remaining_quantity__gte=0), name="tier_remaining_non_negative"),
            models.CheckConstraint(
                condition=models.Q(remaining_quantity__lte=models.F("initial_quantity")),
                name="tier_remaining_within_initial",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.event})"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Normalize the currency code and keep updates away from the remaining counter."""
        self.currency = (self.currency or "").upper()
        if not self._state.adding and kwargs.get("update_fields") is None:
            kwargs["update_fields"] = fields_except(self, ("remaining_quantity",))
        super().save(*args, **kwargs)

    @property
    def effective_currency(self) -> str:
        """Tier currency, falling back to the event's."""
        return self.currency or self.event.currency or settings.DEFAULT_CURRENCY


class Order(TimeStampedModel):
    class OrderStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        PARTIALLY_REFUNDED = "partially_refunded", "Partially refunded"
        REFUNDED = "refunded", "Refunded"

    class Source(models.TextChoices):
        CHECKOUT = "checkout", "Checkout"
        ORGANIZER = "organizer", "Organizer"

    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="orders")
    stripe_payment_intent_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    stripe_checkout_session_id = models.CharField(max_length=255, null=True, blank=True)
    buyer_name = models.CharField(max_length=255, blank=True, default="")
    buyer_email = models.EmailField(blank=True, default="")
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    platform_fee_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    organizer_payout_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    currency = models.CharField(max_length=3, blank=True, default="")
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True
    )
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.CHECKOUT)
    notes = models.TextField(blank=True, default="")

    history = HistoricalRecords()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order {str(self.id)[:8]} for {self.event}"

    @property
    def has_payment(self) -> bool:
        return bool(self.stripe_payment_intent_id)

    def append_note(self, note: str) -> None:
        """Append a line to the audit notes and persist only that field."""
        self.notes = f"{self.notes}\n{note}" if self.notes else note
        self.save(update_fields=["notes", "updated_at"])


class OrderItem(TimeStampedModel):
    """What an order bought from one tier, at the price it was sold for."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    tier = models.ForeignKey(TicketTier, on_delete=models.PROTECT, related_name="order_items")
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.quantity} x {self.tier.name}"


class TicketQuerySet(models.QuerySet["Ticket"]):
    def valid(self) -> t.Self:
        return self.filter(status=Ticket.TicketStatus.VALID)

    def owned_by(self, organizer: "BoxOfficeUser") -> t.Self:
        return self.filter(event__organizer=organizer)

    def with_details(self) -> t.Self:
        return self.select_related("tier", "event", "order")


class TicketManager(models.Manager["Ticket"]):
    def get_queryset(self) -> TicketQuerySet:
        return TicketQuerySet(self.model, using=self._db)

    def valid(self) -> TicketQuerySet:
        return self.get_queryset().valid()

    def owned_by(self, organizer: "BoxOfficeUser") -> TicketQuerySet:
        return self.get_queryset().owned_by(organizer)

    def with_details(self) -> TicketQuerySet:
        return self.get_queryset().with_details()


class Ticket(TimeStampedModel):
    """An admission issued against one tier of an event, grouped under an order."""

    class TicketStatus(models.TextChoices):
        VALID = "valid", "Valid"
        USED = "used", "Used"
        CANCELLED = "cancelled", "Cancelled"
        REFUNDED = "refunded", "Refunded"

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="tickets")
    tier = models.ForeignKey(TicketTier, on_delete=models.PROTECT, related_name="tickets")
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="tickets")
    attendee_name = models.CharField(max_length=255, blank=True, default="")
    attendee_email = models.EmailField(db_index=True)
    status = models.CharField(
        max_length=20, choices=TicketStatus.choices, default=TicketStatus.VALID, db_index=True
    )
    issued_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="issued_tickets",
    )
    issue_reason = models.TextField(blank=True, default="")
    original_ticket = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reissues",
        help_text="The ticket this one replaced.",
    )
    qr_code_secret = models.CharField(max_length=64, default=generate_qr_code_secret, unique=True, editable=False)
    checked_in_at = models.DateTimeField(null=True, blank=True, editable=False)

    history = HistoricalRecords()

    objects = TicketManager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Ticket {str(self.id)[:8]} ({self.status}) for {self.attendee_email}"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Save inside a savepoint so an inventory failure in the post-save hook undoes the insert."""
        with transaction.atomic():
            super().save(*args, **kwargs)

    @property
    def is_valid(self) -> bool:
        return self.status == self.TicketStatus.VALID
