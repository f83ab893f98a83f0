"""Request and response schemas for the organizer API."""

import typing as t
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import AwareDatetime, EmailStr, Field, StringConstraints, model_validator

from events.models import Event, EventOccurrence, TicketTier

T = t.TypeVar("T")

StrippedString = t.Annotated[str, StringConstraints(strip_whitespace=True)]
CurrencyCode = t.Annotated[str, StringConstraints(strip_whitespace=True, to_upper=True, pattern=r"^[A-Za-z]{3}$")]


class SuccessResponse(Schema, t.Generic[T]):
    success: t.Literal[True] = True
    data: T


# --- Event authoring ---


class OccurrenceIn(Schema):
    starts_at: AwareDatetime
    ends_at: AwareDatetime | None = None
    label: StrippedString = ""

    @model_validator(mode="after")
    def ends_after_start(self) -> t.Self:
        """Occurrences can't end before they start."""
        if self.ends_at and self.ends_at < self.starts_at:
            raise ValueError("An event date can't end before it starts.")
        return self


class TicketTierIn(Schema):
    name: t.Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    description: StrippedString = ""
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    currency: CurrencyCode | None = None
    initial_quantity: int = Field(ge=0)
    max_per_order: int = Field(default=10, ge=1)
    sales_start_at: AwareDatetime | None = None
    sales_end_at: AwareDatetime | None = None
    is_hidden: bool = False


class EventForm(Schema):
    title: StrippedString = ""
    slug: StrippedString = ""
    description: str = ""
    location_type: Event.LocationType = Event.LocationType.PHYSICAL
    venue_name: StrippedString = ""
    address_text: StrippedString = ""
    city: StrippedString = ""
    currency: CurrencyCode | None = None
    sales_start_at: AwareDatetime | None = None
    sales_end_at: AwareDatetime | None = None
    occurrences: list[OccurrenceIn] = Field(default_factory=list)
    ticket_tiers: list[TicketTierIn] = Field(default_factory=list)


class OccurrenceSchema(ModelSchema):
    class Meta:
        model = EventOccurrence
        fields = ["id", "starts_at", "ends_at", "label"]


class TicketTierSchema(ModelSchema):
    class Meta:
        model = TicketTier
        fields = [
            "id",
            "name",
            "description",
            "price",
            "currency",
            "initial_quantity",
            "remaining_quantity",
            "max_per_order",
            "sales_start_at",
            "sales_end_at",
            "is_hidden",
        ]


class EventSchema(ModelSchema):
    organizer_id: UUID
    occurrences: list[OccurrenceSchema]
    ticket_tiers: list[TicketTierSchema]

    class Meta:
        model = Event
        fields = [
            "id",
            "status",
            "title",
            "slug",
            "description",
            "location_type",
            "venue_name",
            "address_text",
            "city",
            "currency",
            "sales_start_at",
            "sales_end_at",
            "total_capacity",
            "total_tickets_sold",
            "created_at",
            "updated_at",
        ]

    @staticmethod
    def resolve_occurrences(obj: Event) -> list[EventOccurrence]:
        return list(obj.occurrences.all())

    @staticmethod
    def resolve_ticket_tiers(obj: Event) -> list[TicketTier]:
        return list(obj.ticket_tiers.all())


class DeleteEventIn(Schema):
    reason: str | None = None
    release_to_pool: bool = False


class EventDeletionSchema(Schema):
    id: UUID
    mode: t.Literal["deleted", "cancelled"]
    refunded_orders: int = 0
    failed_refund_order_ids: list[UUID] = Field(default_factory=list)


# --- Refunds ---


class RefundTicketIn(Schema):
    reason: str
    release_to_pool: bool = False


class RefundOrderIn(Schema):
    reason: str
    release_to_pool: bool = False
    ticket_ids: list[UUID] | None = None


class TicketRefundSchema(Schema):
    refund_id: str | None
    ticket_id: UUID
    status: str
    amount: Decimal
    currency: str


class OrderRefundSchema(Schema):
    refund_id: str | None
    order_id: UUID
    refunded_count: int
    total_refund: Decimal
    currency: str


# --- Issuance ---


class IssueTicketsIn(Schema):
    tier_id: UUID
    quantity: int = Field(default=1, ge=1, le=100)
    attendee_name: StrippedString = ""
    attendee_email: EmailStr
    reason: str
    is_free: bool = True


class ManualIssuanceSchema(Schema):
    order_id: UUID
    ticket_ids: list[UUID]
    total_amount: Decimal
    currency: str


class ReissueTicketIn(Schema):
    new_attendee_name: StrippedString = ""
    new_attendee_email: EmailStr
    reason: str


class ReissueSchema(Schema):
    new_ticket_id: UUID
    old_ticket_id: UUID


class SendTicketsIn(Schema):
    ticket_ids: list[UUID] = Field(min_length=1)
    recipient_email: EmailStr
    recipient_name: StrippedString = ""


class SentTicketsSchema(Schema):
    sent: int


class TicketSchema(Schema):
    id: UUID
    order_id: UUID
    tier_id: UUID
    tier_name: str = Field(alias="tier.name")
    attendee_name: str
    attendee_email: str
    status: str
    issue_reason: str
    original_ticket_id: UUID | None = None
    created_at: datetime


# --- Payouts ---


class PayoutStatusSchema(Schema):
    stripe_onboarding_completed: bool
    default_currency: str
