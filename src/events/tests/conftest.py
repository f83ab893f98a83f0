from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from accounts.models import BoxOfficeUser
from common.models import SiteSettings
from events.models import Event, EventOccurrence, Order, Ticket, TicketTier
from events.service import inventory


@pytest.fixture(autouse=True)
def live_emails(db: None) -> SiteSettings:
    """Deliver to real recipients instead of the internal catch-all."""
    site_settings = SiteSettings.get_solo()
    site_settings.live_emails = True
    site_settings.save()
    return site_settings


@pytest.fixture
def event(organizer: BoxOfficeUser) -> Event:
    event = Event.objects.create(
        organizer=organizer,
        title="Jazz Night",
        status=Event.EventStatus.PUBLISHED,
        venue_name="Blue Room",
        city="Montreal",
        currency="CAD",
    )
    EventOccurrence.objects.create(event=event, starts_at=timezone.now() + timedelta(days=14))
    return event


@pytest.fixture
def tier(event: Event) -> TicketTier:
    tier = TicketTier.objects.create(
        event=event, name="General", price=Decimal("25.00"), initial_quantity=10, remaining_quantity=10
    )
    inventory.recompute_event_capacity(event)
    return tier


@pytest.fixture
def vip_tier(event: Event, tier: TicketTier) -> TicketTier:
    vip = TicketTier.objects.create(
        event=event, name="VIP", price=Decimal("60.00"), initial_quantity=5, remaining_quantity=5
    )
    inventory.recompute_event_capacity(event)
    return vip


@pytest.fixture
def paid_order(event: Event) -> Order:
    return Order.objects.create(
        event=event,
        stripe_payment_intent_id="pi_paid",
        buyer_name="Ann Buyer",
        buyer_email="ann@example.com",
        total_amount=Decimal("50.00"),
        currency="CAD",
        status=Order.OrderStatus.COMPLETED,
    )


@pytest.fixture
def unpaid_order(event: Event) -> Order:
    return Order.objects.create(
        event=event,
        buyer_email="guest@example.com",
        currency="CAD",
        status=Order.OrderStatus.COMPLETED,
        source=Order.Source.ORGANIZER,
    )


@pytest.fixture
def ticket(paid_order: Order, tier: TicketTier) -> Ticket:
    return Ticket.objects.create(
        order=paid_order, tier=tier, event=tier.event, attendee_name="Ann", attendee_email="ann@example.com"
    )


@pytest.fixture
def second_ticket(paid_order: Order, tier: TicketTier) -> Ticket:
    return Ticket.objects.create(
        order=paid_order, tier=tier, event=tier.event, attendee_name="Bob", attendee_email="bob@example.com"
    )

