import pytest

from events.exceptions import InsufficientInventoryError
from events.models import Event, Order, Ticket, TicketTier
from events.service import inventory

pytestmark = pytest.mark.django_db


def test_release_units_returns_units_to_the_pool(tier: TicketTier) -> None:
    TicketTier.objects.filter(pk=tier.pk).update(remaining_quantity=4)

    inventory.release_units(tier.pk, 3)

    tier.refresh_from_db()
    assert tier.remaining_quantity == 7


def test_release_units_never_exceeds_initial_quantity(tier: TicketTier) -> None:
    TicketTier.objects.filter(pk=tier.pk).update(remaining_quantity=9)

    inventory.release_units(tier.pk, 5)

    tier.refresh_from_db()
    assert tier.remaining_quantity == tier.initial_quantity


def test_consume_units_decrements(tier: TicketTier) -> None:
    inventory.consume_units(tier.pk, 4)

    tier.refresh_from_db()
    assert tier.remaining_quantity == 6


def test_consume_units_refuses_to_oversell(tier: TicketTier) -> None:
    TicketTier.objects.filter(pk=tier.pk).update(remaining_quantity=2)

    with pytest.raises(InsufficientInventoryError) as exc_info:
        inventory.consume_units(tier.pk, 3)

    assert str(exc_info.value) == 'Only 2 tickets remaining in "General"'
    tier.refresh_from_db()
    assert tier.remaining_quantity == 2


def test_decrement_event_sold_is_floored_at_zero(event: Event) -> None:
    Event.objects.filter(pk=event.pk).update(total_tickets_sold=1)

    inventory.decrement_event_sold(event.pk, 3)

    event.refresh_from_db()
    assert event.total_tickets_sold == 0


def test_creating_a_valid_ticket_consumes_inventory(ticket: Ticket) -> None:
    ticket.tier.refresh_from_db()
    ticket.event.refresh_from_db()
    assert ticket.tier.remaining_quantity == 9
    assert ticket.event.total_tickets_sold == 1


def test_creating_a_non_valid_ticket_does_not_consume(paid_order: Order, tier: TicketTier) -> None:
    Ticket.objects.create(
        order=paid_order,
        tier=tier,
        event=tier.event,
        attendee_email="gone@example.com",
        status=Ticket.TicketStatus.CANCELLED,
    )

    tier.refresh_from_db()
    assert tier.remaining_quantity == 10


def test_creating_a_ticket_on_an_exhausted_tier_fails(paid_order: Order, tier: TicketTier) -> None:
    TicketTier.objects.filter(pk=tier.pk).update(remaining_quantity=0)

    with pytest.raises(InsufficientInventoryError):
        Ticket.objects.create(order=paid_order, tier=tier, event=tier.event, attendee_email="late@example.com")

    assert not Ticket.objects.filter(attendee_email="late@example.com").exists()


def test_restore_inventory_batches_per_tier(
    paid_order: Order, tier: TicketTier, vip_tier: TicketTier, event: Event
) -> None:
    tickets = [
        Ticket.objects.create(order=paid_order, tier=tier, event=event, attendee_email="a@example.com"),
        Ticket.objects.create(order=paid_order, tier=tier, event=event, attendee_email="b@example.com"),
        Ticket.objects.create(order=paid_order, tier=vip_tier, event=event, attendee_email="c@example.com"),
    ]

    inventory.restore_inventory(tickets)

    tier.refresh_from_db()
    vip_tier.refresh_from_db()
    event.refresh_from_db()
    assert tier.remaining_quantity == 10
    assert vip_tier.remaining_quantity == 5
    assert event.total_tickets_sold == 0


def test_recompute_event_capacity(event: Event, tier: TicketTier, vip_tier: TicketTier) -> None:
    Event.objects.filter(pk=event.pk).update(total_capacity=0)

    assert inventory.recompute_event_capacity(event) == 15

    event.refresh_from_db()
    assert event.total_capacity == 15


def test_saving_a_stale_tier_does_not_overwrite_the_counter(tier: TicketTier) -> None:
    stale = TicketTier.objects.get(pk=tier.pk)
    inventory.consume_units(tier.pk, 3)

    stale.description = "Standing room"
    stale.save()

    tier.refresh_from_db()
    assert tier.remaining_quantity == 7
    assert tier.description == "Standing room"


def test_saving_a_stale_event_does_not_overwrite_the_sold_counter(event: Event) -> None:
    stale = Event.objects.get(pk=event.pk)
    inventory.increment_event_sold(event.pk, 2)

    stale.title = "Late Jazz Night"
    stale.save()

    event.refresh_from_db()
    assert event.total_tickets_sold == 2
    assert event.title == "Late Jazz Night"
