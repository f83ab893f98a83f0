"""Tier inventory ledger.

``TicketTier.remaining_quantity`` and ``Event.total_tickets_sold`` are shared counters touched by
every issuance and cancellation path. They are only ever changed here, and only through single
UPDATE statements computing the new value from the committed row, so concurrent writers can't
overwrite each other.
"""

import typing as t
from collections import Counter
from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import F, Sum, Value
from django.db.models.functions import Coalesce, Greatest, Least

from events.exceptions import InsufficientInventoryError
from events.models import Event, Ticket, TicketTier

logger = structlog.get_logger(__name__)


def release_units(tier_id: UUID, count: int) -> None:
    """Return ``count`` units to the tier's sellable pool.

    Clamped to ``initial_quantity`` so a double release can't push the pool past its size.
    """
    if count <= 0:
        return
    TicketTier.objects.filter(pk=tier_id).update(
        remaining_quantity=Least(F("remaining_quantity") + count, F("initial_quantity"))
    )
    logger.debug("tier_units_released", tier_id=str(tier_id), count=count)


def consume_units(tier_id: UUID, count: int) -> None:
    """Take ``count`` units from the tier.

    Raises:
        InsufficientInventoryError: If fewer than ``count`` units are left.
    """
    if count <= 0:
        return
    updated = TicketTier.objects.filter(pk=tier_id, remaining_quantity__gte=count).update(
        remaining_quantity=F("remaining_quantity") - count
    )
    if not updated:
        tier = TicketTier.objects.only("remaining_quantity", "name").get(pk=tier_id)
        logger.warning(
            "tier_inventory_exhausted", tier_id=str(tier_id), requested=count, remaining=tier.remaining_quantity
        )
        raise InsufficientInventoryError(tier.remaining_quantity, tier.name)
    logger.debug("tier_units_consumed", tier_id=str(tier_id), count=count)


def increment_event_sold(event_id: UUID, count: int) -> None:
    if count <= 0:
        return
    Event.objects.filter(pk=event_id).update(total_tickets_sold=F("total_tickets_sold") + count)


def decrement_event_sold(event_id: UUID, count: int) -> None:
    """Decrement the sold counter, floored at zero."""
    if count <= 0:
        return
    Event.objects.filter(pk=event_id).update(total_tickets_sold=Greatest(F("total_tickets_sold") - count, Value(0)))


def restore_inventory(tickets: t.Iterable[Ticket]) -> None:
    """Give the units held by ``tickets`` back to their tiers and events.

    One statement per tier and one per event, regardless of the number of tickets.
    """
    tickets = list(tickets)
    for tier_id, count in Counter(ticket.tier_id for ticket in tickets).items():
        release_units(tier_id, count)
    for event_id, count in Counter(ticket.event_id for ticket in tickets).items():
        decrement_event_sold(event_id, count)
    logger.info("inventory_restored", ticket_count=len(tickets))


def consume_for_new_ticket(ticket: Ticket) -> None:
    """Book a freshly created valid ticket against its tier and event.

    Runs in the same transaction as the ticket insert, so an exhausted tier rolls the insert back.
    """
    with transaction.atomic():
        consume_units(ticket.tier_id, 1)
        increment_event_sold(ticket.event_id, 1)


def recompute_event_capacity(event: Event) -> int:
    """Set ``total_capacity`` to the sum of the event's tier sizes."""
    total = event.ticket_tiers.aggregate(total=Coalesce(Sum("initial_quantity"), 0))["total"]
    Event.objects.filter(pk=event.pk).update(total_capacity=total)
    event.total_capacity = total
    return t.cast(int, total)
