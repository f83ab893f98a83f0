"""Event authoring and lifecycle.

Status moves ``draft -> published -> draft`` (unpublish), ``draft | published -> cancelled`` and
``published -> completed`` (done by ``events.tasks.complete_past_events``). ``cancelled`` and
``completed`` are terminal.

Deleting an event only removes rows while no ticket has ever been issued for it. Once tickets
exist, deleting turns into a mass refund and cancellation and the event row is kept so ticket
history survives.
"""

import typing as t
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from accounts.models import BoxOfficeUser
from common.results import returns_result
from events.exceptions import (
    InvalidEventStateError,
    PaymentProcessorError,
    PayoutsNotConnectedError,
    PreconditionError,
)
from events.models import Event, EventOccurrence, Order, Ticket, TicketTier
from events.schema import EventForm, OccurrenceIn, TicketTierIn
from events.service import inventory, stripe_service, ticket_lifecycle, ticket_notification_service
from events.service.ownership import get_owned_event
from events.service.refund_service import order_idempotency_key, refresh_order_status, require_reason, ticket_currency
from events.utils import to_minor_units

logger = structlog.get_logger(__name__)

Status = Event.EventStatus


@dataclass(frozen=True)
class EventDeletion:
    id: UUID
    mode: t.Literal["deleted", "cancelled"]
    refunded_orders: int = 0
    failed_refund_order_ids: list[UUID] = field(default_factory=list)


def _event_fields(form: EventForm, default_currency: str) -> dict[str, t.Any]:
    return {
        "title": form.title,
        "slug": form.slug,
        "description": form.description,
        "location_type": form.location_type,
        "venue_name": form.venue_name,
        "address_text": form.address_text,
        "city": form.city,
        "currency": form.currency or default_currency,
        "sales_start_at": form.sales_start_at,
        "sales_end_at": form.sales_end_at,
    }


def _create_occurrences(event: Event, occurrences: list[OccurrenceIn]) -> None:
    for occurrence in occurrences:
        EventOccurrence.objects.create(
            event=event,
            starts_at=occurrence.starts_at,
            ends_at=occurrence.ends_at,
            label=occurrence.label,
        )


def _create_tiers(event: Event, tiers: list[TicketTierIn]) -> None:
    for tier in tiers:
        TicketTier.objects.create(
            event=event,
            name=tier.name,
            description=tier.description,
            price=tier.price,
            currency=tier.currency or event.currency,
            initial_quantity=tier.initial_quantity,
            remaining_quantity=tier.initial_quantity,
            max_per_order=tier.max_per_order,
            sales_start_at=tier.sales_start_at,
            sales_end_at=tier.sales_end_at,
            is_hidden=tier.is_hidden,
        )


def _load(event: Event) -> Event:
    return Event.objects.with_tiers().get(pk=event.pk)


@returns_result
def create_event(actor: BoxOfficeUser, form: EventForm) -> Event:
    """Create a draft event with its dates and tiers.

    Payouts have to be set up first so that anything sold can actually be paid out.
    """
    if not actor.payouts_connected:
        raise PayoutsNotConnectedError()
    with transaction.atomic():
        event = Event.objects.create(
            organizer=actor,
            status=Status.DRAFT,
            **_event_fields(form, actor.default_currency or settings.DEFAULT_CURRENCY),
        )
        _create_occurrences(event, form.occurrences)
        _create_tiers(event, form.ticket_tiers)
        inventory.recompute_event_capacity(event)
    logger.info("event_created", event_id=str(event.pk), organizer_id=str(actor.pk), tiers=len(form.ticket_tiers))
    return _load(event)


@returns_result
def update_event(actor: BoxOfficeUser, event_id: UUID | str, form: EventForm) -> Event:
    """Update an event's details.

    Non-empty ``occurrences`` and ``ticket_tiers`` replace the existing ones. Tiers can only be
    replaced while no ticket has ever been issued, since tickets keep pointing at their tier.
    """
    with transaction.atomic():
        event = get_owned_event(actor, event_id, for_update=True)
        if event.status in (Status.CANCELLED, Status.COMPLETED):
            raise InvalidEventStateError(f'Cannot edit event with status "{event.status}"')
        if form.ticket_tiers and event.tickets.exists():
            raise InvalidEventStateError("Ticket tiers can't be replaced once tickets have been issued")

        for name, value in _event_fields(form, event.currency).items():
            setattr(event, name, value)
        event.save()

        if form.occurrences:
            event.occurrences.all().delete()
            _create_occurrences(event, form.occurrences)
        if form.ticket_tiers:
            event.ticket_tiers.all().delete()
            _create_tiers(event, form.ticket_tiers)
        inventory.recompute_event_capacity(event)
    logger.info("event_updated", event_id=str(event.pk), organizer_id=str(actor.pk))
    return _load(event)


@returns_result
def publish_event(actor: BoxOfficeUser, event_id: UUID | str) -> Event:
    """Make a draft event public, naming the first missing requirement if it isn't ready."""
    with transaction.atomic():
        event = get_owned_event(actor, event_id, for_update=True)
        if event.status != Status.DRAFT:
            raise InvalidEventStateError(f'Cannot publish event with status "{event.status}"')
        if not event.title:
            raise PreconditionError("Event must have a title")
        if not event.occurrences.exists():
            raise PreconditionError("Event must have at least one event date")
        if not event.ticket_tiers.exists():
            raise PreconditionError("Event must have at least one ticket tier")
        event.status = Status.PUBLISHED
        event.save(update_fields=["status", "updated_at"])
    logger.info("event_published", event_id=str(event.pk))
    return _load(event)


@returns_result
def unpublish_event(actor: BoxOfficeUser, event_id: UUID | str) -> Event:
    with transaction.atomic():
        event = get_owned_event(actor, event_id, for_update=True)
        if event.status != Status.PUBLISHED:
            raise InvalidEventStateError(f'Cannot unpublish event with status "{event.status}"')
        event.status = Status.DRAFT
        event.save(update_fields=["status", "updated_at"])
    logger.info("event_unpublished", event_id=str(event.pk))
    return _load(event)


@returns_result
def cancel_event(actor: BoxOfficeUser, event_id: UUID | str) -> Event:
    """Cancel an event without touching its tickets. Use ``delete_event`` to refund them."""
    with transaction.atomic():
        event = get_owned_event(actor, event_id, for_update=True)
        if event.status == Status.CANCELLED:
            raise InvalidEventStateError("Event is already cancelled")
        if event.status == Status.COMPLETED:
            raise InvalidEventStateError(f'Cannot cancel event with status "{event.status}"')
        event.status = Status.CANCELLED
        event.save(update_fields=["status", "updated_at"])
    logger.info("event_cancelled", event_id=str(event.pk))
    return _load(event)


def _cancel_order_tickets(
    event: Event, tickets: list[Ticket], reason: str, release_to_pool: bool
) -> tuple[list[Ticket], t.Literal["refunded", "failed", "skipped"]]:
    """Refund one order's share of the cascade and cancel its tickets.

    The tickets stay locked from before the Stripe call until they are cancelled. A failed refund
    is logged and the tickets are cancelled anyway.

    Returns:
        The tickets that were cancelled and what happened to the refund.
    """
    order = tickets[0].order
    outcome: t.Literal["refunded", "failed", "skipped"] = "skipped"
    with transaction.atomic():
        tickets = ticket_lifecycle.lock_valid(tickets)
        if not tickets:
            return [], outcome
        minor_amount = sum(to_minor_units(ticket.tier.price, ticket_currency(ticket, order)) for ticket in tickets)
        if order.stripe_payment_intent_id and minor_amount > 0:
            try:
                stripe_service.create_refund(
                    order.stripe_payment_intent_id,
                    minor_amount,
                    idempotency_key=order_idempotency_key(order, tickets),
                    metadata={"order_id": str(order.pk), "event_id": str(event.pk), "reason": reason[:500]},
                )
                outcome = "refunded"
            except PaymentProcessorError as e:
                logger.error(
                    "event_cascade_refund_failed", event_id=str(event.pk), order_id=str(order.pk), error=str(e)
                )
                outcome = "failed"
        applied = ticket_lifecycle.apply_cancellation(tickets, release_to_pool)
        if outcome == "refunded":
            locked_order = Order.objects.select_for_update().get(pk=order.pk)
            refresh_order_status(locked_order)
            target_status = ticket_lifecycle.outcome_status(release_to_pool)
            locked_order.append_note(f"Event cancelled, tickets {target_status}: {reason}")
    applied_ids = {ticket.pk for ticket in applied}
    return [ticket for ticket in tickets if ticket.pk in applied_ids], outcome


@returns_result
def delete_event(
    actor: BoxOfficeUser, event_id: UUID | str, reason: str | None = None, release_to_pool: bool = False
) -> EventDeletion:
    """Delete an event, or refund and cancel it if tickets were ever issued.

    Args:
        actor: The acting organizer.
        event_id: The event to delete.
        reason: Required once tickets exist. Shown to every affected attendee.
        release_to_pool: Whether cancelled tickets give their seats back to the tiers.

    Returns:
        ``mode="deleted"`` when the rows were removed, ``mode="cancelled"`` otherwise, with the
        orders whose refund failed listed so the organizer can follow up.
    """
    cancel_reason = ""
    with transaction.atomic():
        event = get_owned_event(actor, event_id, for_update=True)
        if event.status == Status.COMPLETED:
            raise InvalidEventStateError(f'Cannot delete event with status "{event.status}"')
        has_tickets = event.tickets.exists()
        if has_tickets:
            cancel_reason = require_reason(reason, "A cancellation reason is required when tickets have been issued")
            # issuance locks this row and refuses cancelled events
            Event.objects.filter(pk=event.pk).update(status=Status.CANCELLED, updated_at=timezone.now())
        else:
            # abandoned checkouts never got a ticket
            event.orders.all().delete()
            # tiers and occurrences cascade
            Event.objects.filter(pk=event.pk).delete()
    if not has_tickets:
        logger.info("event_deleted", event_id=str(event.pk), organizer_id=str(actor.pk))
        return EventDeletion(id=event.pk, mode="deleted")

    valid_tickets = list(event.tickets.valid().select_related("tier", "order").order_by("created_at"))
    tickets_by_order: dict[UUID, list[Ticket]] = defaultdict(list)
    for ticket in valid_tickets:
        tickets_by_order[ticket.order_id].append(ticket)

    cancelled: list[Ticket] = []
    refunds: dict[UUID, Decimal] = {}
    refunded_orders = 0
    failed: list[UUID] = []
    for order_id, tickets in tickets_by_order.items():
        applied, outcome = _cancel_order_tickets(event, tickets, cancel_reason, release_to_pool)
        cancelled.extend(applied)
        if outcome == "refunded":
            refunded_orders += 1
            refunds.update({ticket.pk: ticket.tier.price for ticket in applied})
        elif outcome == "failed":
            failed.append(order_id)

    notices = ticket_notification_service.group_by_attendee(cancelled, refunds)
    ticket_notification_service.notify_cancellations(event, notices, cancel_reason)

    logger.info(
        "event_cancelled_with_refunds",
        event_id=str(event.pk),
        organizer_id=str(actor.pk),
        ticket_count=len(cancelled),
        refunded_orders=refunded_orders,
        failed_orders=[str(order_id) for order_id in failed],
        release_to_pool=release_to_pool,
    )
    return EventDeletion(
        id=event.pk,
        mode="cancelled",
        refunded_orders=refunded_orders,
        failed_refund_order_ids=failed,
    )
