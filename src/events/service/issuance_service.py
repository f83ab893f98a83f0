"""Tickets created by the organizer outside the checkout flow.

Creating a valid ticket books one unit against its tier and the event (see ``events.signals``),
so nothing here touches the counters for new tickets. Reissuing gives the old ticket's unit back
explicitly before the replacement takes one, which keeps both steps visible in the history.
"""

import typing as t
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from accounts.models import BoxOfficeUser
from common.results import returns_result
from events.exceptions import (
    InsufficientInventoryError,
    InvalidEventStateError,
    NotFoundError,
    NotificationError,
    PreconditionError,
)
from events.models import Event, Order, OrderItem, Ticket, TicketTier
from events.service import inventory, ticket_lifecycle, ticket_notification_service
from events.service.ownership import get_owned_event
from events.service.refund_service import require_reason

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ManualIssuance:
    order_id: UUID
    ticket_ids: list[UUID]
    total_amount: Decimal
    currency: str


@dataclass(frozen=True)
class Reissue:
    new_ticket_id: UUID
    old_ticket_id: UUID


@returns_result
def issue_tickets_manually(
    actor: BoxOfficeUser,
    event_id: UUID | str,
    tier_id: UUID | str,
    quantity: int,
    attendee_name: str,
    attendee_email: str,
    reason: str,
    is_free: bool = True,
) -> ManualIssuance:
    """Issue comped or offline-paid tickets on a new organizer order.

    Args:
        actor: The acting organizer. Recorded as the issuer.
        event_id: The event to issue for.
        tier_id: A tier of that event.
        quantity: How many tickets. At least one.
        attendee_name: Printed on the tickets.
        attendee_email: Where the tickets belong.
        reason: Why they were issued, kept on the order and every ticket.
        is_free: When ``False`` the order records ``price * quantity`` as paid outside Stripe.
    """
    if quantity < 1:
        raise PreconditionError("Quantity must be at least 1")
    reason = require_reason(reason, "A reason is required for manual issuance")

    with transaction.atomic():
        event = get_owned_event(actor, event_id, for_update=True)
        if event.status in (Event.EventStatus.CANCELLED, Event.EventStatus.COMPLETED):
            raise InvalidEventStateError(f'Cannot issue tickets for event with status "{event.status}"')
        try:
            tier = TicketTier.objects.select_for_update().get(pk=tier_id, event=event)
        except (TicketTier.DoesNotExist, ValidationError):
            raise NotFoundError("Ticket tier not found for this event")
        if tier.remaining_quantity < quantity:
            raise InsufficientInventoryError(tier.remaining_quantity, tier.name)

        unit_price = Decimal("0") if is_free else tier.price
        total_amount = unit_price * quantity
        currency = tier.effective_currency
        order = Order.objects.create(
            event=event,
            stripe_payment_intent_id=None,
            buyer_name=attendee_name,
            buyer_email=attendee_email,
            total_amount=total_amount,
            platform_fee_amount=Decimal("0"),
            organizer_payout_amount=total_amount,
            currency=currency,
            status=Order.OrderStatus.COMPLETED,
            source=Order.Source.ORGANIZER,
            notes=f"Manual issuance: {reason}",
        )
        OrderItem.objects.create(
            order=order, tier=tier, quantity=quantity, unit_price=unit_price, subtotal=total_amount
        )
        # One by one so each insert books its unit through post_save.
        tickets = [
            Ticket.objects.create(
                order=order,
                tier=tier,
                event=event,
                attendee_name=attendee_name,
                attendee_email=attendee_email,
                status=Ticket.TicketStatus.VALID,
                issued_by=actor,
                issue_reason=reason,
            )
            for _ in range(quantity)
        ]

    logger.info(
        "tickets_issued_manually",
        event_id=str(event.pk),
        tier_id=str(tier.pk),
        order_id=str(order.pk),
        quantity=quantity,
        is_free=is_free,
        actor_id=str(actor.pk),
    )
    return ManualIssuance(
        order_id=order.pk,
        ticket_ids=[ticket.pk for ticket in tickets],
        total_amount=total_amount,
        currency=currency,
    )


@returns_result
def reissue_ticket(
    actor: BoxOfficeUser,
    order_id: UUID | str,
    old_ticket_id: UUID | str,
    new_attendee_name: str,
    new_attendee_email: str,
    reason: str,
) -> Reissue:
    """Replace a valid ticket with a new one for a (possibly different) attendee.

    The old ticket is cancelled and its unit released, then the new ticket takes a unit again,
    so tier and event counters end where they started.
    """
    reason = require_reason(reason, "A reason is required to reissue a ticket")

    with transaction.atomic():
        try:
            old_ticket = (
                Ticket.objects.select_for_update()
                .owned_by(actor)
                .get(pk=old_ticket_id, order_id=order_id)
            )
        except (Ticket.DoesNotExist, ValidationError):
            raise NotFoundError("Ticket not found on this order")
        ticket_lifecycle.assert_can_transition(old_ticket, Ticket.TicketStatus.CANCELLED, action="reissue")

        old_ticket.status = Ticket.TicketStatus.CANCELLED
        old_ticket.save(update_fields=["status", "updated_at"])
        inventory.release_units(old_ticket.tier_id, 1)
        inventory.decrement_event_sold(old_ticket.event_id, 1)

        new_ticket = Ticket.objects.create(
            order_id=old_ticket.order_id,
            tier_id=old_ticket.tier_id,
            event_id=old_ticket.event_id,
            attendee_name=new_attendee_name,
            attendee_email=new_attendee_email,
            status=Ticket.TicketStatus.VALID,
            issued_by=actor,
            issue_reason=f"Reissue: {reason}",
            original_ticket=old_ticket,
        )
        order = Order.objects.select_for_update().get(pk=old_ticket.order_id)
        order.append_note(f"Reissued ticket {str(old_ticket.pk)[:8]} → {str(new_ticket.pk)[:8]}: {reason}")

    logger.info(
        "ticket_reissued",
        old_ticket_id=str(old_ticket.pk),
        new_ticket_id=str(new_ticket.pk),
        order_id=str(order.pk),
        actor_id=str(actor.pk),
    )
    return Reissue(new_ticket_id=new_ticket.pk, old_ticket_id=old_ticket.pk)


@returns_result
def send_tickets_to_email(
    actor: BoxOfficeUser,
    ticket_ids: t.Sequence[UUID | str],
    recipient_email: str,
    recipient_name: str = "",
) -> dict[str, int]:
    """Email valid tickets of one event, with QR codes, to any address."""
    if not ticket_ids:
        raise PreconditionError("No tickets selected")
    try:
        tickets = list(
            Ticket.objects.with_details().filter(pk__in=[str(pk) for pk in ticket_ids]).order_by("created_at")
        )
    except ValidationError:
        raise NotFoundError("Tickets not found")
    if not tickets:
        raise NotFoundError("Tickets not found")

    if any(ticket.event.organizer_id != actor.pk for ticket in tickets):
        raise NotFoundError("Tickets not found")
    valid = [ticket for ticket in tickets if ticket.is_valid]
    if not valid:
        raise PreconditionError("No valid tickets to send")
    events = {ticket.event_id for ticket in valid}
    if len(events) > 1:
        raise PreconditionError("Tickets must all belong to the same event")

    try:
        ticket_notification_service.send_ticket_email(valid[0].event, valid, recipient_email, recipient_name)
    except Exception as e:
        logger.exception("ticket_email_failed", ticket_count=len(valid), recipient_email=recipient_email)
        raise NotificationError(str(e) or "Failed to send email") from e
    return {"sent": len(valid)}
