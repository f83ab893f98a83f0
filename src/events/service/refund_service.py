"""Organizer-initiated refunds.

The order of operations is what keeps money and inventory consistent:

1. validate everything that can be validated locally,
2. ask Stripe for the refund,
3. only then change ticket statuses, tier inventory and the event counter, in one transaction,
4. tell the attendees.

The tickets' rows stay locked from before the Stripe call until step 3 commits, so a ticket can
only be refunded once even when two organizers act on it at the same time.

If Stripe refuses, nothing local has changed and the organizer gets Stripe's message back.
"""

import hashlib
import typing as t
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction

from accounts.models import BoxOfficeUser
from common.results import returns_result
from events.exceptions import InvalidTicketStateError, PaymentMissingError, PreconditionError
from events.models import Order, Ticket
from events.service import stripe_service, ticket_lifecycle, ticket_notification_service
from events.service.ownership import get_owned_order, get_owned_ticket
from events.utils import to_minor_units

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TicketRefund:
    refund_id: str | None
    ticket_id: UUID
    status: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class OrderRefund:
    refund_id: str | None
    order_id: UUID
    refunded_count: int
    total_refund: Decimal
    currency: str


def require_reason(reason: str | None, message: str = "A cancellation reason is required") -> str:
    reason = (reason or "").strip()
    if not reason:
        raise PreconditionError(message)
    return reason


def ticket_currency(ticket: Ticket, order: Order | None = None) -> str:
    """Tier currency, then the order's, then the platform default."""
    order = order or ticket.order
    return (ticket.tier.currency or order.currency or settings.DEFAULT_CURRENCY).upper()


def order_idempotency_key(order: Order, tickets: t.Iterable[Ticket]) -> str:
    digest = hashlib.sha256(",".join(sorted(str(ticket.pk) for ticket in tickets)).encode()).hexdigest()
    return f"refund-order-{order.pk}-{digest[:24]}"


def refresh_order_status(order: Order) -> str:
    """Derive a paid order's status from its tickets after a refund.

    ``refunded`` once none of its tickets can still be used, ``partially_refunded`` otherwise.
    The caller holds the order row lock.
    """
    still_active = order.tickets.filter(status__in=[Ticket.TicketStatus.VALID, Ticket.TicketStatus.USED]).exists()
    status = Order.OrderStatus.PARTIALLY_REFUNDED if still_active else Order.OrderStatus.REFUNDED
    if order.status != status:
        order.status = status
        order.save(update_fields=["status", "updated_at"])
    return status


def apply_refund(
    order: Order, tickets: t.Sequence[Ticket], release_to_pool: bool, note: str
) -> list[Ticket]:
    """Commit the local side of a confirmed refund.

    Returns:
        The tickets that were still valid and got transitioned, as the caller's instances.
    """
    with transaction.atomic():
        applied = ticket_lifecycle.apply_cancellation(tickets, release_to_pool)
        applied_ids = {ticket.pk for ticket in applied}
        locked_order = Order.objects.select_for_update().get(pk=order.pk)
        if locked_order.has_payment:
            refresh_order_status(locked_order)
        locked_order.append_note(note)
    return [ticket for ticket in tickets if ticket.pk in applied_ids]


@returns_result
def refund_ticket(actor: BoxOfficeUser, ticket_id: UUID | str, reason: str, release_to_pool: bool) -> TicketRefund:
    """Refund a single ticket through Stripe and cancel it.

    Args:
        actor: The acting organizer.
        ticket_id: The ticket to refund.
        reason: Shown to the attendee. Required.
        release_to_pool: ``True`` puts the seat back on sale and marks the ticket ``refunded``,
            ``False`` marks it ``cancelled`` and the seat stays lost.
    """
    reason = require_reason(reason)
    ticket = get_owned_ticket(actor, ticket_id)
    target_status = ticket_lifecycle.outcome_status(release_to_pool)
    ticket_lifecycle.assert_can_transition(ticket, target_status)
    order = ticket.order
    payment_intent_id = order.stripe_payment_intent_id
    if not payment_intent_id:
        raise PaymentMissingError("No payment found for this ticket")

    tier = ticket.tier
    currency = ticket_currency(ticket, order)
    amount = tier.price
    minor_amount = to_minor_units(amount, currency)

    refund_id = None
    with transaction.atomic():
        if not ticket_lifecycle.lock_valid([ticket]):
            ticket.refresh_from_db(fields=["status"])
            raise InvalidTicketStateError(ticket.status)
        if minor_amount > 0:
            refund_id = stripe_service.create_refund(
                payment_intent_id,
                minor_amount,
                idempotency_key=f"refund-ticket-{ticket.pk}",
                metadata={"ticket_id": str(ticket.pk), "order_id": str(order.pk), "reason": reason[:500]},
            )
        apply_refund(
            order,
            [ticket],
            release_to_pool,
            note=f"Ticket {str(ticket.pk)[:8]} {target_status}: {reason}",
        )

    logger.info(
        "ticket_refunded",
        ticket_id=str(ticket.pk),
        order_id=str(order.pk),
        refund_id=refund_id,
        amount=str(amount),
        currency=currency,
        release_to_pool=release_to_pool,
        actor_id=str(actor.pk),
    )
    notice = ticket_notification_service.CancellationNotice(
        email=ticket.attendee_email,
        attendee_name=ticket.attendee_name,
        currency=currency,
        tier_names=[tier.name],
        refund_amount=amount,
    )
    ticket_notification_service.send_cancellation_email(ticket.event, notice, reason)

    return TicketRefund(
        refund_id=refund_id,
        ticket_id=ticket.pk,
        status=target_status,
        amount=amount,
        currency=currency,
    )


@returns_result
def refund_order(
    actor: BoxOfficeUser,
    order_id: UUID | str,
    reason: str,
    release_to_pool: bool,
    ticket_ids: t.Sequence[UUID | str] | None = None,
) -> OrderRefund:
    """Refund several tickets of one order with a single Stripe refund.

    Args:
        actor: The acting organizer.
        order_id: The order to refund.
        reason: Shown to the attendees. Required.
        release_to_pool: See ``refund_ticket``.
        ticket_ids: Restrict the refund to these tickets. Defaults to every valid ticket on the order.
    """
    reason = require_reason(reason)
    order = get_owned_order(actor, order_id)
    payment_intent_id = order.stripe_payment_intent_id
    if not payment_intent_id:
        raise PaymentMissingError("No payment found for this order")

    queryset = order.tickets.valid().select_related("tier", "event").order_by("created_at")
    if ticket_ids:
        queryset = queryset.filter(pk__in=[str(pk) for pk in ticket_ids])
    tickets = list(queryset)
    if not tickets:
        raise PreconditionError("No valid tickets to cancel in this order")

    target_status = ticket_lifecycle.outcome_status(release_to_pool)
    refund_id = None
    with transaction.atomic():
        tickets = ticket_lifecycle.lock_valid(tickets)
        if not tickets:
            raise PreconditionError("No valid tickets to cancel in this order")

        refunds = {ticket.pk: ticket.tier.price for ticket in tickets}
        total_refund = sum(refunds.values(), Decimal("0"))
        minor_amount = sum(to_minor_units(ticket.tier.price, ticket_currency(ticket, order)) for ticket in tickets)
        currency = (order.currency or ticket_currency(tickets[0], order)).upper()

        if minor_amount > 0:
            refund_id = stripe_service.create_refund(
                payment_intent_id,
                minor_amount,
                idempotency_key=order_idempotency_key(order, tickets),
                metadata={"order_id": str(order.pk), "ticket_count": str(len(tickets)), "reason": reason[:500]},
            )
        applied = apply_refund(
            order,
            tickets,
            release_to_pool,
            note=f"{len(tickets)} ticket(s) {target_status}: {reason}",
        )

    if len(applied) < len(tickets):
        logger.error(
            "refund_order_tickets_changed",
            order_id=str(order.pk),
            refund_id=refund_id,
            refunded=len(tickets),
            applied=len(applied),
        )

    logger.info(
        "order_refunded",
        order_id=str(order.pk),
        refund_id=refund_id,
        ticket_count=len(applied),
        total_refund=str(total_refund),
        currency=currency,
        release_to_pool=release_to_pool,
        actor_id=str(actor.pk),
    )
    notices = ticket_notification_service.group_by_attendee(applied, refunds)
    ticket_notification_service.notify_cancellations(order.event, notices, reason)

    return OrderRefund(
        refund_id=refund_id,
        order_id=order.pk,
        refunded_count=len(applied),
        total_refund=total_refund,
        currency=currency,
    )
