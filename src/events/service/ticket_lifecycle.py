"""Ticket status transitions.

``valid`` is the only non-terminal status: a valid ticket can be used at the door, cancelled
(its seat is lost) or refunded (its seat goes back to the tier). Nothing ever leaves ``used``,
``cancelled`` or ``refunded``.
"""

import typing as t

import structlog
from django.db import transaction
from django.utils import timezone

from events.exceptions import InvalidTicketStateError
from events.models import Ticket
from events.service import inventory

logger = structlog.get_logger(__name__)

Status = Ticket.TicketStatus

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Status.VALID: frozenset({Status.USED, Status.CANCELLED, Status.REFUNDED}),
    Status.USED: frozenset(),
    Status.CANCELLED: frozenset(),
    Status.REFUNDED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def assert_can_transition(ticket: Ticket, target: str, action: str = "cancel") -> None:
    """Raise ``InvalidTicketStateError`` naming the ticket's status if ``target`` is not reachable."""
    if not can_transition(ticket.status, target):
        raise InvalidTicketStateError(ticket.status, action)


def outcome_status(release_to_pool: bool) -> str:
    """The status a cancelled ticket ends in. Chosen by the caller, never inferred."""
    return Status.REFUNDED if release_to_pool else Status.CANCELLED


def lock_valid(tickets: t.Iterable[Ticket]) -> list[Ticket]:
    """Lock the tickets' rows and return the ones that are still valid, as the caller's instances.

    Must be called inside a transaction. The lock holds until that transaction ends, so two
    refunds of the same ticket can't both reach Stripe: the second one waits and then finds the
    ticket no longer valid.
    """
    by_pk = {ticket.pk: ticket for ticket in tickets}
    still_valid = set(
        Ticket.objects.select_for_update()
        .filter(pk__in=list(by_pk), status=Status.VALID)
        .order_by("pk")
        .values_list("pk", flat=True)
    )
    return [ticket for pk, ticket in by_pk.items() if pk in still_valid]


def apply_cancellation(tickets: t.Iterable[Ticket], release_to_pool: bool) -> list[Ticket]:
    """Move tickets out of ``valid`` and, when releasing, give their units back.

    Rows are locked and re-read first. Tickets that stopped being valid in the meantime are
    skipped, so a unit is never released twice.

    Returns:
        The tickets that were actually transitioned.
    """
    target = outcome_status(release_to_pool)
    ids = [ticket.pk for ticket in tickets]
    with transaction.atomic():
        locked = list(Ticket.objects.select_for_update().filter(pk__in=ids).order_by("pk"))
        applied = [ticket for ticket in locked if can_transition(ticket.status, target)]
        skipped = [str(ticket.pk) for ticket in locked if ticket not in applied]
        if skipped:
            logger.warning("ticket_cancellation_skipped", ticket_ids=skipped, target_status=target)
        for ticket in applied:
            ticket.status = target
            # save() keeps the history trail
            ticket.save(update_fields=["status", "updated_at"])
        if release_to_pool:
            inventory.restore_inventory(applied)
    logger.info(
        "tickets_cancelled", ticket_count=len(applied), status=target, release_to_pool=release_to_pool
    )
    return applied


@transaction.atomic
def check_in(ticket: Ticket) -> Ticket:
    """Mark a valid ticket as used."""
    ticket = Ticket.objects.select_for_update().get(pk=ticket.pk)
    assert_can_transition(ticket, Status.USED, action="check in")
    ticket.status = Status.USED
    ticket.checked_in_at = timezone.now()
    ticket.save(update_fields=["status", "checked_in_at", "updated_at"])
    logger.info("ticket_checked_in", ticket_id=str(ticket.pk))
    return ticket
