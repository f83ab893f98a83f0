import typing as t

import structlog
from django.db.models.signals import post_save
from django.dispatch import receiver

from events.models import Ticket
from events.service import inventory

logger = structlog.get_logger(__name__)


@receiver(post_save, sender=Ticket)
def book_inventory_for_new_ticket(sender: type[Ticket], instance: Ticket, created: bool, **kwargs: t.Any) -> None:
    """Every ticket created as valid holds one unit of its tier and counts as sold.

    Raises InsufficientInventoryError when the tier is exhausted, which aborts the insert.
    """
    if kwargs.get("raw") or not created or instance.status != Ticket.TicketStatus.VALID:
        return
    inventory.consume_for_new_ticket(instance)
    logger.debug("ticket_inventory_booked", ticket_id=str(instance.pk), tier_id=str(instance.tier_id))
