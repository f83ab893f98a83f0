"""Lookups scoped to the acting organizer.

A resource that exists but belongs to someone else is reported exactly like a missing one, so
organizers can't probe each other's ids.
"""

import typing as t
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import models

from accounts.models import BoxOfficeUser
from events.exceptions import NotFoundError
from events.models import Event, Order, Ticket

M = t.TypeVar("M", bound=models.Model)


def _get_or_not_found(queryset: models.QuerySet[M], pk: UUID | str, message: str) -> M:
    try:
        return queryset.get(pk=pk)
    except (queryset.model.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError(message)


def get_owned_event(actor: BoxOfficeUser, event_id: UUID | str, *, for_update: bool = False) -> Event:
    queryset = Event.objects.filter(organizer=actor)
    if for_update:
        queryset = queryset.select_for_update()
    return _get_or_not_found(queryset, event_id, "Event not found")


def get_owned_order(actor: BoxOfficeUser, order_id: UUID | str) -> Order:
    queryset = Order.objects.select_related("event").filter(event__organizer=actor)
    return _get_or_not_found(queryset, order_id, "Order not found")


def get_owned_ticket(actor: BoxOfficeUser, ticket_id: UUID | str) -> Ticket:
    queryset = Ticket.objects.with_details().owned_by(actor)
    return _get_or_not_found(queryset, ticket_id, "Ticket not found")
