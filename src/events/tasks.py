"""Celery tasks for event management."""

import structlog
from celery import shared_task
from django.db.models import Max
from django.db.models.functions import Coalesce
from django.utils import timezone

from .models import Event

logger = structlog.get_logger(__name__)


@shared_task
def complete_past_events() -> int:
    """Mark published events whose last occurrence is over as completed.

    An occurrence without an end time is considered over once it has started.

    Returns:
        The number of events that were completed.
    """
    now = timezone.now()
    past_event_ids = (
        Event.objects.filter(status=Event.EventStatus.PUBLISHED, occurrences__isnull=False)
        .annotate(last_moment=Max(Coalesce("occurrences__ends_at", "occurrences__starts_at")))
        .filter(last_moment__lt=now)
        .values_list("pk", flat=True)
    )
    count = Event.objects.filter(pk__in=list(past_event_ids), status=Event.EventStatus.PUBLISHED).update(
        status=Event.EventStatus.COMPLETED, updated_at=now
    )
    if count:
        logger.info("past_events_completed", count=count)
    return count
