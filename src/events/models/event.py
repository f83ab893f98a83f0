import typing as t

from django.conf import settings
from django.db import models
from django.utils.text import slugify

from common.models import TimeStampedModel

if t.TYPE_CHECKING:
    from accounts.models import BoxOfficeUser

LEDGER_FIELDS = ("total_capacity", "total_tickets_sold")


def fields_except(instance: models.Model, excluded: t.Iterable[str]) -> list[str]:
    return [f.name for f in instance._meta.concrete_fields if not f.primary_key and f.name not in excluded]


class EventQuerySet(models.QuerySet["Event"]):
    def owned_by(self, organizer: "BoxOfficeUser") -> t.Self:
        """Events the given organizer may manage."""
        return self.filter(organizer=organizer)

    def with_tiers(self) -> t.Self:
        return self.prefetch_related("ticket_tiers", "occurrences")


class EventManager(models.Manager["Event"]):
    def get_queryset(self) -> EventQuerySet:
        return EventQuerySet(self.model, using=self._db)

    def owned_by(self, organizer: "BoxOfficeUser") -> EventQuerySet:
        return self.get_queryset().owned_by(organizer)

    def with_tiers(self) -> EventQuerySet:
        return self.get_queryset().with_tiers()


class Event(TimeStampedModel):
    class EventStatus(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"
        CANCELLED = "cancelled", "Cancelled"
        COMPLETED = "completed", "Completed"

    class LocationType(models.TextChoices):
        PHYSICAL = "physical", "Physical"
        ONLINE = "online", "Online"
        HYBRID = "hybrid", "Hybrid"

    organizer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="events")
    status = models.CharField(
        choices=EventStatus.choices, max_length=20, default=EventStatus.DRAFT, db_index=True
    )
    title = models.CharField(max_length=255, blank=True, db_index=True)
    slug = models.SlugField(max_length=255, blank=True, db_index=True)
    description = models.TextField(blank=True, default="")
    location_type = models.CharField(max_length=20, choices=LocationType.choices, default=LocationType.PHYSICAL)
    venue_name = models.CharField(max_length=255, blank=True, default="")
    address_text = models.CharField(max_length=500, blank=True, default="")
    city = models.CharField(max_length=255, blank=True, default="")
    currency = models.CharField(max_length=3, default=settings.DEFAULT_CURRENCY)
    sales_start_at = models.DateTimeField(null=True, blank=True)
    sales_end_at = models.DateTimeField(null=True, blank=True)

    # Maintained by the inventory ledger, never written through save().
    total_capacity = models.PositiveIntegerField(default=0, editable=False)
    total_tickets_sold = models.PositiveIntegerField(default=0, editable=False)

    objects = EventManager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title or f"Untitled event {str(self.id)[:8]}"

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Fill the slug from the title and normalize the currency code.

        Updates never write the counters: they are owned by the inventory ledger and an
        in-memory copy may be stale.
        """
        if not self.slug and self.title:
            self.slug = slugify(self.title)[:255]
        self.currency = (self.currency or settings.DEFAULT_CURRENCY).upper()
        if not self._state.adding and kwargs.get("update_fields") is None:
            kwargs["update_fields"] = fields_except(self, LEDGER_FIELDS)
        super().save(*args, **kwargs)

    @property
    def first_occurrence(self) -> "EventOccurrence | None":
        return self.occurrences.order_by("starts_at").first()

    @property
    def venue_display(self) -> str:
        return ", ".join(part for part in (self.venue_name, self.city) if part)


class EventOccurrence(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="occurrences")
    starts_at = models.DateTimeField(db_index=True)
    ends_at = models.DateTimeField(null=True, blank=True)
    label = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["starts_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(ends_at__isnull=True) | models.Q(ends_at__gte=models.F("starts_at")),
                name="occurrence_ends_after_start",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.event} @ {self.starts_at:%Y-%m-%d %H:%M}"
