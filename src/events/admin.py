import typing as t

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from simple_history.admin import SimpleHistoryAdmin

from . import models


class EventLinkMixin:
    """Mixin to add a link to an event."""

    def event_link(self, obj: t.Any) -> str | None:
        if not getattr(obj, "event", None):
            return None
        url = reverse("admin:events_event_change", args=[obj.event.id])
        return format_html('<a href="{}">{}</a>', url, obj.event)

    event_link.short_description = "Event"  # type: ignore[attr-defined]


class EventOccurrenceInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.EventOccurrence
    extra = 0


class TicketTierInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.TicketTier
    extra = 0
    fields = ["name", "price", "currency", "initial_quantity", "remaining_quantity", "is_hidden"]
    readonly_fields = ["remaining_quantity"]


class TicketInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.Ticket
    extra = 0
    fields = ["attendee_name", "attendee_email", "tier", "status", "checked_in_at"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True

    def has_add_permission(self, request: t.Any, obj: t.Any = None) -> bool:
        return False


class OrderItemInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.OrderItem
    extra = 0
    fields = ["tier", "quantity", "unit_price", "subtotal"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request: t.Any, obj: t.Any = None) -> bool:
        return False


@admin.register(models.Event)
class EventAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["__str__", "organizer", "status", "total_capacity", "total_tickets_sold", "created_at"]
    list_filter = ["status", "location_type"]
    search_fields = ["title", "slug", "organizer__username", "organizer__email"]
    readonly_fields = ["id", "total_capacity", "total_tickets_sold", "created_at", "updated_at"]
    inlines = [EventOccurrenceInline, TicketTierInline]


@admin.register(models.TicketTier)
class TicketTierAdmin(admin.ModelAdmin, EventLinkMixin):  # type: ignore[type-arg]
    list_display = ["name", "event_link", "price", "currency", "initial_quantity", "remaining_quantity"]
    search_fields = ["name", "event__title"]
    readonly_fields = ["remaining_quantity"]


@admin.register(models.Order)
class OrderAdmin(SimpleHistoryAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["id", "event_link", "buyer_email", "total_amount", "currency", "status", "source", "created_at"]
    list_filter = ["status", "source"]
    search_fields = ["id", "buyer_email", "stripe_payment_intent_id"]
    readonly_fields = ["id", "stripe_payment_intent_id", "stripe_checkout_session_id", "notes", "created_at"]
    inlines = [OrderItemInline, TicketInline]


@admin.register(models.Ticket)
class TicketAdmin(SimpleHistoryAdmin, EventLinkMixin):  # type: ignore[misc]
    list_display = ["id", "event_link", "attendee_email", "tier_name", "status", "checked_in_at"]
    list_filter = ["status"]
    search_fields = ["id", "attendee_email", "attendee_name", "order__id"]
    readonly_fields = ["id", "order", "tier", "event", "status", "original_ticket", "issued_by", "checked_in_at"]

    @admin.display(description="Tier")
    def tier_name(self, obj: models.Ticket) -> str:
        return obj.tier.name
