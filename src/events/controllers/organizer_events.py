from uuid import UUID

from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.results import Success
from events import schema
from events.models import Event, Ticket
from events.service import event_service, issuance_service, stripe_service
from events.service.ownership import get_owned_event

from .user_aware_controller import FAILURE_RESPONSES, UserAwareController

EventResponse = schema.SuccessResponse[schema.EventSchema]


@api_controller("/organizer/events", auth=JWTAuth(), tags=["Organizer Events"])
class OrganizerEventController(UserAwareController):
    """Event authoring and lifecycle for the acting organizer."""

    @route.get("/", url_name="organizer_list_events", response=schema.SuccessResponse[list[schema.EventSchema]])
    def list_events(self, status: Event.EventStatus | None = None) -> dict[str, object]:
        """List the acting organizer's events, newest first."""
        events = Event.objects.owned_by(self.acting_organizer()).with_tiers()
        if status:
            events = events.filter(status=status)
        return {"success": True, "data": list(events)}

    @route.get("/{event_id}", url_name="organizer_get_event", response={200: EventResponse, **FAILURE_RESPONSES})
    def get_event(self, event_id: UUID) -> tuple[int, object]:
        """Get one of the acting organizer's events."""
        actor = self.acting_organizer()
        result = Success(Event.objects.with_tiers().get(pk=get_owned_event(actor, event_id).pk))
        return self.respond(result)

    @route.post("/", url_name="organizer_create_event", response={201: EventResponse, **FAILURE_RESPONSES})
    def create_event(self, payload: schema.EventForm) -> tuple[int, object]:
        """Create a draft event with its dates and ticket tiers.

        Requires the organizer's Stripe account to be connected.
        """
        return self.respond(event_service.create_event(self.acting_organizer(), payload), status=201)

    @route.put("/{event_id}", url_name="organizer_update_event", response={200: EventResponse, **FAILURE_RESPONSES})
    def update_event(self, event_id: UUID, payload: schema.EventForm) -> tuple[int, object]:
        """Update an event. Ticket tiers can only be replaced while no ticket was issued."""
        return self.respond(event_service.update_event(self.acting_organizer(), event_id, payload))

    @route.post(
        "/{event_id}/publish", url_name="organizer_publish_event", response={200: EventResponse, **FAILURE_RESPONSES}
    )
    def publish_event(self, event_id: UUID) -> tuple[int, object]:
        return self.respond(event_service.publish_event(self.acting_organizer(), event_id))

    @route.post(
        "/{event_id}/unpublish",
        url_name="organizer_unpublish_event",
        response={200: EventResponse, **FAILURE_RESPONSES},
    )
    def unpublish_event(self, event_id: UUID) -> tuple[int, object]:
        return self.respond(event_service.unpublish_event(self.acting_organizer(), event_id))

    @route.post(
        "/{event_id}/cancel", url_name="organizer_cancel_event", response={200: EventResponse, **FAILURE_RESPONSES}
    )
    def cancel_event(self, event_id: UUID) -> tuple[int, object]:
        """Cancel an event without touching its tickets. Use delete to refund them."""
        return self.respond(event_service.cancel_event(self.acting_organizer(), event_id))

    @route.delete(
        "/{event_id}",
        url_name="organizer_delete_event",
        response={200: schema.SuccessResponse[schema.EventDeletionSchema], **FAILURE_RESPONSES},
    )
    def delete_event(self, event_id: UUID, payload: schema.DeleteEventIn) -> tuple[int, object]:
        """Delete an event.

        Events that never issued a ticket are removed. Otherwise every valid ticket is refunded and
        cancelled, attendees are notified and the event is kept as cancelled.
        """
        result = event_service.delete_event(
            self.acting_organizer(), event_id, reason=payload.reason, release_to_pool=payload.release_to_pool
        )
        return self.respond(result)

    @route.get(
        "/{event_id}/tickets",
        url_name="organizer_list_tickets",
        response={200: schema.SuccessResponse[list[schema.TicketSchema]], **FAILURE_RESPONSES},
    )
    def list_tickets(self, event_id: UUID, status: Ticket.TicketStatus | None = None) -> tuple[int, object]:
        """List the tickets of an event."""
        event = get_owned_event(self.acting_organizer(), event_id)
        tickets = Ticket.objects.with_details().filter(event=event).order_by("created_at")
        if status:
            tickets = tickets.filter(status=status)
        return self.respond(Success(list(tickets)))

    @route.post(
        "/{event_id}/tickets/issue",
        url_name="organizer_issue_tickets",
        response={201: schema.SuccessResponse[schema.ManualIssuanceSchema], **FAILURE_RESPONSES},
    )
    def issue_tickets(self, event_id: UUID, payload: schema.IssueTicketsIn) -> tuple[int, object]:
        """Issue tickets outside checkout, e.g. for guests or door sales."""
        result = issuance_service.issue_tickets_manually(
            self.acting_organizer(),
            event_id,
            tier_id=payload.tier_id,
            quantity=payload.quantity,
            attendee_name=payload.attendee_name,
            attendee_email=payload.attendee_email,
            reason=payload.reason,
            is_free=payload.is_free,
        )
        return self.respond(result, status=201)


@api_controller("/organizer/payouts", auth=JWTAuth(), tags=["Organizer Payouts"])
class OrganizerPayoutController(UserAwareController):
    @route.post(
        "/complete",
        url_name="organizer_complete_payouts",
        response={200: schema.SuccessResponse[schema.PayoutStatusSchema], **FAILURE_RESPONSES},
    )
    def complete_onboarding(self) -> tuple[int, object]:
        """Re-check the connected Stripe account and record whether payouts are ready."""
        return self.respond(stripe_service.complete_payout_onboarding(self.acting_organizer()))
