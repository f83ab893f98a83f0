from uuid import UUID

from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from events import schema
from events.service import issuance_service, refund_service

from .user_aware_controller import FAILURE_RESPONSES, UserAwareController


@api_controller("/organizer", auth=JWTAuth(), tags=["Organizer Tickets"])
class OrganizerTicketController(UserAwareController):
    """Refunds, reissues and ticket delivery for the acting organizer's orders."""

    @route.post(
        "/tickets/{ticket_id}/refund",
        url_name="organizer_refund_ticket",
        response={200: schema.SuccessResponse[schema.TicketRefundSchema], **FAILURE_RESPONSES},
    )
    def refund_ticket(self, ticket_id: UUID, payload: schema.RefundTicketIn) -> tuple[int, object]:
        """Refund a single ticket through Stripe and cancel it.

        With ``release_to_pool`` the seat goes back on sale and the ticket is marked refunded,
        otherwise it is marked cancelled and the seat stays taken.
        """
        result = refund_service.refund_ticket(
            self.acting_organizer(), ticket_id, reason=payload.reason, release_to_pool=payload.release_to_pool
        )
        return self.respond(result)

    @route.post(
        "/orders/{order_id}/refund",
        url_name="organizer_refund_order",
        response={200: schema.SuccessResponse[schema.OrderRefundSchema], **FAILURE_RESPONSES},
    )
    def refund_order(self, order_id: UUID, payload: schema.RefundOrderIn) -> tuple[int, object]:
        """Refund all valid tickets of an order, or the selected ones, with a single Stripe refund."""
        result = refund_service.refund_order(
            self.acting_organizer(),
            order_id,
            reason=payload.reason,
            release_to_pool=payload.release_to_pool,
            ticket_ids=payload.ticket_ids,
        )
        return self.respond(result)

    @route.post(
        "/orders/{order_id}/tickets/{ticket_id}/reissue",
        url_name="organizer_reissue_ticket",
        response={201: schema.SuccessResponse[schema.ReissueSchema], **FAILURE_RESPONSES},
    )
    def reissue_ticket(self, order_id: UUID, ticket_id: UUID, payload: schema.ReissueTicketIn) -> tuple[int, object]:
        """Cancel a ticket and issue a replacement, e.g. to transfer it to someone else."""
        result = issuance_service.reissue_ticket(
            self.acting_organizer(),
            order_id,
            ticket_id,
            new_attendee_name=payload.new_attendee_name,
            new_attendee_email=payload.new_attendee_email,
            reason=payload.reason,
        )
        return self.respond(result, status=201)

    @route.post(
        "/tickets/send",
        url_name="organizer_send_tickets",
        response={200: schema.SuccessResponse[schema.SentTicketsSchema], **FAILURE_RESPONSES},
    )
    def send_tickets(self, payload: schema.SendTicketsIn) -> tuple[int, object]:
        """Email tickets with their QR codes to any address."""
        result = issuance_service.send_tickets_to_email(
            self.acting_organizer(),
            payload.ticket_ids,
            recipient_email=payload.recipient_email,
            recipient_name=payload.recipient_name,
        )
        return self.respond(result)
