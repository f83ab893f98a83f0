from decimal import Decimal
from unittest.mock import patch

import pytest
from django.core import mail

from accounts.models import BoxOfficeUser
from common.exceptions import FailureCode
from common.results import Failure, Success
from events.models import Event, Order, OrderItem, Ticket, TicketTier
from events.service import issuance_service
from events.service.ownership import get_owned_event

pytestmark = pytest.mark.django_db


class TestIssueTicketsManually:
    def test_issues_free_tickets_and_consumes_inventory(
        self, organizer: BoxOfficeUser, event: Event, tier: TicketTier
    ) -> None:
        TicketTier.objects.filter(pk=tier.pk).update(remaining_quantity=5)

        result = issuance_service.issue_tickets_manually(
            organizer,
            event.pk,
            tier.pk,
            quantity=3,
            attendee_name="Guest List",
            attendee_email="guest@example.com",
            reason="Press passes",
        )

        assert isinstance(result, Success)
        tier.refresh_from_db()
        event.refresh_from_db()
        assert tier.remaining_quantity == 2
        assert event.total_tickets_sold == 3
        order = Order.objects.get(pk=result.data.order_id)
        assert order.total_amount == Decimal("0")
        assert order.stripe_payment_intent_id is None
        assert order.status == Order.OrderStatus.COMPLETED
        assert order.source == Order.Source.ORGANIZER
        assert order.notes == "Manual issuance: Press passes"
        tickets = Ticket.objects.filter(pk__in=result.data.ticket_ids)
        assert tickets.count() == 3
        assert all(ticket.issued_by == organizer and ticket.is_valid for ticket in tickets)

    def test_paid_outside_stripe_records_the_total(
        self, organizer: BoxOfficeUser, event: Event, tier: TicketTier
    ) -> None:
        result = issuance_service.issue_tickets_manually(
            organizer,
            event.pk,
            tier.pk,
            quantity=2,
            attendee_name="Door",
            attendee_email="door@example.com",
            reason="Cash at the door",
            is_free=False,
        )

        assert isinstance(result, Success)
        assert result.data.total_amount == Decimal("50.00")
        assert result.data.currency == "CAD"

    def test_reports_the_remaining_quantity(self, organizer: BoxOfficeUser, event: Event, tier: TicketTier) -> None:
        TicketTier.objects.filter(pk=tier.pk).update(remaining_quantity=2)

        result = issuance_service.issue_tickets_manually(
            organizer, event.pk, tier.pk, 3, "Guest", "guest@example.com", "Comps"
        )

        assert result == Failure('Only 2 tickets remaining in "General"', FailureCode.INSUFFICIENT_INVENTORY)
        assert not Order.objects.filter(event=event).exists()
        tier.refresh_from_db()
        assert tier.remaining_quantity == 2

    def test_tier_must_belong_to_the_event(
        self, organizer: BoxOfficeUser, event: Event, tier: TicketTier
    ) -> None:
        other_event = Event.objects.create(organizer=organizer, title="Other")

        result = issuance_service.issue_tickets_manually(
            organizer, other_event.pk, tier.pk, 1, "Guest", "guest@example.com", "Comps"
        )

        assert result == Failure("Ticket tier not found for this event", FailureCode.NOT_FOUND)

    @pytest.mark.parametrize(
        "quantity,reason,error",
        [
            (0, "Comps", "Quantity must be at least 1"),
            (1, "", "A reason is required for manual issuance"),
        ],
    )
    def test_input_validation(
        self, organizer: BoxOfficeUser, event: Event, tier: TicketTier, quantity: int, reason: str, error: str
    ) -> None:
        result = issuance_service.issue_tickets_manually(
            organizer, event.pk, tier.pk, quantity, "Guest", "guest@example.com", reason
        )

        assert result == Failure(error, FailureCode.VALIDATION)

    def test_other_organizers_see_not_found(
        self, other_organizer: BoxOfficeUser, event: Event, tier: TicketTier
    ) -> None:
        result = issuance_service.issue_tickets_manually(
            other_organizer, event.pk, tier.pk, 1, "Guest", "guest@example.com", "Comps"
        )

        assert result == Failure("Event not found", FailureCode.NOT_FOUND)

    def test_cancelled_events_cannot_issue(self, organizer: BoxOfficeUser, event: Event, tier: TicketTier) -> None:
        Event.objects.filter(pk=event.pk).update(status=Event.EventStatus.CANCELLED)

        result = issuance_service.issue_tickets_manually(
            organizer, event.pk, tier.pk, 1, "Guest", "guest@example.com", "Comps"
        )

        assert result == Failure('Cannot issue tickets for event with status "cancelled"', FailureCode.INVALID_STATE)


class TestReissueTicket:
    def test_reissue_is_inventory_neutral(
        self, organizer: BoxOfficeUser, ticket: Ticket, tier: TicketTier, event: Event
    ) -> None:
        tier.refresh_from_db()
        event.refresh_from_db()
        before = (tier.remaining_quantity, event.total_tickets_sold)

        result = issuance_service.reissue_ticket(
            organizer, ticket.order_id, ticket.pk, "Carla", "carla@example.com", reason="Transfer to a friend"
        )

        assert isinstance(result, Success)
        tier.refresh_from_db()
        event.refresh_from_db()
        assert (tier.remaining_quantity, event.total_tickets_sold) == before

        ticket.refresh_from_db()
        new_ticket = Ticket.objects.get(pk=result.data.new_ticket_id)
        assert ticket.status == Ticket.TicketStatus.CANCELLED
        assert new_ticket.is_valid
        assert new_ticket.original_ticket == ticket
        assert new_ticket.order_id == ticket.order_id
        assert new_ticket.tier_id == ticket.tier_id
        assert new_ticket.attendee_email == "carla@example.com"
        assert new_ticket.issue_reason == "Reissue: Transfer to a friend"
        order = Order.objects.get(pk=ticket.order_id)
        assert order.notes.startswith(f"Reissued ticket {str(ticket.pk)[:8]}")

    def test_reissue_works_on_a_sold_out_tier(
        self, organizer: BoxOfficeUser, ticket: Ticket, tier: TicketTier
    ) -> None:
        TicketTier.objects.filter(pk=tier.pk).update(remaining_quantity=0)

        result = issuance_service.reissue_ticket(
            organizer, ticket.order_id, ticket.pk, "Carla", "carla@example.com", reason="Name change"
        )

        assert isinstance(result, Success)
        tier.refresh_from_db()
        assert tier.remaining_quantity == 0

    def test_only_valid_tickets_can_be_reissued(self, organizer: BoxOfficeUser, ticket: Ticket) -> None:
        Ticket.objects.filter(pk=ticket.pk).update(status=Ticket.TicketStatus.REFUNDED)

        result = issuance_service.reissue_ticket(
            organizer, ticket.order_id, ticket.pk, "Carla", "carla@example.com", reason="Name change"
        )

        assert result == Failure('Cannot reissue a ticket with status "refunded"', FailureCode.INVALID_STATE)

    def test_ticket_must_be_on_the_order(
        self, organizer: BoxOfficeUser, ticket: Ticket, unpaid_order: Order
    ) -> None:
        result = issuance_service.reissue_ticket(
            organizer, unpaid_order.pk, ticket.pk, "Carla", "carla@example.com", reason="Name change"
        )

        assert result == Failure("Ticket not found on this order", FailureCode.NOT_FOUND)

    def test_other_organizers_see_not_found(self, other_organizer: BoxOfficeUser, ticket: Ticket) -> None:
        result = issuance_service.reissue_ticket(
            other_organizer, ticket.order_id, ticket.pk, "Carla", "carla@example.com", reason="Name change"
        )

        assert result == Failure("Ticket not found on this order", FailureCode.NOT_FOUND)
        ticket.refresh_from_db()
        assert ticket.is_valid


class TestSendTicketsToEmail:
    def test_sends_one_email_with_qr_codes(
        self, organizer: BoxOfficeUser, ticket: Ticket, second_ticket: Ticket
    ) -> None:
        result = issuance_service.send_tickets_to_email(
            organizer, [ticket.pk, second_ticket.pk], "someone@example.com", "Someone"
        )

        assert result == Success({"sent": 2})
        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.subject == "Your tickets for Jazz Night"
        assert message.bcc == ["someone@example.com"]
        images = [part for part in message.attachments if getattr(part, "get_content_type", None)]
        content_ids = {image["Content-ID"] for image in images}
        assert content_ids == {f"<ticket-{ticket.pk}>", f"<ticket-{second_ticket.pk}>"}
        assert images[0].get_payload(decode=True).startswith(b"\x89PNG")

    def test_skips_tickets_that_are_not_valid(
        self, organizer: BoxOfficeUser, ticket: Ticket, second_ticket: Ticket
    ) -> None:
        Ticket.objects.filter(pk=second_ticket.pk).update(status=Ticket.TicketStatus.CANCELLED)

        result = issuance_service.send_tickets_to_email(organizer, [ticket.pk, second_ticket.pk], "a@example.com")

        assert result == Success({"sent": 1})

    def test_no_valid_tickets(self, organizer: BoxOfficeUser, ticket: Ticket) -> None:
        Ticket.objects.filter(pk=ticket.pk).update(status=Ticket.TicketStatus.USED)

        result = issuance_service.send_tickets_to_email(organizer, [ticket.pk], "a@example.com")

        assert result == Failure("No valid tickets to send", FailureCode.VALIDATION)
        assert mail.outbox == []

    def test_other_organizers_see_not_found(self, other_organizer: BoxOfficeUser, ticket: Ticket) -> None:
        result = issuance_service.send_tickets_to_email(other_organizer, [ticket.pk], "a@example.com")

        assert result == Failure("Tickets not found", FailureCode.NOT_FOUND)

    def test_send_failure_is_reported(self, organizer: BoxOfficeUser, ticket: Ticket) -> None:
        with patch(
            "events.service.ticket_notification_service.send_email.delay", side_effect=ConnectionError("smtp down")
        ):
            result = issuance_service.send_tickets_to_email(organizer, [ticket.pk], "a@example.com")

        assert result == Failure("smtp down", FailureCode.INTERNAL)


class TestOrderItems:
    def test_records_the_price_sold_at(self, organizer: BoxOfficeUser, event: Event, tier: TicketTier) -> None:
        result = issuance_service.issue_tickets_manually(
            organizer, event.pk, tier.pk, 2, "Door", "door@example.com", "Cash at the door", is_free=False
        )

        assert isinstance(result, Success)
        [item] = OrderItem.objects.filter(order_id=result.data.order_id)
        assert item.tier_id == tier.pk
        assert item.quantity == 2
        assert item.unit_price == Decimal("25.00")
        assert item.subtotal == Decimal("50.00")

    def test_comps_are_recorded_at_zero(self, organizer: BoxOfficeUser, event: Event, tier: TicketTier) -> None:
        result = issuance_service.issue_tickets_manually(
            organizer, event.pk, tier.pk, 3, "Press", "press@example.com", "Press passes"
        )

        assert isinstance(result, Success)
        item = OrderItem.objects.get(order_id=result.data.order_id)
        assert (item.quantity, item.unit_price, item.subtotal) == (3, Decimal("0"), Decimal("0"))

    def test_reissue_adds_no_item(
        self, organizer: BoxOfficeUser, paid_order: Order, ticket: Ticket
    ) -> None:
        issuance_service.reissue_ticket(organizer, paid_order.pk, ticket.pk, "Cleo", "cleo@example.com", "Transfer")

        assert not OrderItem.objects.filter(order=paid_order).exists()


def test_issuance_locks_the_event_row(organizer: BoxOfficeUser, event: Event, tier: TicketTier) -> None:
    with patch("events.service.issuance_service.get_owned_event", wraps=get_owned_event) as spy:
        result = issuance_service.issue_tickets_manually(
            organizer, event.pk, tier.pk, 1, "Guest", "guest@example.com", "Comp"
        )

    assert isinstance(result, Success)
    spy.assert_called_once_with(organizer, event.pk, for_update=True)
