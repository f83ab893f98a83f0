import pytest
from pytest_django import DjangoAssertNumQueries

from accounts.models import BoxOfficeUser
from events.models import Event, Order, Ticket, TicketTier

pytestmark = pytest.mark.django_db


class TestManagers:
    def test_ticket_manager_exposes_queryset_helpers(
        self, organizer: BoxOfficeUser, other_organizer: BoxOfficeUser, ticket: Ticket
    ) -> None:
        assert list(Ticket.objects.with_details().owned_by(organizer)) == [ticket]
        assert list(Ticket.objects.owned_by(organizer).valid()) == [ticket]
        assert not Ticket.objects.owned_by(other_organizer).exists()
        assert list(Ticket.objects.valid()) == [ticket]

    def test_with_details_loads_relations(
        self, ticket: Ticket, django_assert_num_queries: DjangoAssertNumQueries
    ) -> None:
        loaded = Ticket.objects.with_details().get(pk=ticket.pk)

        with django_assert_num_queries(0):
            assert (loaded.tier.name, loaded.event.title, loaded.order.buyer_email) == (
                "General",
                "Jazz Night",
                "ann@example.com",
            )

    def test_event_manager_exposes_queryset_helpers(
        self, organizer: BoxOfficeUser, other_organizer: BoxOfficeUser, event: Event, tier: TicketTier
    ) -> None:
        [loaded] = Event.objects.with_tiers().owned_by(organizer)
        assert loaded == event
        assert [tier_row.name for tier_row in loaded.ticket_tiers.all()] == ["General"]
        assert list(Event.objects.owned_by(organizer).with_tiers()) == [event]
        assert not Event.objects.owned_by(other_organizer).exists()

    def test_related_managers_filter_valid_tickets(
        self, event: Event, paid_order: Order, ticket: Ticket, second_ticket: Ticket
    ) -> None:
        Ticket.objects.filter(pk=second_ticket.pk).update(status=Ticket.TicketStatus.CANCELLED)

        assert list(event.tickets.valid()) == [ticket]
        assert list(paid_order.tickets.valid()) == [ticket]
