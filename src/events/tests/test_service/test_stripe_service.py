from unittest.mock import MagicMock, Mock, patch

import pytest
import stripe

from accounts.models import BoxOfficeUser
from common.exceptions import FailureCode
from common.results import Failure, Success
from conftest import BoxOfficeUserFactory
from events.exceptions import PaymentProcessorError
from events.service import stripe_service

pytestmark = pytest.mark.django_db


class TestCreateRefund:
    @patch("stripe.Refund.create")
    def test_refund_params(self, mock_create: MagicMock) -> None:
        mock_create.return_value = MagicMock(id="re_42")

        refund_id = stripe_service.create_refund(
            "pi_1", 2500, idempotency_key="refund-ticket-1", metadata={"ticket_id": "1"}
        )

        assert refund_id == "re_42"
        mock_create.assert_called_once_with(
            payment_intent="pi_1",
            amount=2500,
            reason="requested_by_customer",
            reverse_transfer=True,
            refund_application_fee=True,
            metadata={"ticket_id": "1"},
            idempotency_key="refund-ticket-1",
        )

    @patch("stripe.Refund.create")
    def test_stripe_errors_become_processor_errors(self, mock_create: MagicMock) -> None:
        mock_create.side_effect = stripe.CardError("Your card was declined.", param=None, code="card_declined")

        with pytest.raises(PaymentProcessorError, match="Your card was declined."):
            stripe_service.create_refund("pi_1", 100)


class TestCompletePayoutOnboarding:
    @patch("events.service.stripe_service.get_account_details")
    def test_marks_onboarding_complete(self, mock_account: MagicMock, user_factory: BoxOfficeUserFactory) -> None:
        user = user_factory(role=BoxOfficeUser.Role.ORGANIZER, stripe_account_id="acct_new")
        mock_account.return_value = Mock(charges_enabled=True, details_submitted=True, default_currency="eur")

        result = stripe_service.complete_payout_onboarding(user)

        assert result == Success({"stripe_onboarding_completed": True, "default_currency": "EUR"})
        user.refresh_from_db()
        assert user.payouts_connected

    @patch("events.service.stripe_service.get_account_details")
    def test_incomplete_account(self, mock_account: MagicMock, user_factory: BoxOfficeUserFactory) -> None:
        user = user_factory(role=BoxOfficeUser.Role.ORGANIZER, stripe_account_id="acct_new")
        mock_account.return_value = Mock(charges_enabled=False, details_submitted=True, default_currency="eur")

        result = stripe_service.complete_payout_onboarding(user)

        assert isinstance(result, Success)
        assert result.data["stripe_onboarding_completed"] is False
        user.refresh_from_db()
        assert not user.payouts_connected

    def test_requires_a_connected_account(self, attendee: BoxOfficeUser) -> None:
        result = stripe_service.complete_payout_onboarding(attendee)

        assert result == Failure("You must connect your Stripe account first.", FailureCode.VALIDATION)


class TestStripeEventHandler:
    def test_account_updated_syncs_the_organizer(self, organizer: BoxOfficeUser) -> None:
        event = Mock(spec=stripe.Event)
        event.type = "account.updated"
        event.data = Mock()
        event.data.object = Mock(id="acct_organizer", charges_enabled=False, details_submitted=True)

        stripe_service.StripeEventHandler(event).handle()

        organizer.refresh_from_db()
        assert organizer.stripe_onboarding_completed is False

    def test_unknown_account_is_ignored(self, organizer: BoxOfficeUser) -> None:
        event = Mock(spec=stripe.Event)
        event.type = "account.updated"
        event.data = Mock()
        event.data.object = Mock(id="acct_unknown", charges_enabled=False, details_submitted=False)

        stripe_service.StripeEventHandler(event).handle()

        organizer.refresh_from_db()
        assert organizer.stripe_onboarding_completed is True

    def test_unknown_event_types_are_logged(self) -> None:
        event = Mock(spec=stripe.Event)
        event.type = "payout.paid"
        event.id = "evt_1"

        with patch.object(stripe_service.StripeEventHandler, "handle_unknown_event") as mock_unknown:
            stripe_service.StripeEventHandler(event).handle()

        mock_unknown.assert_called_once_with(event)
