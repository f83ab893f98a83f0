"""Stripe Connect adapter.

Refunds are issued against the original PaymentIntent with the transfer to the connected
account reversed and the platform fee returned, so the organizer bears the refund.
"""

import typing as t

import stripe
import structlog
from django.conf import settings
from django.db import transaction

from accounts.models import BoxOfficeUser
from common.results import returns_result
from events.exceptions import PaymentProcessorError, PreconditionError

logger = structlog.get_logger(__name__)

stripe.api_key = settings.STRIPE_SECRET_KEY

REFUND_REASON = "requested_by_customer"


def create_refund(
    payment_intent_id: str,
    amount: int,
    *,
    idempotency_key: str | None = None,
    metadata: dict[str, str] | None = None,
) -> str:
    """Issue a partial refund against a PaymentIntent.

    Args:
        payment_intent_id: The processor reference of the original charge.
        amount: The amount in minor units (see ``events.utils.to_minor_units``).
        idempotency_key: Makes retries of the same logical refund safe.
        metadata: Stored on the refund for reconciliation.

    Returns:
        The Stripe refund id.

    Raises:
        PaymentProcessorError: If Stripe rejects the refund or can't be reached.
    """
    params: dict[str, t.Any] = {
        "payment_intent": payment_intent_id,
        "amount": amount,
        "reason": REFUND_REASON,
        "reverse_transfer": True,
        "refund_application_fee": True,
        "metadata": metadata or {},
    }
    if idempotency_key:
        params["idempotency_key"] = idempotency_key
    try:
        refund = stripe.Refund.create(**params)
    except stripe.StripeError as e:
        logger.error(
            "stripe_refund_failed",
            payment_intent_id=payment_intent_id,
            amount=amount,
            error=str(e),
            stripe_code=getattr(e, "code", None),
        )
        raise PaymentProcessorError(e.user_message or str(e) or "Stripe refund failed") from e
    logger.info("stripe_refund_created", payment_intent_id=payment_intent_id, amount=amount, refund_id=refund.id)
    return t.cast(str, refund.id)


def get_account_details(account_id: str) -> stripe.Account:
    """Retrieve details for a connected Stripe account."""
    return t.cast(stripe.Account, stripe.Account.retrieve(account_id))


def _apply_account_status(user: BoxOfficeUser, account: t.Any) -> bool:
    """Mark onboarding complete once Stripe can charge and has the organizer's details."""
    completed = bool(getattr(account, "charges_enabled", False)) and bool(getattr(account, "details_submitted", False))
    update_fields = ["stripe_onboarding_completed"]
    user.stripe_onboarding_completed = completed
    if completed:
        user.default_currency = (getattr(account, "default_currency", None) or settings.DEFAULT_CURRENCY).upper()
        update_fields.append("default_currency")
    user.save(update_fields=update_fields)
    return completed


@returns_result
def complete_payout_onboarding(user: BoxOfficeUser) -> dict[str, t.Any]:
    """Re-read the organizer's connected account after they return from Stripe onboarding."""
    if not user.stripe_account_id:
        raise PreconditionError("You must connect your Stripe account first.")
    try:
        account = get_account_details(user.stripe_account_id)
    except stripe.StripeError as e:
        logger.error("stripe_account_retrieve_failed", account_id=user.stripe_account_id, error=str(e))
        raise PaymentProcessorError(e.user_message or str(e)) from e
    completed = _apply_account_status(user, account)
    logger.info("stripe_onboarding_checked", user_id=str(user.id), completed=completed)
    return {
        "stripe_onboarding_completed": completed,
        "default_currency": user.default_currency,
    }


class StripeEventHandler:
    """Handles the business logic for different types of Stripe webhook events."""

    def __init__(self, event: stripe.Event):
        """Initialize the Stripe event handler."""
        self.event = event

    def handle(self) -> None:
        """Routes the event to the appropriate handler based on its type."""
        event_type = self.event.type
        handler_method = getattr(self, f"handle_{event_type.replace('.', '_')}", self.handle_unknown_event)
        handler_method(self.event)

    def handle_unknown_event(self, event: stripe.Event) -> None:
        """Log unhandled event types."""
        logger.info("stripe_webhook_unhandled_event", event_type=event.type, event_id=event.id)

    @transaction.atomic
    def handle_account_updated(self, event: stripe.Event) -> None:
        """Sync the organizer's payout status when their connected account changes."""
        account_data = event.data.object
        account_id = account_data.id

        try:
            user = BoxOfficeUser.objects.select_for_update().get(stripe_account_id=account_id)
        except BoxOfficeUser.DoesNotExist:
            logger.warning("stripe_account_updated_unknown", account_id=account_id)
            return

        completed = _apply_account_status(user, account_data)
        logger.info(
            "stripe_account_updated",
            user_id=str(user.id),
            account_id=account_id,
            onboarding_completed=completed,
        )
