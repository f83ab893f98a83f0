from unittest.mock import MagicMock, patch

import pytest
import stripe
from django.test.client import Client
from django.urls import reverse

pytestmark = pytest.mark.django_db


def test_webhook_without_signature() -> None:
    response = Client().post(reverse("api:stripe_webhook"), data=b"{}", content_type="application/json")

    assert response.status_code == 400


@patch("stripe.Webhook.construct_event")
def test_webhook_with_bad_signature(mock_construct: MagicMock) -> None:
    mock_construct.side_effect = stripe.SignatureVerificationError("bad", "sig")

    response = Client().post(
        reverse("api:stripe_webhook"), data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x"
    )

    assert response.status_code == 400


@patch("events.service.stripe_service.StripeEventHandler")
@patch("stripe.Webhook.construct_event")
def test_webhook_dispatches_event(mock_construct: MagicMock, mock_handler: MagicMock) -> None:
    event = MagicMock(type="account.updated")
    mock_construct.return_value = event

    response = Client().post(
        reverse("api:stripe_webhook"), data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x"
    )

    assert response.status_code == 200
    mock_handler.assert_called_once_with(event)
    mock_handler.return_value.handle.assert_called_once()
