"""Expected failures of organizer operations.

Raised inside services and converted to ``Failure`` results by ``common.results.returns_result``.
"""

from common.exceptions import FailureCode, ServiceError


class NotFoundError(ServiceError):
    """The resource does not exist or belongs to another organizer."""

    code = FailureCode.NOT_FOUND


class PreconditionError(ServiceError):
    """Required input is missing or malformed."""

    code = FailureCode.VALIDATION


class InvalidTicketStateError(ServiceError):
    code = FailureCode.INVALID_STATE

    def __init__(self, status: str, action: str = "cancel") -> None:
        super().__init__(f'Cannot {action} a ticket with status "{status}"')
        self.status = status


class InvalidEventStateError(ServiceError):
    code = FailureCode.INVALID_STATE


class InsufficientInventoryError(ServiceError):
    code = FailureCode.INSUFFICIENT_INVENTORY

    def __init__(self, remaining: int, tier_name: str = "") -> None:
        if tier_name:
            message = f'Only {remaining} tickets remaining in "{tier_name}"'
        else:
            message = f"Only {remaining} tickets remaining"
        super().__init__(message)
        self.remaining = remaining
        self.tier_name = tier_name


class PaymentMissingError(ServiceError):
    """The order has no processor reference to refund against."""

    code = FailureCode.PAYMENT_REQUIRED


class PaymentProcessorError(ServiceError):
    code = FailureCode.PROCESSOR


class PayoutsNotConnectedError(ServiceError):
    code = FailureCode.PAYMENT_REQUIRED

    def __init__(self) -> None:
        super().__init__("Stripe account must be connected before creating events")


class NotificationError(ServiceError):
    """An email the organizer explicitly asked for could not be sent."""

    code = FailureCode.INTERNAL
