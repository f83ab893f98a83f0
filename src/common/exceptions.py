"""Base exception for errors that services report back to their caller."""

from enum import StrEnum


class FailureCode(StrEnum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    INVALID_STATE = "invalid_state"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"
    PAYMENT_REQUIRED = "payment_required"
    PROCESSOR = "processor"
    INTERNAL = "internal"


class ServiceError(Exception):
    """An expected failure of a service operation.

    The message is meant for the organizer and is returned verbatim in the failure result.
    """

    code: FailureCode = FailureCode.INTERNAL

    def __init__(self, message: str, code: FailureCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message
