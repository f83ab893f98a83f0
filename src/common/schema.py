"""Common schemas for the API."""

import typing as t

from ninja import Schema

from .exceptions import FailureCode
from .results import Failure


class VersionResponse(Schema):
    version: str


class ResponseOk(Schema):
    status: t.Literal["ok"] = "ok"


class FailureResponse(Schema):
    success: t.Literal[False] = False
    error: str
    code: str


FAILURE_STATUS: dict[FailureCode, int] = {
    FailureCode.UNAUTHORIZED: 403,
    FailureCode.NOT_FOUND: 404,
    FailureCode.VALIDATION: 400,
    FailureCode.INVALID_STATE: 409,
    FailureCode.INSUFFICIENT_INVENTORY: 409,
    FailureCode.PAYMENT_REQUIRED: 400,
    FailureCode.PROCESSOR: 502,
    FailureCode.INTERNAL: 500,
}


def failure_response(failure: Failure) -> tuple[int, FailureResponse]:
    """Map a service failure to its HTTP status and response body."""
    return FAILURE_STATUS.get(failure.code, 400), FailureResponse(error=failure.error, code=failure.code.value)
