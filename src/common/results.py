"""Discriminated results returned by organizer operations.

Every public service operation returns either ``Success`` carrying its payload or ``Failure``
carrying a human-readable message and a machine-readable code. Expected failures are raised
internally as :class:`common.exceptions.ServiceError` and converted at the boundary by
:func:`returns_result`.
"""

import functools
import typing as t
from dataclasses import dataclass, field

import structlog
from django.core.exceptions import ValidationError

from .exceptions import FailureCode, ServiceError

logger = structlog.get_logger(__name__)

T = t.TypeVar("T")
P = t.ParamSpec("P")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred."


@dataclass(frozen=True)
class Success(t.Generic[T]):
    data: T
    success: t.Literal[True] = field(default=True, init=False)


@dataclass(frozen=True)
class Failure:
    error: str
    code: FailureCode = FailureCode.INTERNAL
    success: t.Literal[False] = field(default=False, init=False)


Result = t.Union[Success[T], Failure]


def _validation_message(exc: ValidationError) -> str:
    if hasattr(exc, "error_dict"):
        return "; ".join(f"{k}: {' '.join(str(m) for m in v)}" for k, v in exc.message_dict.items())
    return " ".join(exc.messages)


def returns_result(func: t.Callable[P, T]) -> t.Callable[P, Result[T]]:
    """Wrap a service function so it always returns a Result.

    ``ServiceError`` becomes a ``Failure`` with its own code, Django validation errors become
    ``VALIDATION`` failures and anything else is logged and reported as a generic internal error.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Success(func(*args, **kwargs))
        except ServiceError as e:
            logger.info("operation_failed", operation=func.__name__, code=e.code.value, error=e.message)
            return Failure(e.message, e.code)
        except ValidationError as e:
            logger.info("operation_invalid", operation=func.__name__, error=str(e))
            return Failure(_validation_message(e), FailureCode.VALIDATION)
        except Exception:
            logger.exception("operation_crashed", operation=func.__name__)
            return Failure(GENERIC_ERROR_MESSAGE, FailureCode.INTERNAL)

    return wrapper
