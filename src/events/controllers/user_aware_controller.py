import dataclasses
import typing as t

from django.conf import settings
from ninja.responses import codes_4xx, codes_5xx
from ninja_extra import ControllerBase

from accounts.models import BoxOfficeUser
from accounts.service.perspective import resolve_acting_organizer
from common.results import Failure, Result
from common.schema import FailureResponse, failure_response

FAILURE_RESPONSES: dict[frozenset[int], type[FailureResponse]] = {
    codes_4xx: FailureResponse,
    codes_5xx: FailureResponse,
}


class UserAwareController(ControllerBase):
    def user(self) -> BoxOfficeUser:
        """Get the user for this request."""
        return t.cast(BoxOfficeUser, self.context.request.user)  # type: ignore[union-attr]

    def acting_organizer(self) -> BoxOfficeUser:
        """Get the organizer this request operates on.

        Platform admins may send the acting-as header to work on behalf of another organizer.

        Raises:
            PerspectiveError: If the switch is not allowed or the organizer doesn't exist.
        """
        perspective_id = self.context.request.META.get(settings.ACTING_AS_HEADER)  # type: ignore[union-attr]
        return resolve_acting_organizer(self.user(), perspective_id or None)

    @staticmethod
    def respond(result: Result[t.Any], status: int = 200) -> tuple[int, t.Any]:
        """Render a service result as ``{"success": true, "data": ...}`` or the failure body."""
        if isinstance(result, Failure):
            return failure_response(result)
        data = result.data
        if dataclasses.is_dataclass(data) and not isinstance(data, type):
            data = dataclasses.asdict(data)
        return status, {"success": True, "data": data}
