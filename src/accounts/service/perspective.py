"""Acting-as resolution.

Platform admins can operate the back office on behalf of an organizer. Every organizer
operation receives the resolved account explicitly instead of reading ambient request state.
"""

import typing as t
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError

from accounts.models import BoxOfficeUser
from common.exceptions import FailureCode, ServiceError

logger = structlog.get_logger(__name__)


class PerspectiveError(ServiceError):
    code = FailureCode.UNAUTHORIZED


def resolve_acting_organizer(
    user: BoxOfficeUser, perspective_organizer_id: UUID | str | None = None
) -> BoxOfficeUser:
    """Return the account whose resources the request operates on.

    Args:
        user: The authenticated user.
        perspective_organizer_id: The organizer an admin wants to act as, if any.

    Returns:
        The user itself, or the target organizer when an admin switched perspective.

    Raises:
        PerspectiveError: If a non-admin tries to switch, or the target is not an active organizer.
    """
    if not perspective_organizer_id or str(perspective_organizer_id) == str(user.id):
        return user
    if not user.is_platform_admin:
        logger.warning("perspective_switch_denied", user_id=str(user.id), target_id=str(perspective_organizer_id))
        raise PerspectiveError("Only platform admins can act on behalf of another organizer.")
    try:
        target = BoxOfficeUser.objects.organizers().get(pk=perspective_organizer_id)
    except (BoxOfficeUser.DoesNotExist, ValidationError):
        raise PerspectiveError("Organizer not found.", FailureCode.NOT_FOUND)
    logger.info("perspective_switched", admin_id=str(user.id), organizer_id=str(target.id))
    return t.cast(BoxOfficeUser, target)
