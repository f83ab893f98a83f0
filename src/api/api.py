from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI

from common.exceptions import ServiceError
from common.schema import ResponseOk, VersionResponse
from events.controllers.organizer_events import OrganizerEventController, OrganizerPayoutController
from events.controllers.organizer_tickets import OrganizerTicketController
from events.controllers.stripe_webhook import StripeWebhookController

from .exception_handlers import handle_django_validation_error, handle_general_exception, handle_service_error

api = NinjaExtraAPI(
    title=f"{settings.SITE_NAME} API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"{settings.SITE_NAME} organizer API {settings.VERSION}",
    app_name=f"boxoffice-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SITE_NAME},
    ],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version."""
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API."""
    return 200, ResponseOk()


api.register_controllers(
    OrganizerEventController,
    OrganizerPayoutController,
    OrganizerTicketController,
    StripeWebhookController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    ServiceError: handle_service_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)  # type: ignore[arg-type]
