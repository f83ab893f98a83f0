"""Attendee emails sent by organizer operations.

Cancellation notices are best-effort: by the time they are sent the refund and the status
change are already committed, so a delivery problem is logged and swallowed. The ticket email,
on the other hand, is the whole point of ``send_tickets_to_email`` and its failures propagate.
"""

import typing as t
from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from django.template.loader import render_to_string

from common.models import SiteSettings
from common.tasks import send_email
from events.models import Event, Ticket
from events.utils import format_money, generate_qr_png

logger = structlog.get_logger(__name__)


@dataclass
class CancellationNotice:
    """What one attendee is told about the tickets cancelled under their email address."""

    email: str
    attendee_name: str
    currency: str
    tier_names: list[str] = field(default_factory=list)
    refund_amount: Decimal = Decimal("0")


def group_by_attendee(tickets: t.Iterable[Ticket], refunds: t.Mapping[t.Any, Decimal]) -> list[CancellationNotice]:
    """Collapse tickets into one notice per unique attendee email.

    Args:
        tickets: The cancelled tickets, with ``tier`` loaded.
        refunds: The amount actually refunded for each ticket, keyed by ticket id.
    """
    notices: dict[str, CancellationNotice] = {}
    for ticket in tickets:
        notice = notices.get(ticket.attendee_email)
        if notice is None:
            notice = CancellationNotice(
                email=ticket.attendee_email,
                attendee_name=ticket.attendee_name,
                currency=ticket.tier.effective_currency,
            )
            notices[ticket.attendee_email] = notice
        notice.tier_names.append(ticket.tier.name)
        notice.refund_amount += refunds.get(ticket.pk, Decimal("0"))
    return list(notices.values())


def _event_context(event: Event) -> dict[str, t.Any]:
    occurrence = event.first_occurrence
    return {
        "event_title": event.title,
        "event_date": occurrence.starts_at if occurrence else None,
        "event_end_date": occurrence.ends_at if occurrence else None,
        "venue": event.venue_display,
    }


def send_cancellation_email(event: Event, notice: CancellationNotice, reason: str) -> bool:
    """Tell an attendee their tickets were cancelled. Never raises.

    Returns:
        Whether the email was handed off successfully.
    """
    context = {
        **_event_context(event),
        "attendee_name": notice.attendee_name,
        "tier_names": ", ".join(notice.tier_names),
        "reason": reason,
        "has_refund": notice.refund_amount > 0,
        "refund_display": format_money(notice.refund_amount, notice.currency),
        "site_url": SiteSettings.get_solo().frontend_base_url,
    }
    try:
        send_email.delay(
            to=notice.email,
            subject=f"Ticket cancelled - {event.title}",
            body=render_to_string("events/emails/ticket_cancelled.txt", context),
            html_body=render_to_string("events/emails/ticket_cancelled.html", context),
        )
    except Exception:
        logger.exception("cancellation_email_failed", event_id=str(event.pk), attendee_email=notice.email)
        return False
    logger.info("cancellation_email_sent", event_id=str(event.pk), attendee_email=notice.email)
    return True


def notify_cancellations(event: Event, notices: t.Iterable[CancellationNotice], reason: str) -> int:
    """Send one cancellation email per notice. Returns how many were handed off."""
    return sum(send_cancellation_email(event, notice, reason) for notice in notices)


def send_ticket_email(
    event: Event, tickets: t.Sequence[Ticket], recipient_email: str, recipient_name: str
) -> None:
    """Email tickets with their QR codes embedded inline.

    Raises:
        Exception: Whatever the mail pipeline raises; the caller reports it.
    """
    ticket_context = []
    inline_images: dict[str, str] = {}
    for ticket in tickets:
        content_id = f"ticket-{ticket.pk}"
        inline_images[content_id] = generate_qr_png(ticket.qr_code_secret)
        ticket_context.append(
            {
                "tier_name": ticket.tier.name,
                "short_id": str(ticket.pk)[:8],
                "content_id": content_id,
            }
        )
    context = {
        **_event_context(event),
        "attendee_name": recipient_name,
        "tickets": ticket_context,
    }
    send_email.delay(
        to=recipient_email,
        subject=f"Your tickets for {event.title}",
        body=render_to_string("events/emails/tickets.txt", context),
        html_body=render_to_string("events/emails/tickets.html", context),
        inline_images=inline_images,
    )
    logger.info("ticket_email_sent", event_id=str(event.pk), ticket_count=len(tickets))
