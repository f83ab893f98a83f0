"""Common tasks."""

import base64
from datetime import timedelta
from email.mime.image import MIMEImage

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

from common.models import EmailLog, SiteSettings

logger = structlog.get_logger(__name__)


@shared_task
def send_email(
    *,
    to: str | list[str],
    subject: str,
    body: str,
    html_body: str | None = None,
    inline_images: dict[str, str] | None = None,
) -> None:
    """Send an email.

    Args:
        to (str | list[str]): One or more email addresses. Recipients are bcc'd.
        subject (str): The email subject.
        body (str): The plain text body.
        html_body (str | None): The HTML body.
        inline_images (dict[str, str] | None): Base64 encoded PNGs keyed by Content-ID, referenced
            from the HTML body as ``cid:<key>``.

    Returns:
        None
    """
    site_settings = SiteSettings.get_solo()
    recipients = [to] if isinstance(to, str) else to
    recipients = [to_safe_email_address(email, site_settings=site_settings) for email in recipients]
    email_msg = EmailMultiAlternatives(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        bcc=recipients,
        reply_to=[site_settings.support_email] if site_settings.support_email else None,
    )
    if html_body:
        email_msg.attach_alternative(html_body, "text/html")
        email_msg.mixed_subtype = "related"
    for content_id, encoded in (inline_images or {}).items():
        image = MIMEImage(base64.b64decode(encoded), _subtype="png")
        image.add_header("Content-ID", f"<{content_id}>")
        image.add_header("Content-Disposition", "inline", filename=f"{content_id}.png")
        email_msg.attach(image)
    email_msg.send(fail_silently=False)
    logger.info("email_sent", subject=subject, recipient_count=len(recipients))

    email_logs: list[EmailLog] = []
    for recipient in recipients:
        el = EmailLog(to=recipient, subject=subject)
        el.set_body(body=body)
        if html_body:
            el.set_html(html_body=html_body)
        email_logs.append(el)
    EmailLog.objects.bulk_create(email_logs)


@shared_task
def cleanup_email_logs() -> None:
    """Clean up email logs."""
    older_than_a_week = EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=7))
    older_than_a_week.delete()

    # bodies are only kept for a day
    older_than_a_day = EmailLog.objects.filter(sent_at__lte=timezone.now() - timedelta(days=1))
    older_than_a_day.update(compressed_body=None, compressed_html=None)


def to_safe_email_address(email: str, site_settings: SiteSettings | None = None) -> str:
    """Convert an email address to a safe format for sending.

    Args:
        email (str): The email address.
        site_settings (SiteSettings): The site settings.

    Returns:
        str: The safe email address.
    """
    site_settings = site_settings or SiteSettings.get_solo()
    if site_settings.live_emails:
        return email
    safe_email = email.replace("@", "_at_").replace(".", "_dot_")
    user, domain = site_settings.internal_catchall_email.split("@", 1)
    safe_email = f"{user}+{safe_email}@{domain}"
    return safe_email
