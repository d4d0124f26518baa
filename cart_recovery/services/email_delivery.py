# cart_recovery/services/email_delivery.py
import smtplib
from email.message import EmailMessage

from cart_recovery.core.config import settings
from cart_recovery.core.logging import get_logger

logger = get_logger(__name__)


def deliver_email(to_email: str, subject: str, body: str, html: str | None = None) -> None:
    if not settings.EMAILS_ENABLED or not settings.SMTP_HOST:
        logger.info(
            "Email delivery disabled; message logged instead",
            extra={"to_email": to_email, "subject": subject, "body": body},
        )
        return

    msg = EmailMessage()
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_TLS:
            server.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Email delivered", extra={"to_email": to_email, "subject": subject})
