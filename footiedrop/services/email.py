import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr

from footiedrop.core.config import settings
from footiedrop.core.error_codes import ErrorCode
from footiedrop.core.exceptions import DependencyFailureError

log = logging.getLogger("footiedrop.notify")

# display names for the sender tags used by the services
SENDERS = {
    "team": "Team",
    "security": "Security",
}

def _from_header(from_tag: str) -> str:
    label = SENDERS.get(from_tag, from_tag.title())
    return formataddr((f"{settings.MAIL_FROM_NAME} {label}", settings.MAIL_FROM))

def _send_email_sync(from_tag: str, to_email: str, subject: str, body: str) -> None:
    msg = MIMEText(body, "html", "utf-8")
    msg["Subject"] = subject
    msg["From"] = _from_header(from_tag)
    msg["To"] = to_email

    # Respect timeout to avoid hanging the app
    timeout = float(settings.SMTP_TIMEOUT_SECONDS)
    server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout)
    try:
        if settings.SMTP_TLS:
            server.starttls()
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            server.close()

async def send_email(from_tag: str, to_email: str, subject: str, body: str) -> None:
    """Deliver one message; raises on transport failure."""
    # Short-circuit in dev or placeholder host
    if (not settings.EMAIL_ENABLED) or settings.SMTP_HOST in {"smtp.example.com", "", None}:
        # bodies carry codes and reset links, keep them out of the log
        log.info("[DEV EMAIL] To: %s | Subject: %s", to_email, subject)
        return

    # Offload synchronous SMTP work to thread so we don't block the event loop
    await asyncio.to_thread(_send_email_sync, from_tag, to_email, subject, body)

async def notify(from_tag: str, to_email: str, subject: str, body: str) -> bool:
    """Send a notification after the primary state change has been committed.

    Returns True when the message went out. On failure the outcome depends on
    NOTIFY_FAILURE_POLICY: "best_effort" logs the error and returns False,
    "strict" raises DependencyFailureError.
    """
    try:
        await send_email(from_tag, to_email, subject, body)
        return True
    except (smtplib.SMTPException, OSError) as exc:
        log.error("Notification %r to %s failed: %s", subject, to_email, exc)
        if settings.NOTIFY_FAILURE_POLICY == "strict":
            raise DependencyFailureError(
                error_code=ErrorCode.EMAIL_SEND_FAILED,
                user_message="We could not send the email, please try again",
            ) from exc
        return False
