# app/core/mailer.py
"""
Outgoing mail for ticket events.

Every public send_* method is meant to run as a background task: it never
raises, a failed delivery is logged and dropped.
"""
import smtplib
from dataclasses import dataclass
from email.errors import MessageError
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from functools import lru_cache
from html import escape

import structlog

from app.core.config import Settings, get_settings

log = structlog.get_logger(__name__)


def _header_value(value: str) -> str:
    # customer-supplied text ends up in headers; no line breaks allowed there
    return " ".join(value.splitlines())


@dataclass(frozen=True)
class TicketSnapshot:
    """Detached copy of the fields a notification needs."""

    id: int
    customer_name: str
    user_name: str
    content: str
    status: str

    @classmethod
    def from_ticket(cls, ticket) -> "TicketSnapshot":
        return cls(
            id=ticket.id,
            customer_name=ticket.customer_name,
            user_name=ticket.user_name,
            content=ticket.content,
            status=ticket.status,
        )


class Mailer:
    def __init__(self, settings: Settings):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.use_starttls = settings.SMTP_STARTTLS
        self.username = settings.EMAIL_USER
        self.password = settings.EMAIL_PASS
        self.sender_name = settings.EMAIL_SENDER_NAME
        self.admin_email = settings.ADMIN_EMAIL

    @property
    def enabled(self) -> bool:
        return bool(self.username)

    def send_email(self, to_email: str, subject: str, html_content: str) -> bool:
        if not to_email:
            return False
        if not self.enabled:
            log.info("mail.skipped_not_configured", subject=subject)
            return False
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = _header_value(subject)
            msg["From"] = formataddr((self.sender_name, self.username))
            msg["To"] = _header_value(to_email)
            msg.attach(MIMEText(html_content, "html", "utf-8"))
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                if self.use_starttls:
                    server.starttls()
                if self.password:
                    server.login(self.username, self.password)
                server.sendmail(self.username, [to_email], msg.as_string())
        except (smtplib.SMTPException, MessageError, OSError, ValueError) as exc:
            log.error("mail.send_failed", to=to_email, subject=subject, error=str(exc))
            return False
        log.info("mail.sent", to=to_email, subject=subject)
        return True

    def send_submission_confirmation(self, to_email: str, ticket: TicketSnapshot) -> bool:
        subject = f"[{self.sender_name}] Your support request has been received (No. {ticket.id})"
        html = f"""
<h2>Hello {escape(ticket.user_name)}, your support request has been received.</h2>
<p>We will look into it as soon as possible.</p>
<hr>
<h3>Request details</h3>
<ul>
  <li><strong>Request No.:</strong> {ticket.id}</li>
  <li><strong>Customer:</strong> {escape(ticket.customer_name)}</li>
  <li><strong>Submitted by:</strong> {escape(ticket.user_name)}</li>
  <li><strong>Description:</strong></li>
</ul>
<div>{ticket.content}</div>
<hr>
<p>Thank you.<br>{escape(self.sender_name)}</p>
"""
        return self.send_email(to_email, subject, html)

    def send_admin_notification(self, ticket: TicketSnapshot) -> bool:
        if not self.admin_email:
            return False
        subject = f"[{self.sender_name}] New support request No. {ticket.id} from {ticket.customer_name}"
        html = f"""
<h2>A new support request was submitted.</h2>
<ul>
  <li><strong>Request No.:</strong> {ticket.id}</li>
  <li><strong>Customer:</strong> {escape(ticket.customer_name)}</li>
  <li><strong>Submitted by:</strong> {escape(ticket.user_name)}</li>
</ul>
<div>{ticket.content}</div>
"""
        return self.send_email(self.admin_email, subject, html)

    def send_status_update(self, to_email: str, ticket: TicketSnapshot, new_status: str) -> bool:
        subject = f"[{self.sender_name}] Request No. {ticket.id} is now {new_status}"
        html = f"""
<h2>Hello {escape(ticket.user_name)}, the status of your support request has changed.</h2>
<hr>
<ul>
  <li><strong>Request No.:</strong> {ticket.id}</li>
  <li><strong>Customer:</strong> {escape(ticket.customer_name)}</li>
  <li><strong>Current status:</strong> <strong>{escape(new_status)}</strong></li>
</ul>
<p>You can follow the details on the request lookup page.</p>
<hr>
<p>Thank you.<br>{escape(self.sender_name)}</p>
"""
        return self.send_email(to_email, subject, html)


@lru_cache
def get_mailer() -> Mailer:
    return Mailer(get_settings())
