# hostel_app/utils/email.py
"""
Email utilities: configuration, message structure, templates and SMTP sending.

This module provides:
- EmailMessage: validated email message dataclass, with optional attachments.
- EmailConfig: SMTP configuration built from Settings.
- send_email: SMTP-based sending.
- Mailer: the templated messages this service sends (booking confirmation,
  fine notice, due reminder). Sending is skipped when no SMTP host is configured.
"""

from __future__ import annotations

import smtplib
from dataclasses import dataclass, field
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any, Mapping

from email_validator import EmailNotValidError, validate_email
from jinja2 import DictLoader, Environment, select_autoescape

from hostel_app.config.settings import Settings
from hostel_app.core.logging import get_logger

logger = get_logger(__name__)


class EmailError(Exception):
    """Raised when a message cannot be built or delivered."""
    pass


@dataclass
class Attachment:
    filename: str
    content: bytes
    subtype: str = "pdf"


@dataclass
class EmailMessage:
    """Email message structure with validation."""
    subject: str
    to: list[str]
    body_text: str | None = None
    body_html: str | None = None
    from_email: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    headers: Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        if not self.subject.strip():
            raise EmailError("Subject cannot be empty")

        if not self.to:
            raise EmailError("At least one recipient is required")

        if not self.body_text and not self.body_html:
            raise EmailError("Either body_text or body_html must be provided")

        for address in self.to:
            try:
                validate_email(address, check_deliverability=False)
            except EmailNotValidError as e:
                raise EmailError(f"Invalid recipient email: {address}") from e


@dataclass
class EmailConfig:
    """SMTP configuration."""
    smtp_host: str | None
    smtp_port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    from_email: str | None = None
    from_name: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailConfig:
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None,
            use_tls=settings.SMTP_TLS,
            from_email=settings.EMAIL_FROM_ADDRESS,
            from_name=settings.EMAIL_FROM_NAME,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host)


def _build_mime(message: EmailMessage, config: EmailConfig) -> MIMEMultipart:
    msg = MIMEMultipart('mixed')
    msg['Subject'] = message.subject
    sender = message.from_email or config.from_email or config.username or ""
    msg['From'] = formataddr((config.from_name, sender)) if config.from_name else sender
    msg['To'] = ', '.join(message.to)

    if message.headers:
        for key, value in message.headers.items():
            msg[key] = value

    body = MIMEMultipart('alternative')
    if message.body_text:
        body.attach(MIMEText(message.body_text, 'plain'))
    if message.body_html:
        body.attach(MIMEText(message.body_html, 'html'))
    msg.attach(body)

    for attachment in message.attachments:
        part = MIMEApplication(attachment.content, _subtype=attachment.subtype)
        part.add_header('Content-Disposition', 'attachment', filename=attachment.filename)
        msg.attach(part)

    return msg


def send_email(message: EmailMessage, config: EmailConfig) -> None:
    """Send an email using SMTP."""
    if not config.enabled:
        raise EmailError("SMTP host is not configured")

    msg = _build_mime(message, config)
    try:
        with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=30) as server:
            if config.use_tls:
                server.starttls()

            if config.username and config.password:
                server.login(config.username, config.password)

            server.send_message(msg, to_addrs=message.to)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email: {e}", extra={"recipients": len(message.to)})
        raise EmailError(f"Failed to send email: {e}") from e

    logger.info("Email sent", extra={"recipients": len(message.to), "subject": message.subject})


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_TEMPLATES = {
    "booking_confirmation.html": """
<h2>Booking Confirmed</h2>
<p>Dear {{ name }},</p>
<p>Your booking for room <strong>{{ room_number }}</strong> ({{ plan_label }}) has been confirmed.</p>
<p>Amount paid: <strong>{{ currency }} {{ amount }}</strong></p>
<p>Your receipt is attached to this email.</p>
<p>Regards,<br>{{ app_name }}</p>
""",
    "booking_confirmation.txt": """Dear {{ name }},

Your booking for room {{ room_number }} ({{ plan_label }}) has been confirmed.
Amount paid: {{ currency }} {{ amount }}
Your receipt is attached to this email.

Regards,
{{ app_name }}
""",
    "fine_notice.html": """
<h2>Fine Issued</h2>
<p>Dear {{ name }},</p>
<p>A fine of <strong>{{ currency }} {{ amount }}</strong> has been added to your account.</p>
<p>Reason: {{ description }}</p>
<p>Invoice: {{ invoice_number }}{% if due_date %}, due {{ due_date }}{% endif %}</p>
<p>Regards,<br>{{ app_name }}</p>
""",
    "fine_notice.txt": """Dear {{ name }},

A fine of {{ currency }} {{ amount }} has been added to your account.
Reason: {{ description }}
Invoice: {{ invoice_number }}{% if due_date %}, due {{ due_date }}{% endif %}

Regards,
{{ app_name }}
""",
    "due_reminder.html": """
<h2>Payment Reminder</h2>
<p>Dear {{ name }},</p>
<p>You have <strong>{{ currency }} {{ total_due }}</strong> outstanding across {{ invoices|length }} invoice(s):</p>
<ul>
{% for invoice in invoices %}  <li>{{ invoice.invoice_number }}: {{ currency }} {{ invoice.amount }}{% if invoice.due_date %} (due {{ invoice.due_date }}){% endif %}</li>
{% endfor %}</ul>
<p>Please clear your dues at the hostel office or online.</p>
<p>Regards,<br>{{ app_name }}</p>
""",
    "due_reminder.txt": """Dear {{ name }},

You have {{ currency }} {{ total_due }} outstanding across {{ invoices|length }} invoice(s):
{% for invoice in invoices %}- {{ invoice.invoice_number }}: {{ currency }} {{ invoice.amount }}{% if invoice.due_date %} (due {{ invoice.due_date }}){% endif %}
{% endfor %}
Please clear your dues at the hostel office or online.

Regards,
{{ app_name }}
""",
}

_env = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
)


def render_template(name: str, context: Mapping[str, Any]) -> str:
    return _env.get_template(name).render(**context)


class Mailer:
    """Sends this service's templated messages."""

    def __init__(self, config: EmailConfig, app_name: str = "Hostel Management System"):
        self.config = config
        self.app_name = app_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(EmailConfig.from_settings(settings), settings.APP_NAME)

    def _deliver(self, message: EmailMessage) -> bool:
        if not self.config.enabled:
            logger.info("SMTP not configured; email skipped", extra={"subject": message.subject})
            return False
        send_email(message, self.config)
        return True

    def send_booking_confirmation(
        self,
        to: str,
        name: str,
        pdf: bytes | None,
        context: Mapping[str, Any],
    ) -> bool:
        ctx = {"name": name, "app_name": self.app_name, **context}
        message = EmailMessage(
            subject=f"Booking Confirmation - {self.app_name}",
            to=[to],
            body_text=render_template("booking_confirmation.txt", ctx),
            body_html=render_template("booking_confirmation.html", ctx),
            attachments=[Attachment("invoice.pdf", pdf)] if pdf else [],
        )
        return self._deliver(message)

    def send_fine_notification(self, to: str, name: str, context: Mapping[str, Any]) -> bool:
        ctx = {"name": name, "app_name": self.app_name, **context}
        message = EmailMessage(
            subject=f"Fine Issued - {self.app_name}",
            to=[to],
            body_text=render_template("fine_notice.txt", ctx),
            body_html=render_template("fine_notice.html", ctx),
        )
        return self._deliver(message)

    def send_due_reminder(self, to: str, name: str, context: Mapping[str, Any]) -> bool:
        ctx = {"name": name, "app_name": self.app_name, **context}
        message = EmailMessage(
            subject=f"Payment Reminder - {self.app_name}",
            to=[to],
            body_text=render_template("due_reminder.txt", ctx),
            body_html=render_template("due_reminder.html", ctx),
        )
        return self._deliver(message)
