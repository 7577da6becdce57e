"""Outbound notification email.

``send_mail`` is meant to run as a background task after the response has
been produced. It never raises: every failure is logged and dropped, since
the operation that triggered the email has already succeeded.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Iterable, Optional

from fest.common.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def send_mail(to: str, subject: str, body: str) -> bool:
    """Send a plain-text email. Returns True when the SMTP server accepted it."""
    if not settings.smtp_host:
        logger.info(f"Mail not configured, skipping '{subject}' to {to}")
        return False

    message = EmailMessage()
    message["From"] = formataddr((settings.mail_sender_name, settings.mail_sender))
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password or "")
            smtp.send_message(message)
        logger.info(f"Sent '{subject}' to {to}")
        return True
    except Exception as e:
        logger.error(f"Failed to send '{subject}' to {to}: {e}")
        return False


def _sign_off() -> str:
    return f"\n\nWith regards,\n{settings.fest_name} Team"


def welcome_body(name: str, pid: Optional[str]) -> str:
    return (
        f"Hi {name},\n\n"
        f"Your account has been created successfully.\n"
        f"Participant ID: {pid}\n\n"
        f"Use this Participant ID for all event registrations and on-ground check-ins."
        + _sign_off()
    )


def registration_body(
    name: str,
    event_title: str,
    event_date: str,
    event_time: str,
    venue: str,
    team_name: Optional[str] = None,
    tid: Optional[str] = None,
    members: Iterable[str] = (),
) -> str:
    lines = [
        f"Hi {name},",
        "",
        f"You are registered for {event_title}.",
        f"Date: {event_date}" + (f" {event_time}" if event_time else ""),
        f"Venue: {venue}",
    ]
    if team_name:
        lines.append(f"Team: {team_name}")
    if tid:
        lines.append(f"Team ID: {tid}")
    members = list(members)
    if members:
        lines.append(f"Members: {', '.join(members)}")
    return "\n".join(lines) + _sign_off()


def summary_body(name: str, pid: Optional[str], roll_number: str, college: str, rows: Iterable[str]) -> str:
    rows = list(rows)
    lines = [
        f"Hi {name},",
        "",
        f"PID: {pid}",
        f"Roll No.: {roll_number or '-'}",
        f"College: {college or '-'}",
        "",
        f"Events registered ({len(rows)}):",
    ]
    if rows:
        lines.extend(f"{index}. {row}" for index, row in enumerate(rows, start=1))
    else:
        lines.append("No event registrations found.")
    return "\n".join(lines) + _sign_off()


def account_removed_body(name: str) -> str:
    return (
        f"Hi {name},\n\n"
        f"Your {settings.fest_name} account and its event registrations have been removed by the organisers."
        + _sign_off()
    )
