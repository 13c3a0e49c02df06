"""Digest formatting and notification delivery."""

from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Any, Protocol

from rich.console import Console
from rich.panel import Panel

from crm_autopilot.dates import format_long_date
from crm_autopilot.errors import TransportError
from crm_autopilot.models import TrackedLead
from crm_autopilot.schema import BoundedTable, Table

logger = logging.getLogger(__name__)

SIGNATURE = "AMAIA Team"


# ── Formatting ───────────────────────────────────────────────────


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def due_digest_subject(today: date) -> str:
    return f"Daily Follow Up - {format_long_date(today)}"


def working_leads_subject(today: date) -> str:
    return f"Monthly Working Leads Summary - {format_long_date(today)}"


def format_due_line(index: int, lead: TrackedLead) -> str:
    return (
        f"{index}. {_text(lead.first_name)} {_text(lead.last_name)}"
        f" – Contact: {_text(lead.contact_number)}"
        f" – Renewal Date: {format_long_date(lead.renewal_date)}"
    )


def format_due_digest(leads: Sequence[TrackedLead]) -> str:
    """Body of the daily follow-up email, one numbered line per lead."""
    lines = [format_due_line(i, lead) for i, lead in enumerate(leads, start=1)]
    return (
        "Dear Admin,\n\nThe following leads are due for follow-up today:\n\n"
        + "".join(f"{line}\n" for line in lines)
        + f"\nRegards,\n{SIGNATURE}\n\n(This is an automated email, please do not reply.)"
    )


def format_working_leads_digest(rows: Table) -> str:
    """Body of the monthly summary: a numbered dump of the bounded WorkingLeads rows."""
    lines = [
        f"{i}. {' | '.join(_text(v) for v in record)}"
        for i, (_sheet_row, record) in enumerate(BoundedTable.of(rows), start=1)
    ]
    return (
        "Dear Admin,\n\nBelow are the current active working leads:\n\n"
        + "".join(f"{line}\n" for line in lines)
        + f"\nRegards,\n{SIGNATURE}\n(This is an automated message)"
    )


# ── Delivery ─────────────────────────────────────────────────────


class Notifier(Protocol):
    def send(self, recipients: Sequence[str], subject: str, body: str) -> None: ...


@dataclass
class SmtpNotifier:
    """Send plain-text mail through an SMTP relay (STARTTLS when ``use_tls``)."""

    host: str
    sender: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    timeout: float = 30.0

    def build_message(self, recipients: Sequence[str], subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        msg.set_content(body)
        return msg

    def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        msg = self.build_message(recipients, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls(context=ssl.create_default_context())
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(f"SMTP delivery to {', '.join(recipients)} failed: {exc}") from exc
        logger.debug("Sent %r to %s", subject, ", ".join(recipients))


class ConsoleNotifier:
    """Print messages instead of sending them (dry runs)."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        self.console.print(Panel(
            body,
            title=f"[bold]{subject}[/bold]",
            subtitle=f"to: {', '.join(recipients)}",
            border_style="cyan",
        ))
