"""Deliver the run summary by email."""
from __future__ import annotations

import datetime as dt
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from .config import EmailSettings
from .models import RunSummary

LOGGER = logging.getLogger("livestream_scheduler.notifier")


def compose_body(summary: RunSummary, log_tail: str = "") -> str:
    body = "Here are the results for the scheduled YouTube livestreams for this Sunday:\n\n"

    successes = summary.successes
    if successes:
        body += "✅ Successes:\n"
        body += "\n\n".join(f"- {item.title}\n  {item.link}" for item in successes)
        body += "\n\n"
    else:
        body += "✅ Successes: None\n\n"

    failures = summary.failures
    if failures:
        body += "❌ Failures:\n"
        body += "\n\n".join(f"- {item.title}\n  Error: {item.error}" for item in failures)
        body += "\n\n"
    else:
        body += "❌ Failures: None\n\n"

    lines = [line for line in log_tail.splitlines() if line.strip()]
    if lines:
        body += "🪵 Error Logs:\n"
        body += "\n".join(f"- {line}" for line in lines) + "\n"
    return body


class Notifier:
    def notify(self, summary: RunSummary, log_tail: str = "") -> None:
        raise NotImplementedError


class NullNotifier(Notifier):
    """Used when email is disabled or not configured."""

    def notify(self, summary: RunSummary, log_tail: str = "") -> None:
        LOGGER.info(
            "Email notification skipped (%s success(es), %s failure(s)).",
            len(summary.successes),
            len(summary.failures),
        )


class EmailNotifier(Notifier):
    def __init__(
        self,
        settings: EmailSettings,
        organization: str = "",
        service_date: Optional[dt.date] = None,
        timeout: float = 30.0,
    ) -> None:
        self._settings = settings
        self._organization = organization
        self._service_date = service_date
        self._timeout = timeout

    def subject(self) -> str:
        prefix = f"{self._organization} " if self._organization else ""
        subject = f"{prefix}YouTube Livestream Scheduling Summary For This Sunday"
        if self._service_date:
            day = self._service_date
            subject += f" ({day.month}/{day.day}/{day:%y})"
        return subject

    def build_message(self, summary: RunSummary, log_tail: str = "") -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.sender
        message["To"] = ", ".join(self._settings.recipients)
        message["Subject"] = self.subject()
        message.set_content(compose_body(summary, log_tail))
        return message

    def _connect(self) -> smtplib.SMTP:
        host, port = self._settings.smtp_host, self._settings.smtp_port
        context = ssl.create_default_context()
        if port == 465:
            return smtplib.SMTP_SSL(host, port, timeout=self._timeout, context=context)
        smtp = smtplib.SMTP(host, port, timeout=self._timeout)
        try:
            smtp.starttls(context=context)
        except (smtplib.SMTPException, OSError):
            smtp.close()
            raise
        return smtp

    def notify(self, summary: RunSummary, log_tail: str = "") -> None:
        """Send the summary; delivery problems are logged, never raised."""

        message = self.build_message(summary, log_tail)
        try:
            with self._connect() as smtp:
                if self._settings.password:
                    smtp.login(self._settings.sender, self._settings.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            LOGGER.error("Failed to send summary email: %s", exc)
            return
        LOGGER.info("Email sent to: %s", ", ".join(self._settings.recipients))


def notifier_from_settings(
    settings: EmailSettings,
    organization: str = "",
    service_date: Optional[dt.date] = None,
) -> Notifier:
    if not settings.enabled:
        return NullNotifier()
    return EmailNotifier(settings, organization=organization, service_date=service_date)
