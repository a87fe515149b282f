from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .events import EventBus, FailEvent
from .settings import Settings


class EmailAlerter:
    """Mail an operator when a watch gives up.

    Settings (environment):
      - DISCONSULATE_ENABLE_EMAIL=true
      - DISCONSULATE_SMTP_HOST / DISCONSULATE_SMTP_PORT
      - DISCONSULATE_SMTP_USER / DISCONSULATE_SMTP_PASSWORD
      - DISCONSULATE_EMAIL_FROM / DISCONSULATE_EMAIL_TO
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def attach(self, events: EventBus):
        return events.subscribe(self.on_fail, FailEvent)

    def on_fail(self, event: FailEvent) -> None:
        subject = f"WATCH TERMINATED: {event.key.service}"
        body = (
            f"Service: {event.key.service}\n"
            f"Query: /{event.key.uri}\n"
            "Retries exhausted; endpoints for this query are no longer refreshed."
        )
        self.send(subject, body)

    def configured(self) -> bool:
        s = self.settings
        return s.enable_email and all([s.smtp_host, s.smtp_port, s.smtp_user, s.smtp_password, s.email_from, s.email_to])

    def send(self, subject: str, body: str) -> bool:
        if not self.configured():
            return False
        s = self.settings
        msg = MIMEMultipart()
        msg["From"] = s.email_from
        msg["To"] = s.email_to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        try:
            server = smtplib.SMTP(s.smtp_host, s.smtp_port)
            server.starttls()
            server.login(s.smtp_user, s.smtp_password)
            server.sendmail(s.email_from, [s.email_to], msg.as_string())
            server.quit()
            return True
        except (smtplib.SMTPException, OSError):
            return False
