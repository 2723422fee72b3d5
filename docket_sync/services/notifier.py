# docket_sync/services/notifier.py
import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from docket_sync.core.config import AppSettings
from docket_sync.services.domain import DocumentRecord, MatterType

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Emails the configured recipients about a newly filed document over SMTP (STARTTLS)."""

    def __init__(self, settings: AppSettings):
        self.settings = settings

    def build_message(self, application_number: str, document: DocumentRecord, matter_type: MatterType) -> MIMEMultipart:
        subject = f"New USPTO {matter_type.value} document for #{application_number}: {document.description}"
        rows = [
            ("Application Number", application_number),
            ("Type", matter_type.value),
            ("Date", document.iso_date),
            ("Description", document.description),
            ("Document Code", document.document_code or "N/A"),
            ("Category", document.category or "N/A"),
            ("Link", document.effective_link),
        ]
        body = "\n".join(f"{label}: {value}" for label, value in rows)
        html_rows = "".join(
            f"<tr><td><b>{html.escape(label)}</b></td><td>{html.escape(str(value))}</td></tr>" for label, value in rows
        )
        html_body = (
            f"<html><body style=\"font-family:Arial,sans-serif\">"
            f"<h3>New {html.escape(matter_type.value)} document filed</h3>"
            f"<table>{html_rows}</table>"
            f"<p><a href=\"{html.escape(document.effective_link)}\">Open document</a></p>"
            f"</body></html>"
        )

        msg = MIMEMultipart("alternative")
        msg["From"] = str(self.settings.NOTIFY_FROM or self.settings.SMTP_USERNAME)
        msg["To"] = ", ".join(str(r) for r in self.settings.NOTIFY_RECIPIENTS)
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
        return msg

    def _send(self, msg: MIMEMultipart):
        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT,
                          timeout=self.settings.HTTP_TIMEOUT_SECONDS) as server:
            server.starttls()
            if self.settings.SMTP_USERNAME:
                server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
            server.send_message(msg)

    async def notify(self, application_number: str, document: DocumentRecord, matter_type: MatterType) -> None:
        if not self.settings.NOTIFY_RECIPIENTS:
            raise RuntimeError("NOTIFY_RECIPIENTS is not configured; cannot send document notification.")
        msg = self.build_message(application_number, document, matter_type)
        await asyncio.to_thread(self._send, msg)
        logger.info(f"[{application_number}] Notification email sent to {msg['To']}")
