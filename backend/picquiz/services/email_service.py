"""
Email notifier for question error reports.

Players can report a broken question; the report is emailed to the
maintainer. Without SMTP configuration the report is logged and the send
reports failure, so callers can tell the player it was not delivered.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any, Optional

from picquiz.core.datetime_utils import utc_now
from picquiz.core.validators import StringSanitizer

logger = logging.getLogger(__name__)

ERROR_REPORT_HTML_TEMPLATE = """
<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"><title>Question error report</title></head>
<body style="font-family: Helvetica, Arial, sans-serif; line-height: 1.6; color: #333;">
    <h2 style="margin-top: 0;">Question error report</h2>
    <p><strong>Reported by:</strong> {username}</p>
    <p><strong>Question:</strong> {question}</p>
    <p><strong>Time (UTC):</strong> {reported_at}</p>
    <p><strong>Message:</strong></p>
    <div style="white-space: pre-wrap; background: #f8f9fa; padding: 12px; border-radius: 6px;">{message}</div>
</body>
</html>
"""


class EmailNotifier:
    """
    SMTP notifier.

    Attributes:
        timeout: SMTP connection timeout in seconds
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: str,
        from_name: str,
        to_email: str,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.to_email = to_email
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Any) -> "EmailNotifier":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
            to_email=settings.REPORT_EMAIL_TO,
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(
            self.host
            and self.port
            and self.username
            and self.password
            and self.from_email
            and self.to_email
        )

    def send(self, subject: str, html_body: str) -> bool:
        """
        Send one HTML email to the maintainer.

        Returns:
            True if the message was handed to the SMTP server, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"SMTP not configured, dropping email: {subject}")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = formataddr((self.from_name, self.from_email))
            msg["To"] = formataddr(("", self.to_email))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.username, self.password)
                server.send_message(msg)

            logger.info(f"Email sent: {subject}")
            return True

        except smtplib.SMTPException as e:
            logger.error(f"SMTP error sending email '{subject}': {e}")
            return False
        except OSError as e:
            logger.error(f"Connection error sending email '{subject}': {e}")
            return False

    def send_error_report(
        self,
        username: str,
        message: str,
        question: Optional[str] = None,
    ) -> bool:
        """Email a player's question error report. All user text is HTML-escaped."""
        html_body = ERROR_REPORT_HTML_TEMPLATE.format(
            username=StringSanitizer.sanitize_string(username),
            question=StringSanitizer.sanitize_string(question or "(not specified)"),
            reported_at=utc_now().strftime("%Y-%m-%d %H:%M:%S"),
            message=StringSanitizer.sanitize_report(message),
        )
        return self.send(f"Question error report from {username}", html_body)
