import logging
import smtplib
from email.mime.text import MIMEText

from togglsync.config import Settings

log = logging.getLogger(__name__)


class EmailNotifier:
    """Sends plain-text job reports over SMTP. Disabled when no SMTP host is configured."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.recipient = settings.notification_email or settings.user_email
        self.sender = settings.smtp_user or settings.user_email

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def send(self, subject: str, body: str) -> bool:
        if not self.enabled:
            log.debug(f"Notification not sent (no SMTP host configured): {subject}")
            return False

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = self.recipient

        try:
            server = smtplib.SMTP(self.host, self.port, timeout=30)
            try:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            log.error(f"Error sending email '{subject}': {e}")
            return False

        log.info(f"Email sent: {subject}")
        return True
