import logging
from datetime import datetime, timezone

import resend
from kenz_waitlist.core.config import settings
from kenz_waitlist.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self):
        resend.api_key = settings.RESEND_API_KEY
        self.sender = getattr(settings, "EMAIL_FROM", "Kenz Tasks <noreply@example.com>")

    @property
    def admin_notifications_enabled(self) -> bool:
        return bool(settings.ADMIN_NOTIFY_ENABLED and settings.ADMIN_EMAIL)

    def send(self, to: str, subject: str, text: str) -> None:
        try:
            resend.Emails.send({
                "from": self.sender,
                "to": [to],
                "subject": subject,
                "text": text,
            })
        except Exception as e:
            raise ExternalServiceError("Email send failed", str(e))

    def notify_admin(self, email: str, ip_address: str = "unknown") -> bool:
        """Tell the operator about a new signup.

        Does nothing unless ADMIN_NOTIFY_ENABLED and ADMIN_EMAIL are set.
        Delivery problems are logged and reported as False, never raised.
        """
        if not self.admin_notifications_enabled:
            return False
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        text = f"New waitlist signup:\n\nEmail: {email}\nTime: {now}\nIP: {ip_address}"
        try:
            self.send(settings.ADMIN_EMAIL, f"New Waitlist Signup - {settings.PRODUCT_NAME}", text)
            return True
        except ExternalServiceError as e:
            logger.warning(f"Admin notification failed: {e.details}")
            return False
