"""
EmailService - send Market Pulse digests through the Resend API.

Sending is best effort: failures are logged and reported through
``EmailResult`` instead of raised, so callers can persist reports regardless.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import resend

from market_sensor.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailResult:
    """Result of an email send operation."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailService:
    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        if not self.api_key:
            logger.warning("RESEND_API_KEY not found - EmailService will be disabled")
            self._enabled = False
        else:
            self._enabled = True
            resend.api_key = self.api_key
        self.from_email = from_email or settings.RESEND_FROM_EMAIL

    @property
    def enabled(self) -> bool:
        return self._enabled

    def send(self, to: List[str], subject: str, html_body: str) -> EmailResult:
        if not self._enabled:
            return EmailResult(success=False, error="EmailService is disabled - RESEND_API_KEY not configured")
        if not to:
            return EmailResult(success=False, error="No recipients")

        try:
            logger.info(f"Sending email to {', '.join(to)}: {subject}")
            response = resend.Emails.send({
                "from": self.from_email,
                "to": to,
                "subject": subject,
                "html": html_body,
            })
            message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
            logger.info(f"Email sent successfully: {message_id}")
            return EmailResult(success=True, message_id=message_id)
        except Exception as e:
            logger.error(f"Failed to send email: {e}")
            return EmailResult(success=False, error=str(e))


TEST_EMAIL_SUBJECT = "Market Sensor Engine - Email Test"
TEST_EMAIL_HTML = """
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1>Email Test Successful!</h1>
    <p><strong>Success!</strong> Your Market Sensor Engine email system is working correctly.</p>
    <p><strong>Next steps:</strong></p>
    <ol>
      <li>Add your top competitors</li>
      <li>Run manual scans to create baselines</li>
      <li>Build your Proof Vault with evidence</li>
      <li>Point your scheduler at /cron/scan for weekly scans</li>
    </ol>
  </div>
</body>
</html>
"""
