"""
Real Notification Service

Production implementation using SendGrid for email.
"""

import asyncio
import logging
from typing import Optional

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from restaurant_pos.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from restaurant_pos.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class RealNotificationService(BaseNotificationService):
    """Production notification service using SendGrid."""

    def __init__(self):
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
            self.sendgrid_from_email = settings.sendgrid_from_email
        else:
            self.sendgrid_client = None
            logger.warning("SendGrid credentials not configured")

        logger.info("RealNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "sendgrid"

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send email via SendGrid."""
        if not self.sendgrid_client:
            return NotificationResult(
                success=False,
                error_message="SendGrid not configured",
                provider="sendgrid"
            )

        message = Mail(
            from_email=self.sendgrid_from_email,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text
        )

        try:
            # The SendGrid client is blocking
            response = await asyncio.to_thread(self.sendgrid_client.send, message)
        except (HTTPError, OSError) as e:
            # OSError covers URLError and socket timeouts, which the client does not wrap
            logger.error(f"SendGrid error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="sendgrid"
            )

        logger.info(f"Email sent to {to_email}: {response.status_code}")

        return NotificationResult(
            success=response.status_code in [200, 201, 202],
            message_id=response.headers.get('X-Message-Id'),
            provider="sendgrid"
        )

    async def health_check(self) -> bool:
        """SendGrid has no ping endpoint; a configured client counts as healthy."""
        return self.sendgrid_client is not None
