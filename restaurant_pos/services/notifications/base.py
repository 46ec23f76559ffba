"""
Notification Service Abstract Base Class

Defines the interface for customer email: the receipt number after
checkout and the "order is ready" message when the kitchen completes it.
Supports both Mock (development) and Real (production) implementations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from restaurant_pos.core.config import get_settings


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message_id": self.message_id,
            "error_message": self.error_message,
            "provider": self.provider,
        }


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def send_receipt_email(self, receipt_id: int, to_email: str) -> NotificationResult:
        """Tell the customer their receipt number after checkout."""
        restaurant = get_settings().restaurant_name
        text = f"Thank you for your purchase! Your receipt ID is {receipt_id}."
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1>Your Receipt Details</h1>
            <p>Thank you for your purchase at {restaurant}!</p>
            <p>Your receipt ID is <strong>#{receipt_id}</strong>.</p>
        </div>
        """
        return await self.send_email(
            to_email=to_email,
            subject="Your Receipt Details",
            body_html=html,
            body_text=text,
        )

    async def send_order_ready_email(self, receipt_id: int, to_email: str) -> NotificationResult:
        """Tell the customer the kitchen has completed their order."""
        restaurant = get_settings().restaurant_name
        text = (
            f"Thank you again for your purchase! "
            f"Your order with receipt ID {receipt_id} is ready."
        )
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <h1>Your Order is Ready!</h1>
            <p>Order <strong>#{receipt_id}</strong> is waiting for you at {restaurant}.</p>
        </div>
        """
        return await self.send_email(
            to_email=to_email,
            subject="Your Order is Ready!",
            body_html=html,
            body_text=text,
        )
