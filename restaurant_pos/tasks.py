"""
Celery Tasks
Background email delivery so checkout and kitchen requests never wait on SMTP.
"""

import asyncio
import logging
import time
from datetime import datetime

from celery.exceptions import SoftTimeLimitExceeded

from restaurant_pos.celery_worker import celery_app
from restaurant_pos.services.notifications import get_notification_service

logger = logging.getLogger(__name__)


class NotificationFailed(Exception):
    """Raised so Celery retries a failed delivery."""


def _deliver(kind: str, receipt_id: int, email: str) -> dict:
    service = get_notification_service()
    start_time = time.time()

    if kind == "receipt":
        result = asyncio.run(service.send_receipt_email(receipt_id, email))
    else:
        result = asyncio.run(service.send_order_ready_email(receipt_id, email))

    elapsed = round(time.time() - start_time, 3)
    if not result.success:
        logger.warning(
            f"{kind} email for receipt #{receipt_id} failed after {elapsed}s: "
            f"{result.error_message}"
        )
        raise NotificationFailed(result.error_message or "delivery failed")

    logger.info(f"{kind} email for receipt #{receipt_id} sent in {elapsed}s")
    return {**result.to_dict(), "receipt_id": receipt_id, "processing_time_seconds": elapsed}


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(NotificationFailed, SoftTimeLimitExceeded),
    retry_backoff=True
)
def send_receipt_email(self, receipt_id: int, email: str) -> dict:
    """
    Email the customer their receipt number.

    Args:
        receipt_id: Receipt created by checkout
        email: Customer address

    Returns:
        dict: Notification result
    """
    return _deliver("receipt", receipt_id, email)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(NotificationFailed, SoftTimeLimitExceeded),
    retry_backoff=True
)
def send_order_ready_email(self, receipt_id: int, email: str) -> dict:
    """Email the customer that the kitchen has completed their order."""
    return _deliver("ready", receipt_id, email)


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
