"""
Celery Worker Configuration

Email delivery only: short I/O-bound tasks that fan out from checkout and
kitchen completion onto their own queue, so a slow mail provider never
backs up anything else that shares the broker.

Run with:
    celery -A restaurant_pos.celery_worker worker -Q notifications
"""

from celery import Celery

from restaurant_pos.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'restaurant_pos_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['restaurant_pos.tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    task_default_queue=settings.notification_queue,

    # A stuck SendGrid call is cancelled and retried rather than holding a slot
    task_soft_time_limit=settings.email_task_time_limit,
    task_time_limit=settings.email_task_time_limit + 10,

    # Nobody reads delivery results after the retries settle
    result_expires=600,

    # A receipt mail lost with its worker is redelivered; duplicates are tolerable
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
