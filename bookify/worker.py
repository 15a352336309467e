"""Celery worker configuration.

Post-commit work runs on two queues so slow email delivery never delays
host payouts:
- payouts: host payout reconciliation
- notifications: booking confirmation emails

Start a worker for both with:
    celery -A bookify.worker worker -Q payouts,notifications
"""

from celery import Celery
from kombu import Queue

from bookify.config import settings

celery_app = Celery(
    "bookify_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["bookify.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Manila",
    enable_utc=True,

    # Queues
    task_queues=(Queue("payouts"), Queue("notifications")),
    task_default_queue="notifications",
    task_routes={
        "bookify.tasks.process_host_payout": {"queue": "payouts"},
        "bookify.tasks.send_booking_confirmation": {"queue": "notifications"},
    },

    # A payout is acknowledged only after its transaction committed
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=120,
    task_soft_time_limit=90,
    broker_transport_options={"visibility_timeout": 3600},

    worker_prefetch_multiplier=1,
    worker_concurrency=settings.celery_concurrency,

    result_expires=86400,
)


if __name__ == "__main__":
    celery_app.start()
