from celery import Celery

from stockroom.config import get_settings

settings = get_settings()

celery_app = Celery(
    "stockroom",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["stockroom.tasks.stock_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Stock checks are short database reads
    task_default_queue="stock",
    task_time_limit=60,
    task_soft_time_limit=45,
    result_expires=3600,

    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)
