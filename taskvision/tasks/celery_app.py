from celery import Celery

from taskvision.core.config import settings

celery_app = Celery(
    "taskvision",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["taskvision.tasks.push_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)
