from celery import Celery

from homeschool.core.config import settings

# Celery configuration
celery_app = Celery(
    "homeschool",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["homeschool.tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
)
