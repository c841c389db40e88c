# homeschool/tasks.py
"""Background jobs: Celery tasks and the in-process fallback."""
from typing import List, Optional
import logging

from fastapi import BackgroundTasks

from celery_worker import celery_app
from .core.config import settings
from .services.email_service import EmailService

logger = logging.getLogger(__name__)


@celery_app.task(name="homeschool.send_email", bind=True, max_retries=3, default_retry_delay=60)
def send_email_task(self, to_emails: List[str], subject: str, body: str, html: Optional[str] = None):
    service = EmailService()
    sent = service.send_email(to_emails, subject, body, html)
    if not sent and service.configured:
        raise self.retry()
    return sent


def queue_email(background_tasks: BackgroundTasks, to_emails: List[str], subject: str, body: str):
    """Hand an email to Celery or to the response's background tasks"""
    if settings.email_backend == "celery":
        send_email_task.delay(to_emails, subject, body)
        logger.debug(f"Queued '{subject}' on celery")
    else:
        background_tasks.add_task(EmailService().send_email, to_emails, subject, body)
