# notifications/tasks.py
from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail, mail_admins
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_notification_email_task(self, recipient: str, subject: str, message: str):
    """
    Deliver a booking lifecycle e-mail. Fire-and-forget for the caller.
    """
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
        logger.info(f"Notification sent to {recipient}: {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to send notification to {recipient}: {str(e)}")
        raise self.retry(exc=e)


@shared_task(bind=True, max_retries=5, default_retry_delay=120)
def alert_operators_task(self, subject: str, message: str):
    """
    Escalate a problem that needs manual reconciliation to the ADMINS list
    """
    try:
        mail_admins(subject=subject, message=message, fail_silently=False)
        logger.info(f"Operator alert sent: {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to send operator alert '{subject}': {str(e)}")
        raise self.retry(exc=e)
