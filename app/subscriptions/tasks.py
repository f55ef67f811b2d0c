# subscriptions/tasks.py
from celery import shared_task
import logging

from core.exceptions import UpstreamUnavailableError
from .services import PackageSubscriptionManager

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def sweep_expired_periods_task(self):
    """
    Renew (or finish cancelling) every active subscription whose period ended
    without anyone reading it
    """
    try:
        result = PackageSubscriptionManager.sweep_expired_periods()
        logger.info(f"Subscription sweep task finished: {result}")
        return result
    except UpstreamUnavailableError as e:
        logger.error(f"Subscription sweep failed, retrying: {str(e)}")
        raise self.retry(exc=e)
