# payments/apps.py
from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class PaymentsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'payments'
    verbose_name = 'Payment Status Tracking'

    def ready(self):
        self._validate_payment_configuration()

    def _validate_payment_configuration(self):
        """Warn on startup when gateway webhooks cannot be verified"""
        from django.conf import settings

        stripe_config = getattr(settings, 'PAYMENT_PROVIDERS', {}).get('STRIPE', {})
        if not stripe_config.get('ENABLED'):
            logger.info("Stripe webhooks disabled")
        elif not stripe_config.get('WEBHOOK_SECRET'):
            logger.warning("Stripe is enabled but STRIPE_WEBHOOK_SECRET is not set; webhooks will be rejected")
