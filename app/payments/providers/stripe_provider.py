# payments/providers/stripe_provider.py
import json
import stripe
from typing import Dict, Any, Optional
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


class PaymentProviderConfigError(Exception):
    """Raised when a gateway is missing configuration"""
    pass


class WebhookVerificationError(Exception):
    """Raised when a webhook payload cannot be authenticated"""
    pass


class StripeWebhookProvider:
    """
    Reads payment status changes reported by Stripe.

    The marketplace never creates charges itself; the checkout integration
    tags each payment intent with our ``payment_id`` in its metadata.
    """

    STATUS_EVENTS = {
        'payment_intent.succeeded': 'succeeded',
        'payment_intent.payment_failed': 'failed',
        'payment_intent.canceled': 'cancelled',
        'charge.refunded': 'refunded',
    }

    provider_name = 'stripe'

    def __init__(self):
        self.config = settings.PAYMENT_PROVIDERS.get('STRIPE', {})
        if not self.config.get('WEBHOOK_SECRET'):
            raise PaymentProviderConfigError("Stripe WEBHOOK_SECRET is required but not configured")

    def is_enabled(self) -> bool:
        return bool(self.config.get('ENABLED'))

    def parse_webhook_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify the signature and extract what the status recorder needs.

        Returns a dict with ``event_type``, ``event_id``, ``status`` (None for
        events we ignore), ``payment_intent_id``, ``payment_id`` and
        ``failure_reason``.
        """
        try:
            stripe.Webhook.construct_event(
                payload=payload,
                sig_header=signature,
                secret=self.config['WEBHOOK_SECRET']
            )
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Rejected Stripe webhook with invalid signature: {str(e)}")
            raise WebhookVerificationError(f"Invalid webhook signature: {str(e)}")
        except ValueError as e:
            logger.warning(f"Rejected malformed Stripe webhook payload: {str(e)}")
            raise WebhookVerificationError(f"Invalid webhook payload: {str(e)}")

        # Signature verified; read the plain JSON body
        event = json.loads(payload)

        obj = event['data']['object']
        metadata = obj.get('metadata') or {}

        if obj.get('object') == 'charge':
            payment_intent_id = obj.get('payment_intent')
        else:
            payment_intent_id = obj.get('id')

        event_data = {
            'event_type': event['type'],
            'event_id': event['id'],
            'status': self.STATUS_EVENTS.get(event['type']),
            'payment_intent_id': payment_intent_id,
            'payment_id': metadata.get('payment_id'),
            'failure_reason': self._failure_reason(obj),
        }
        logger.info(f"Stripe webhook {event_data['event_id']} parsed: {event_data['event_type']}")
        return event_data

    @staticmethod
    def _failure_reason(obj: Dict[str, Any]) -> Optional[str]:
        error = obj.get('last_payment_error') or {}
        return error.get('message')
