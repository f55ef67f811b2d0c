from typing import Dict, Type
import logging

from .stripe_provider import StripeWebhookProvider, WebhookVerificationError, PaymentProviderConfigError

logger = logging.getLogger(__name__)

# Gateways that report payment status changes back to the core
_providers: Dict[str, Type[StripeWebhookProvider]] = {
    'stripe': StripeWebhookProvider,
}


def get_payment_provider(name: str) -> StripeWebhookProvider:
    name = name.lower()
    if name not in _providers:
        available = ', '.join(_providers.keys())
        raise PaymentProviderConfigError(
            f"Payment provider '{name}' not found. Available providers: {available}"
        )
    return _providers[name]()


__all__ = [
    'get_payment_provider',
    'StripeWebhookProvider',
    'WebhookVerificationError',
    'PaymentProviderConfigError',
]
