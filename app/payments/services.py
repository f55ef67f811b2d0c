# payments/services.py
from django.conf import settings
from django.core.exceptions import ValidationError
from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import Dict, Any, Optional

from core.atomic import AtomicUnit
from core.exceptions import NotFoundError, InvalidTransitionError
from notifications.services import NotificationService
from revenue.services import DeferralService, RevenueRecognitionEngine
from .models import Payment
from .providers import get_payment_provider, WebhookVerificationError

logger = logging.getLogger(__name__)


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class PaymentNotFoundError(NotFoundError):
    """Raised when a payment cannot be matched"""
    pass


# ============================================================================
# PAYMENT CREATION
# ============================================================================

class PaymentService:
    """
    Records what a booked unit costs. Charging happens at the gateway.
    """

    @staticmethod
    def calculate_platform_fee(base_amount: Decimal) -> Decimal:
        rate = Decimal(str(settings.REVENUE_SETTINGS['PLATFORM_FEE_RATE']))
        return (base_amount * rate).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    @staticmethod
    def create_payment(client, psychologist, payment_type: str, base_amount: Decimal,
                       appointment=None, subscription=None) -> Payment:
        """
        Create a pending payment. Call inside the atomic unit that creates
        the matching deferred revenue.
        """
        base_amount = Decimal(str(base_amount))
        fee = PaymentService.calculate_platform_fee(base_amount)
        payment = Payment.objects.create(
            client=client,
            psychologist=psychologist,
            appointment=appointment,
            subscription=subscription,
            payment_type=payment_type,
            base_amount=base_amount,
            platform_fee=fee,
            amount=base_amount + fee,
            currency=settings.REVENUE_SETTINGS['CURRENCY'],
        )
        logger.info(
            f"Payment {payment.payment_id} created: {payment_type} {payment.amount} "
            f"(base {base_amount}, fee {fee}) for client {client.user.email}"
        )
        return payment


# ============================================================================
# STATUS RECORDING
# ============================================================================

class PaymentStatusService:
    """
    Applies payment status transitions reported by the gateway
    """

    ALLOWED_TRANSITIONS = {
        'pending': ('succeeded', 'failed', 'cancelled'),
        'succeeded': ('refunded',),
    }

    @staticmethod
    def record_status_change(payment_id, new_status: str, provider_reference: str = None,
                             failure_reason: str = None) -> Dict[str, Any]:
        """
        Record a gateway-reported status.

        Repeating the current status is a no-op, so redelivered webhooks are safe.

        Raises:
            PaymentNotFoundError: unknown payment
            InvalidTransitionError: status cannot follow the current one
            ValidationError: unknown status value
        """
        if new_status not in dict(Payment.STATUS_CHOICES):
            raise ValidationError({'payment_status': f"Unknown payment status '{new_status}'"})

        def precondition():
            try:
                payment = Payment.objects.select_for_update().select_related(
                    'client__user', 'psychologist__user', 'appointment', 'subscription'
                ).get(payment_id=payment_id)
            except (Payment.DoesNotExist, ValueError, ValidationError):
                raise PaymentNotFoundError(f"Payment {payment_id} not found")
            return payment

        def mutation(payment):
            previous = payment.payment_status
            if previous == new_status:
                logger.info(f"Payment {payment.payment_id} already {new_status}, nothing to do")
                return {'payment': payment, 'changed': False}

            if new_status not in PaymentStatusService.ALLOWED_TRANSITIONS.get(previous, ()):
                raise InvalidTransitionError(
                    f"Payment {payment.payment_id} cannot move from {previous} to {new_status}"
                )

            if new_status == 'succeeded':
                PaymentStatusService._apply_success(payment, provider_reference)
            elif new_status in ('failed', 'cancelled'):
                PaymentStatusService._apply_failure(payment, new_status, failure_reason)
            else:
                payment.payment_status = 'refunded'
                payment.save(update_fields=['payment_status', 'updated_at'])
                logger.warning(
                    f"Payment {payment.payment_id} refunded at the gateway; revenue needs manual reconciliation"
                )

            logger.info(f"Payment {payment.payment_id} moved from {previous} to {new_status}")
            return {'payment': payment, 'changed': True}

        return AtomicUnit.run(precondition, mutation, name='record_payment_status')

    @staticmethod
    def _apply_success(payment: Payment, provider_reference: Optional[str]):
        from appointments.models import Appointment

        payment.mark_as_succeeded(provider_reference=provider_reference)
        RevenueRecognitionEngine.record_platform_fee(payment)

        if payment.subscription_id:
            pending = Appointment.objects.select_for_update().filter(
                subscription_id=payment.subscription_id, status='pending'
            )
        else:
            pending = Appointment.objects.select_for_update().filter(
                appointment_id=payment.appointment_id, status='pending'
            )

        for appointment in pending:
            appointment.mark_as_confirmed()
            logger.info(f"Appointment {appointment.appointment_id} confirmed by payment {payment.payment_id}")

    @staticmethod
    def _apply_failure(payment: Payment, new_status: str, failure_reason: Optional[str]):
        from appointments.models import Appointment
        from subscriptions.services import PackageSubscriptionManager

        if new_status == 'failed':
            payment.mark_as_failed(failure_reason=failure_reason)
        else:
            payment.mark_as_cancelled()

        DeferralService.void_for_payment(payment, f"Payment {new_status}")

        subscription = None
        if payment.subscription_id:
            subscription = PackageSubscriptionManager.lock(payment.subscription_id)
            pending = Appointment.objects.select_for_update().filter(
                subscription=subscription, status='pending'
            )
        else:
            pending = Appointment.objects.select_for_update().filter(
                appointment_id=payment.appointment_id, status='pending'
            )

        for appointment in pending:
            appointment.mark_as_cancelled(reason=f"Payment {new_status}")
            if subscription is not None:
                PackageSubscriptionManager.restore_session(subscription, booked_at=appointment.created_at)
            logger.info(f"Appointment {appointment.appointment_id} released after payment {new_status}")

        if subscription is not None and subscription.status == 'active':
            subscription.mark_as_payment_failed()

        NotificationService.notify_payment_failed(payment)


# ============================================================================
# WEBHOOKS
# ============================================================================

class WebhookService:
    """
    Turns verified gateway webhooks into payment status changes
    """

    @staticmethod
    def _find_payment(event_data: Dict[str, Any]) -> Optional[Payment]:
        if event_data.get('payment_id'):
            payment = Payment.objects.filter(payment_id=event_data['payment_id']).first()
            if payment:
                return payment
        if event_data.get('payment_intent_id'):
            return Payment.objects.filter(provider_reference=event_data['payment_intent_id']).first()
        return None

    @staticmethod
    def process_webhook_event(provider_name: str, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify and apply one webhook delivery.

        Raises:
            WebhookVerificationError: signature or payload rejected
        """
        provider = get_payment_provider(provider_name)
        event_data = provider.parse_webhook_event(payload, signature)

        if event_data['status'] is None:
            logger.info(f"Ignoring {provider_name} webhook event {event_data['event_type']}")
            return {'status': 'ignored', 'event_type': event_data['event_type'], 'processed': False}

        try:
            payment = WebhookService._find_payment(event_data)
        except ValidationError:
            payment = None
        if payment is None:
            logger.warning(
                f"Payment not found for {provider_name} webhook {event_data['event_id']} "
                f"(intent {event_data.get('payment_intent_id')})"
            )
            return {'status': 'payment_not_found', 'event_type': event_data['event_type'], 'processed': False}

        result = PaymentStatusService.record_status_change(
            payment.payment_id,
            event_data['status'],
            provider_reference=event_data.get('payment_intent_id'),
            failure_reason=event_data.get('failure_reason'),
        )
        logger.info(f"Processed {provider_name} webhook {event_data['event_id']}: {event_data['event_type']}")
        return {
            'status': 'success',
            'event_type': event_data['event_type'],
            'event_id': event_data['event_id'],
            'payment_id': str(payment.payment_id),
            'processed': result['changed'],
        }


__all__ = [
    'PaymentService',
    'PaymentStatusService',
    'WebhookService',
    'PaymentNotFoundError',
    'WebhookVerificationError',
]
