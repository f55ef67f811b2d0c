# payments/tests/test_services.py
from django.test import TestCase
from django.core.exceptions import ValidationError
from decimal import Decimal
from unittest.mock import patch

from core.exceptions import InvalidTransitionError
from appointments.models import Appointment
from appointments.services import AppointmentLedger
from payments.models import Payment
from payments.services import PaymentService, PaymentStatusService, PaymentNotFoundError
from revenue.models import DeferredRevenue, WalletTransaction
from subscriptions.models import Subscription
from subscriptions.services import PackageSubscriptionManager
from core.tests.helpers import MarketplaceTestMixin


class PaymentServiceTest(TestCase):

    def test_platform_fee(self):
        self.assertEqual(PaymentService.calculate_platform_fee(Decimal('800.00')), Decimal('40.00'))
        self.assertEqual(PaymentService.calculate_platform_fee(Decimal('333.33')), Decimal('16.67'))


class PaymentStatusServiceTest(MarketplaceTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.appointment = AppointmentLedger.create_booking(
            self.client_identity,
            psychologist_id=self.psychologist.user.id,
            client_id=self.client_profile.user.id,
            start_time=self.slot(9),
            kind='single',
        )
        self.payment = Payment.objects.get(appointment=self.appointment)

    def record(self, new_status, **kwargs):
        return PaymentStatusService.record_status_change(self.payment.payment_id, new_status, **kwargs)

    def test_success_confirms_appointment_and_records_fee(self):
        result = self.record('succeeded', provider_reference='pi_123')

        self.assertTrue(result['changed'])
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, 'succeeded')
        self.assertEqual(self.payment.provider_reference, 'pi_123')
        self.assertIsNotNone(self.payment.paid_at)
        self.assertEqual(Appointment.objects.get(pk=self.appointment.pk).status, 'confirmed')
        self.assertTrue(WalletTransaction.objects.filter(payment=self.payment, category='platform_fee').exists())

    def test_repeated_status_is_a_no_op(self):
        self.record('succeeded')

        result = self.record('succeeded')

        self.assertFalse(result['changed'])
        self.assertEqual(WalletTransaction.objects.filter(payment=self.payment).count(), 1)

    def test_failure_releases_slot_and_voids_deferred_revenue(self):
        self.record('failed', failure_reason='card_declined')

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.failure_reason, 'card_declined')
        appointment = Appointment.objects.get(pk=self.appointment.pk)
        self.assertEqual(appointment.status, 'cancelled')
        self.assertEqual(appointment.cancellation_reason, 'Payment failed')
        self.assertIsNotNone(DeferredRevenue.objects.get(payment=self.payment).voided_at)

    def test_gateway_cancellation(self):
        self.record('cancelled')

        self.assertEqual(Appointment.objects.get(pk=self.appointment.pk).status, 'cancelled')

    def test_invalid_transition(self):
        self.record('succeeded')

        with self.assertRaises(InvalidTransitionError):
            self.record('failed')

    def test_refund_after_success(self):
        self.record('succeeded')

        self.record('refunded')

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.payment_status, 'refunded')

    def test_unknown_status(self):
        with self.assertRaises(ValidationError):
            self.record('settled')

    def test_unknown_payment(self):
        with self.assertRaises(PaymentNotFoundError):
            PaymentStatusService.record_status_change('00000000-0000-0000-0000-000000000001', 'succeeded')


class PackagePaymentFailureTest(MarketplaceTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        for hour in (9, 10):
            appointment = AppointmentLedger.create_booking(
                self.client_identity,
                psychologist_id=self.psychologist.user.id,
                client_id=self.client_profile.user.id,
                start_time=self.slot(hour),
                kind='package4',
            )
        self.subscription_id = appointment.subscription_id
        self.payment = Payment.objects.get(subscription_id=self.subscription_id)

    @patch('subscriptions.services.PackageSubscriptionManager.lock', wraps=PackageSubscriptionManager.lock)
    def test_failure_restores_sessions_on_locked_subscription(self, mock_lock):
        PaymentStatusService.record_status_change(self.payment.payment_id, 'failed')

        mock_lock.assert_called_once_with(self.subscription_id)
        subscription = Subscription.objects.get(pk=self.subscription_id)
        self.assertEqual(subscription.sessions_used, 0)
        self.assertEqual(subscription.status, 'payment_failed')
        self.assertEqual(
            Appointment.objects.filter(subscription_id=self.subscription_id, status='cancelled').count(), 2
        )
