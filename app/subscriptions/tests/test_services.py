# subscriptions/tests/test_services.py
from django.test import TestCase
from django.core.exceptions import ValidationError
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal

from core.exceptions import AccessDeniedError, InsufficientCreditsError
from users.identity import RequestIdentity
from payments.models import Payment
from revenue.models import DeferredRevenue
from subscriptions.models import Subscription
from subscriptions.services import PackageSubscriptionManager, SubscriptionNotFoundError
from factories.users import ClientFactory
from core.tests.helpers import MarketplaceTestMixin


class RolloverCalculationTest(TestCase):

    def test_rollover_is_capped_by_fraction_of_package(self):
        self.assertEqual(PackageSubscriptionManager.calculate_rollover(8, 2), 2)
        self.assertEqual(PackageSubscriptionManager.calculate_rollover(8, 0), 2)
        self.assertEqual(PackageSubscriptionManager.calculate_rollover(4, 0), 1)

    def test_rollover_is_capped_by_unused_sessions(self):
        self.assertEqual(PackageSubscriptionManager.calculate_rollover(8, 7), 1)
        self.assertEqual(PackageSubscriptionManager.calculate_rollover(4, 4), 0)


class PackageSubscriptionManagerTest(MarketplaceTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.start = timezone.now()

    def create(self, package_type='package_8', client=None):
        return PackageSubscriptionManager.create(
            client or self.client_profile, self.psychologist, package_type, now=self.start
        )

    def test_create_opens_first_period(self):
        subscription = self.create()

        self.assertEqual(subscription.sessions_total, 8)
        self.assertEqual(subscription.package_price, Decimal('5600.00'))
        self.assertEqual(subscription.current_period_end - subscription.current_period_start, timedelta(days=30))

        payment = Payment.objects.get(subscription=subscription)
        self.assertEqual(payment.payment_type, 'package_8')
        self.assertEqual(payment.amount, Decimal('5880.00'))

        deferred = DeferredRevenue.objects.get(payment=payment)
        self.assertEqual(deferred.deferred_amount, Decimal('5600.00'))
        self.assertEqual(deferred.sessions_total, 8)
        self.assertEqual(list(subscription.history.values_list('event_type', flat=True)), ['created'])

    def test_unknown_package_type(self):
        with self.assertRaises(ValidationError):
            self.create(package_type='package_12')

    def test_consume_until_exhausted(self):
        subscription = self.create(package_type='package_4')
        for _ in range(4):
            PackageSubscriptionManager.consume_session(subscription)

        self.assertEqual(subscription.sessions_available, 0)
        with self.assertRaises(InsufficientCreditsError):
            PackageSubscriptionManager.consume_session(subscription)

    def test_restore_session_never_goes_negative(self):
        subscription = self.create()
        self.assertFalse(PackageSubscriptionManager.restore_session(subscription))
        self.assertEqual(subscription.sessions_used, 0)

    def test_restoring_session_from_earlier_period_adds_rollover(self):
        subscription = self.create()
        booked_at = subscription.current_period_start + timedelta(days=1)
        PackageSubscriptionManager.consume_session(subscription)
        PackageSubscriptionManager.renew_period(subscription, now=subscription.current_period_end + timedelta(days=1))
        before = subscription.sessions_available

        self.assertTrue(PackageSubscriptionManager.restore_session(subscription, booked_at=booked_at))
        self.assertEqual(subscription.sessions_used, 0)
        self.assertEqual(subscription.sessions_available, before + 1)

    def test_renewal_carries_over_part_of_unused_sessions(self):
        subscription = self.create()
        PackageSubscriptionManager.consume_session(subscription)
        PackageSubscriptionManager.consume_session(subscription)
        first_end = subscription.current_period_end

        PackageSubscriptionManager.renew_period(subscription, now=first_end + timedelta(days=1))

        subscription.refresh_from_db()
        self.assertEqual(subscription.current_period_start, first_end)
        self.assertEqual(subscription.sessions_used, 0)
        self.assertEqual(subscription.rollover_sessions, 2)
        self.assertEqual(subscription.sessions_available, 10)

        renewal = subscription.history.get(event_type='renewal')
        self.assertEqual(renewal.sessions_used, 2)
        self.assertEqual(renewal.rollover_sessions, 2)
        self.assertEqual(renewal.sessions_discarded, 4)
        self.assertEqual(renewal.amount_charged, Decimal('5880.00'))

        self.assertEqual(Payment.objects.filter(subscription=subscription).count(), 2)
        self.assertEqual(DeferredRevenue.objects.filter(subscription=subscription).count(), 2)

    def test_renewal_catches_up_on_missed_periods(self):
        subscription = self.create()

        PackageSubscriptionManager.renew_period(subscription, now=self.start + timedelta(days=65))

        self.assertEqual(subscription.history.filter(event_type='renewal').count(), 2)
        self.assertEqual(subscription.current_period_start, self.start + timedelta(days=60))
        self.assertEqual(Payment.objects.filter(subscription=subscription).count(), 3)

    def test_renewal_is_a_no_op_inside_the_period(self):
        subscription = self.create()

        PackageSubscriptionManager.renew_period(subscription, now=self.start + timedelta(days=10))

        self.assertFalse(subscription.history.filter(event_type='renewal').exists())
        self.assertEqual(Payment.objects.filter(subscription=subscription).count(), 1)

    def test_scheduled_cancellation_replaces_renewal(self):
        subscription = self.create()
        PackageSubscriptionManager.cancel_at_period_end(
            self.client_identity, subscription.subscription_id, now=self.start
        )

        subscription = PackageSubscriptionManager.lock(
            subscription.subscription_id, now=self.start + timedelta(days=31)
        )

        self.assertEqual(subscription.status, 'cancelled')
        self.assertEqual(subscription.cancelled_at, self.start + timedelta(days=30))
        self.assertEqual(Payment.objects.filter(subscription=subscription).count(), 1)
        self.assertCountEqual(
            subscription.history.values_list('event_type', flat=True),
            ['created', 'cancel_scheduled', 'cancelled']
        )

    def test_psychologist_cannot_cancel_clients_subscription(self):
        subscription = self.create()

        with self.assertRaises(AccessDeniedError):
            PackageSubscriptionManager.cancel_at_period_end(
                self.psychologist_identity, subscription.subscription_id, now=self.start
            )

    def test_find_active_skips_other_clients(self):
        self.create(client=ClientFactory())

        self.assertIsNone(PackageSubscriptionManager.find_active(self.client_profile, self.psychologist))
        subscription = self.create()
        self.assertEqual(
            PackageSubscriptionManager.find_active(self.client_profile, self.psychologist, now=self.start),
            subscription
        )

    def test_get_subscription_access(self):
        subscription = self.create()

        self.assertEqual(
            PackageSubscriptionManager.get_subscription(self.psychologist_identity, subscription.subscription_id),
            subscription
        )
        stranger = RequestIdentity.from_user(ClientFactory().user)
        with self.assertRaises(AccessDeniedError):
            PackageSubscriptionManager.get_subscription(stranger, subscription.subscription_id)

    def test_get_unknown_subscription(self):
        with self.assertRaises(SubscriptionNotFoundError):
            PackageSubscriptionManager.get_subscription(self.admin_identity, 'not-a-uuid')

    def test_list_subscriptions_by_role(self):
        self.create()
        self.create(client=ClientFactory())

        self.assertEqual(len(PackageSubscriptionManager.list_subscriptions(self.client_identity)), 1)
        self.assertEqual(len(PackageSubscriptionManager.list_subscriptions(self.psychologist_identity)), 2)
        self.assertEqual(len(PackageSubscriptionManager.list_subscriptions(self.admin_identity)), 2)

    def test_sweep_expired_periods(self):
        self.create()
        scheduled = self.create(client=ClientFactory())
        PackageSubscriptionManager.cancel_at_period_end(
            RequestIdentity.from_user(scheduled.client.user), scheduled.subscription_id, now=self.start
        )

        result = PackageSubscriptionManager.sweep_expired_periods(now=self.start + timedelta(days=31))

        self.assertEqual(result, {'due': 2, 'renewed': 1, 'cancelled': 1})
        self.assertEqual(Subscription.objects.filter(status='active').count(), 1)
        self.assertEqual(Subscription.objects.filter(status='cancelled').count(), 1)
