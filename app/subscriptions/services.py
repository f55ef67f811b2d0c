# subscriptions/services.py
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_FLOOR
import logging
from typing import Optional, List, Dict

from core.atomic import AtomicUnit
from core.exceptions import NotFoundError, AccessDeniedError, InsufficientCreditsError
from users.identity import RequestIdentity
from clients.models import Client
from psychologists.models import Psychologist
from psychologists.services import PricingService
from payments.services import PaymentService
from revenue.services import DeferralService
from .models import Subscription

logger = logging.getLogger(__name__)


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class SubscriptionNotFoundError(NotFoundError):
    """Raised when a subscription does not exist"""
    pass


# ============================================================================
# PACKAGE SUBSCRIPTIONS
# ============================================================================

class PackageSubscriptionManager:
    """
    Session credits for 4- and 8-session packages, bound to one psychologist.

    Every read-modify-write of ``sessions_used`` happens on a row locked with
    ``select_for_update`` so bookings, cancellations and renewals on the same
    subscription never interleave. Expired periods are renewed lazily whenever
    a subscription is locked.
    """

    @staticmethod
    def _period_length() -> timedelta:
        return timedelta(days=settings.BOOKING_POLICY['SUBSCRIPTION_PERIOD_DAYS'])

    @staticmethod
    def calculate_rollover(sessions_total: int, sessions_used: int) -> int:
        """Sessions carried into the next period: min(floor(fraction * total), unused)"""
        fraction = Decimal(str(settings.BOOKING_POLICY['ROLLOVER_FRACTION']))
        cap = int((fraction * sessions_total).to_integral_value(rounding=ROUND_FLOOR))
        unused = max(sessions_total - sessions_used, 0)
        return min(cap, unused)

    @staticmethod
    def _open_period(subscription: Subscription):
        """Create the payment and deferred revenue for the subscription's current period"""
        payment = PaymentService.create_payment(
            client=subscription.client,
            psychologist=subscription.psychologist,
            payment_type=subscription.package_type,
            base_amount=subscription.package_price,
            subscription=subscription,
        )
        DeferralService.defer_payment(payment, sessions_total=subscription.sessions_total)
        return payment

    @staticmethod
    def create(client: Client, psychologist: Psychologist, package_type: str,
               now: Optional[datetime] = None) -> Subscription:
        """
        Purchase a package at the psychologist's current package price.
        Call inside the caller's atomic unit.

        Raises:
            ValidationError: unknown package type
            PricingNotConfiguredError: psychologist has no prices yet
        """
        if package_type not in Subscription.PACKAGE_SIZES:
            raise ValidationError({'package_type': _("Package type must be package_4 or package_8")})

        now = now or timezone.now()
        pricing = PricingService.get_pricing(psychologist)
        subscription = Subscription.objects.create(
            client=client,
            psychologist=psychologist,
            package_type=package_type,
            package_price=pricing.package_price(package_type),
            sessions_total=Subscription.PACKAGE_SIZES[package_type],
            sessions_used=0,
            rollover_sessions=0,
            current_period_start=now,
            current_period_end=now + PackageSubscriptionManager._period_length(),
        )
        payment = PackageSubscriptionManager._open_period(subscription)
        subscription.record_history('created', amount_charged=payment.amount)

        logger.info(
            f"Subscription {subscription.subscription_id} created: {package_type} with "
            f"{psychologist.user.email} for client {client.user.email}"
        )
        return subscription

    @staticmethod
    def renew_period(subscription: Subscription, now: Optional[datetime] = None) -> Subscription:
        """
        Advance every period that has ended by ``now``.

        Each renewal carries over part of the unused sessions, resets the usage
        counter and opens a new payment with its deferred revenue. A scheduled
        cancellation takes effect instead of the renewal. The caller must hold
        the row lock.
        """
        now = now or timezone.now()

        while subscription.is_active and subscription.period_has_ended(now):
            if subscription.cancel_at_period_end:
                subscription.mark_as_cancelled(cancelled_at=subscription.current_period_end)
                logger.info(f"Subscription {subscription.subscription_id} cancelled at period end")
                break

            used = subscription.sessions_used
            rollover = PackageSubscriptionManager.calculate_rollover(subscription.sessions_total, used)
            discarded = max(subscription.sessions_total - used, 0) - rollover
            base = subscription.package_price
            subscription.record_history(
                'renewal',
                sessions_used=used,
                rollover_sessions=rollover,
                sessions_discarded=discarded,
                amount_charged=base + PaymentService.calculate_platform_fee(base),
            )

            subscription.current_period_start = subscription.current_period_end
            subscription.current_period_end = subscription.current_period_end + PackageSubscriptionManager._period_length()
            subscription.sessions_used = 0
            subscription.rollover_sessions = rollover
            subscription.save(update_fields=[
                'current_period_start', 'current_period_end', 'sessions_used',
                'rollover_sessions', 'updated_at'
            ])
            PackageSubscriptionManager._open_period(subscription)

            logger.info(
                f"Subscription {subscription.subscription_id} renewed: used {used}, "
                f"rolled over {rollover}, discarded {discarded}"
            )

        return subscription

    @staticmethod
    def lock(subscription_id, now: Optional[datetime] = None) -> Subscription:
        """Lock a subscription row and bring its period up to date. Needs an open transaction."""
        try:
            subscription = Subscription.objects.select_for_update().select_related(
                'client__user', 'psychologist__user'
            ).get(subscription_id=subscription_id)
        except (Subscription.DoesNotExist, ValueError, ValidationError):
            raise SubscriptionNotFoundError(f"Subscription {subscription_id} not found")
        return PackageSubscriptionManager.renew_period(subscription, now)

    @staticmethod
    def find_active(client: Client, psychologist: Psychologist,
                    now: Optional[datetime] = None) -> Optional[Subscription]:
        """Locked, up-to-date active subscription between client and psychologist, if any"""
        candidates = Subscription.objects.filter(
            client=client, psychologist=psychologist, status='active'
        ).order_by('created_at').values_list('subscription_id', flat=True)
        for subscription_id in candidates:
            subscription = PackageSubscriptionManager.lock(subscription_id, now)
            if subscription.is_active:
                return subscription
        return None

    @staticmethod
    def consume_session(subscription: Subscription) -> Subscription:
        """
        Raises:
            InsufficientCreditsError: no sessions left or subscription not active
        """
        if not subscription.is_active:
            raise InsufficientCreditsError(
                f"Subscription {subscription.subscription_id} is {subscription.status}"
            )
        if subscription.sessions_used >= subscription.sessions_total + subscription.rollover_sessions:
            raise InsufficientCreditsError(
                f"No sessions left on subscription {subscription.subscription_id}"
            )
        subscription.sessions_used += 1
        subscription.save(update_fields=['sessions_used', 'updated_at'])
        return subscription

    @staticmethod
    def restore_session(subscription: Subscription, booked_at: Optional[datetime] = None) -> bool:
        """
        Give one session back to the subscription. Returns False when there
        was nothing to give back.

        A session booked in an earlier period was already counted when that
        period closed, so it comes back as an extra carried-over session
        rather than through the current usage counter.
        """
        if booked_at is not None and booked_at < subscription.current_period_start:
            subscription.rollover_sessions += 1
            subscription.save(update_fields=['rollover_sessions', 'updated_at'])
            return True

        if subscription.sessions_used == 0:
            return False
        subscription.sessions_used -= 1
        subscription.save(update_fields=['sessions_used', 'updated_at'])
        return True

    @staticmethod
    def _check_access(identity: RequestIdentity, subscription: Subscription, allow_psychologist=True):
        if identity.is_admin:
            return
        if identity.is_client and subscription.client_id == identity.user_id:
            return
        if allow_psychologist and identity.is_psychologist and subscription.psychologist_id == identity.user_id:
            return
        raise AccessDeniedError("You do not have access to this subscription")

    @staticmethod
    def get_subscription(identity: RequestIdentity, subscription_id,
                         now: Optional[datetime] = None) -> Subscription:
        subscription = AtomicUnit.run(
            lambda: PackageSubscriptionManager.lock(subscription_id, now),
            lambda sub: sub,
            name='get_subscription',
        )
        PackageSubscriptionManager._check_access(identity, subscription)
        return subscription

    @staticmethod
    def list_subscriptions(identity: RequestIdentity, now: Optional[datetime] = None) -> List[Subscription]:
        if identity.is_admin:
            queryset = Subscription.objects.all()
        elif identity.is_psychologist:
            queryset = Subscription.objects.filter(psychologist_id=identity.user_id)
        else:
            queryset = Subscription.objects.filter(client_id=identity.user_id)

        subscriptions = []
        for subscription_id in queryset.order_by('-created_at').values_list('subscription_id', flat=True):
            subscriptions.append(PackageSubscriptionManager.get_subscription(identity, subscription_id, now))
        return subscriptions

    @staticmethod
    def cancel_at_period_end(identity: RequestIdentity, subscription_id,
                             now: Optional[datetime] = None) -> Subscription:
        """Schedule cancellation; sessions stay usable until the period ends"""
        def precondition():
            subscription = PackageSubscriptionManager.lock(subscription_id, now)
            PackageSubscriptionManager._check_access(identity, subscription, allow_psychologist=False)
            if not subscription.is_active:
                raise ValidationError({'status': _("Only active subscriptions can be cancelled")})
            return subscription

        def mutation(subscription):
            if not subscription.cancel_at_period_end:
                subscription.cancel_at_period_end = True
                subscription.save(update_fields=['cancel_at_period_end', 'updated_at'])
                subscription.record_history('cancel_scheduled')
                logger.info(f"Subscription {subscription.subscription_id} will cancel at {subscription.current_period_end}")
            return subscription

        return AtomicUnit.run(precondition, mutation, name='cancel_at_period_end')

    @staticmethod
    def sweep_expired_periods(now: Optional[datetime] = None) -> Dict[str, int]:
        """Renew every active subscription whose period has ended. Used by the beat task."""
        now = now or timezone.now()
        due = list(Subscription.objects.filter(
            status='active', current_period_end__lte=now
        ).values_list('subscription_id', flat=True))

        renewed = 0
        cancelled = 0
        for subscription_id in due:
            with transaction.atomic():
                subscription = PackageSubscriptionManager.lock(subscription_id, now)
            if subscription.is_active:
                renewed += 1
            else:
                cancelled += 1

        logger.info(f"Subscription sweep: {renewed} renewed, {cancelled} cancelled")
        return {'due': len(due), 'renewed': renewed, 'cancelled': cancelled}
