# revenue/services.py
from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import Sum
from django.utils import timezone
from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import Optional, Dict, Any

from core.atomic import AtomicUnit
from core.exceptions import (
    MarketplaceError,
    AlreadyRecognizedError,
    InvalidTransitionError,
    AccessDeniedError,
)
from users.identity import RequestIdentity
from psychologists.models import Psychologist
from .models import DeferredRevenue, Wallet, WalletTransaction

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class RecognitionError(MarketplaceError):
    """Raised when recognition cannot find the money it should move"""
    pass


# ============================================================================
# WALLETS
# ============================================================================

class WalletService:
    """
    Lookup of the platform wallet and per-psychologist wallets
    """

    @staticmethod
    def get_admin_wallet() -> Wallet:
        wallet, created = Wallet.objects.get_or_create(
            owner_type='admin',
            defaults={'currency': settings.REVENUE_SETTINGS['CURRENCY']}
        )
        if created:
            logger.info("Platform wallet created")
        return wallet

    @staticmethod
    def get_psychologist_wallet(psychologist: Psychologist) -> Wallet:
        wallet, created = Wallet.objects.get_or_create(
            owner_type='psychologist',
            psychologist=psychologist,
            defaults={'currency': settings.REVENUE_SETTINGS['CURRENCY']}
        )
        if created:
            logger.info(f"Wallet created for psychologist {psychologist.user.email}")
        return wallet

    @staticmethod
    def split_amount(amount: Decimal) -> tuple:
        """Return (admin_share, psychologist_share) for a recognized amount"""
        rate = Decimal(str(settings.REVENUE_SETTINGS['COMMISSION_RATE']))
        admin_share = (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)
        return admin_share, amount - admin_share


# ============================================================================
# DEFERRAL
# ============================================================================

class DeferralService:
    """
    Creation and voiding of deferred revenue rows. Called inside the atomic
    unit that creates the payment or redeems the credit.
    """

    @staticmethod
    def defer_payment(payment, appointment=None, sessions_total: int = 1) -> DeferredRevenue:
        deferred = DeferredRevenue.objects.create(
            psychologist=payment.psychologist,
            payment=payment,
            subscription=payment.subscription,
            appointment=appointment,
            total_amount=payment.base_amount,
            deferred_amount=payment.base_amount,
            sessions_total=sessions_total,
        )
        logger.info(f"Deferred {payment.base_amount} for payment {payment.payment_id} ({sessions_total} session(s))")
        return deferred

    @staticmethod
    def defer_credit(credit, appointment, amount: Decimal) -> DeferredRevenue:
        deferred = DeferredRevenue.objects.create(
            psychologist=appointment.psychologist,
            client_credit=credit,
            appointment=appointment,
            total_amount=amount,
            deferred_amount=amount,
            sessions_total=1,
        )
        logger.info(f"Deferred {amount} from credit {credit.credit_id} for appointment {appointment.appointment_id}")
        return deferred

    @staticmethod
    def void_for_appointment(appointment, reason: str) -> int:
        rows = DeferredRevenue.objects.select_for_update().filter(
            appointment=appointment,
            recognized=False,
            voided_at__isnull=True,
        )
        count = 0
        for row in rows:
            row.mark_as_void(reason)
            count += 1
        if count:
            logger.info(f"Voided {count} deferred revenue row(s) for appointment {appointment.appointment_id}: {reason}")
        return count

    @staticmethod
    def void_for_payment(payment, reason: str) -> int:
        rows = DeferredRevenue.objects.select_for_update().filter(
            payment=payment,
            recognized=False,
            voided_at__isnull=True,
        )
        count = 0
        for row in rows:
            row.mark_as_void(reason)
            count += 1
        if count:
            logger.info(f"Voided deferred revenue for payment {payment.payment_id}: {reason}")
        return count

    @staticmethod
    def get_open_row_for_appointment(appointment) -> Optional[DeferredRevenue]:
        return DeferredRevenue.objects.select_for_update().filter(
            appointment=appointment,
            voided_at__isnull=True,
        ).order_by('created_at').first()

    @staticmethod
    def get_open_row_for_subscription(subscription) -> Optional[DeferredRevenue]:
        # Oldest period first so rolled-over sessions draw on the period that paid for them
        return DeferredRevenue.objects.select_for_update().filter(
            subscription=subscription,
            voided_at__isnull=True,
            deferred_amount__gt=0,
        ).order_by('created_at').first()


# ============================================================================
# RECOGNITION
# ============================================================================

class RevenueRecognitionEngine:
    """
    Moves money from deferred to recognized revenue when a session completes.

    Exactly one commission/earning pair is ever written per appointment. A
    second call raises ``AlreadyRecognizedError`` without touching anything;
    a unique constraint on (wallet, appointment) backs the check up.
    """

    @staticmethod
    def recognize(appointment_id) -> Dict[str, Any]:
        from appointments.models import Appointment

        def precondition():
            appointment = Appointment.objects.select_for_update().select_related(
                'psychologist__user', 'subscription'
            ).get(appointment_id=appointment_id)

            if WalletTransaction.objects.filter(
                appointment=appointment,
                category__in=WalletTransaction.RECOGNITION_CATEGORIES
            ).exists():
                raise AlreadyRecognizedError(appointment_id)

            if appointment.status != 'completed':
                raise InvalidTransitionError(
                    f"Revenue can only be recognized for completed appointments, {appointment_id} is {appointment.status}"
                )
            return appointment

        def mutation(appointment):
            if appointment.is_package_bound:
                deferred = DeferralService.get_open_row_for_subscription(appointment.subscription)
                if deferred is None:
                    raise RecognitionError(
                        f"No open deferred revenue for subscription {appointment.subscription_id}"
                    )
                last_session = deferred.sessions_recognized + 1 >= deferred.sessions_total
                if last_session:
                    amount = deferred.deferred_amount
                else:
                    amount = min(deferred.price_per_session, deferred.deferred_amount)
            else:
                deferred = DeferralService.get_open_row_for_appointment(appointment)
                if deferred is None or deferred.recognized:
                    raise RecognitionError(
                        f"No open deferred revenue for appointment {appointment.appointment_id}"
                    )
                amount = deferred.deferred_amount

            now = timezone.now()
            deferred.deferred_amount -= amount
            deferred.recognized_amount += amount
            deferred.sessions_recognized += 1
            if deferred.deferred_amount <= 0:
                deferred.deferred_amount = Decimal('0.00')
                deferred.recognized = True
                deferred.recognized_at = now
            deferred.save(update_fields=[
                'deferred_amount', 'recognized_amount', 'sessions_recognized',
                'recognized', 'recognized_at', 'updated_at'
            ])

            admin_share, psychologist_share = WalletService.split_amount(amount)
            common = {
                'appointment': appointment,
                'subscription': appointment.subscription,
                'psychologist': appointment.psychologist,
            }
            try:
                with transaction.atomic():
                    admin_tx = WalletTransaction.objects.create(
                        wallet=WalletService.get_admin_wallet(),
                        category='session_commission',
                        amount=admin_share,
                        description=f"Commission for session {appointment.appointment_id}",
                        **common
                    )
                    psychologist_tx = WalletTransaction.objects.create(
                        wallet=WalletService.get_psychologist_wallet(appointment.psychologist),
                        category='session_earning',
                        amount=psychologist_share,
                        description=f"Earning for session {appointment.appointment_id}",
                        **common
                    )
            except IntegrityError:
                # Lost a race with another recognition of the same appointment
                raise AlreadyRecognizedError(appointment.appointment_id)

            logger.info(
                f"Recognized {amount} for appointment {appointment.appointment_id}: "
                f"admin {admin_share}, psychologist {psychologist_share}"
            )
            return {
                'appointment_id': appointment.appointment_id,
                'amount': amount,
                'admin_share': admin_share,
                'psychologist_share': psychologist_share,
                'deferred_remaining': deferred.deferred_amount,
                'deferred_revenue': deferred,
                'transactions': [admin_tx, psychologist_tx],
            }

        return AtomicUnit.run(precondition, mutation, name='recognize_revenue')

    @staticmethod
    def record_platform_fee(payment) -> Optional[WalletTransaction]:
        """
        Append the service fee of a succeeded payment to the platform wallet.
        Repeated calls for the same payment return the existing entry.
        """
        if payment.platform_fee <= 0:
            return None

        admin_wallet = WalletService.get_admin_wallet()
        existing = WalletTransaction.objects.filter(
            wallet=admin_wallet,
            payment=payment,
            category='platform_fee'
        ).first()
        if existing:
            logger.info(f"Platform fee for payment {payment.payment_id} already recorded")
            return existing

        fee_tx = WalletTransaction.objects.create(
            wallet=admin_wallet,
            category='platform_fee',
            amount=payment.platform_fee,
            payment=payment,
            subscription=payment.subscription,
            psychologist=payment.psychologist,
            description=f"Service fee for payment {payment.payment_id}",
        )
        logger.info(f"Platform fee {payment.platform_fee} recorded for payment {payment.payment_id}")
        return fee_tx


# ============================================================================
# FINANCIAL SUMMARIES
# ============================================================================

class FinancialSummaryService:
    """
    Read-only balances for psychologists and the platform
    """

    @staticmethod
    def _sum(queryset, field) -> Decimal:
        total = queryset.aggregate(total=Sum(field))['total'] or Decimal('0')
        return Decimal(total).quantize(CENT, rounding=ROUND_HALF_UP)

    @staticmethod
    def get_financial_summary(identity: RequestIdentity, psychologist: Psychologist) -> Dict[str, Any]:
        """
        Deferred revenue, platform earnings and psychologist balance for one psychologist.

        ``admin_balance`` only counts platform wallet entries attributed to this
        psychologist (commissions on their sessions and fees on their payments).
        """
        if not identity.is_admin and identity.user_id != psychologist.user_id:
            raise AccessDeniedError("You can only view your own financial summary")

        deferred = FinancialSummaryService._sum(
            DeferredRevenue.objects.filter(psychologist=psychologist, voided_at__isnull=True),
            'deferred_amount'
        )
        admin_balance = FinancialSummaryService._sum(
            WalletTransaction.objects.filter(wallet__owner_type='admin', psychologist=psychologist),
            'amount'
        )
        psychologist_balance = FinancialSummaryService._sum(
            WalletTransaction.objects.filter(wallet__owner_type='psychologist', wallet__psychologist=psychologist),
            'amount'
        )
        return {
            'psychologist_id': psychologist.user_id,
            'deferred_revenue': deferred,
            'admin_balance': admin_balance,
            'psychologist_balance': psychologist_balance,
            'currency': settings.REVENUE_SETTINGS['CURRENCY'],
        }

    @staticmethod
    def get_platform_summary(identity: RequestIdentity) -> Dict[str, Any]:
        if not identity.is_admin:
            raise AccessDeniedError("Only administrators can view the platform summary")

        return {
            'deferred_revenue': FinancialSummaryService._sum(
                DeferredRevenue.objects.filter(voided_at__isnull=True), 'deferred_amount'
            ),
            'admin_balance': FinancialSummaryService._sum(
                WalletTransaction.objects.filter(wallet__owner_type='admin'), 'amount'
            ),
            'psychologist_balances': FinancialSummaryService._sum(
                WalletTransaction.objects.filter(wallet__owner_type='psychologist'), 'amount'
            ),
            'platform_fees': FinancialSummaryService._sum(
                WalletTransaction.objects.filter(category='platform_fee'), 'amount'
            ),
            'currency': settings.REVENUE_SETTINGS['CURRENCY'],
        }
