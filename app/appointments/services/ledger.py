# appointments/services/ledger.py
from django.conf import settings
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from datetime import datetime
import logging
from typing import Optional, Dict, Any, List

from core.atomic import AtomicUnit
from core.exceptions import (
    NotFoundError,
    AccessDeniedError,
    InvalidTransitionError,
    InsufficientCreditsError,
    AlreadyRecognizedError,
)
from users.identity import RequestIdentity
from users.models import User
from clients.models import Client
from clients.services import ClientNotFoundError
from psychologists.services import ProfileService, PricingService
from payments.models import Payment
from payments.services import PaymentService
from subscriptions.services import PackageSubscriptionManager
from credits.services import CreditLedger
from revenue.services import DeferralService, RevenueRecognitionEngine
from notifications.services import NotificationService
from ..models import Appointment
from .booking import BookingConflictGuard

logger = logging.getLogger(__name__)


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class AppointmentNotFoundError(NotFoundError):
    """Raised when appointment is not found"""
    pass


# ============================================================================
# APPOINTMENT LEDGER
# ============================================================================

class AppointmentLedger:
    """
    Owns the appointment state machine and everything a transition moves:
    payments, package sessions, client credits and revenue.
    """

    BOOKING_KINDS = ('single', 'package4', 'package8', 'credit')

    PACKAGE_KINDS = {
        'package4': 'package_4',
        'package8': 'package_8',
    }

    # ------------------------------------------------------------------
    # Lookups and access
    # ------------------------------------------------------------------

    @staticmethod
    def _get_booking_client(identity: RequestIdentity, client_id) -> Client:
        if not identity.is_admin and (not identity.is_client or str(identity.user_id) != str(client_id)):
            raise AccessDeniedError("Clients can only book sessions for themselves")
        try:
            return Client.objects.select_related('user').get(user__id=client_id)
        except (Client.DoesNotExist, ValueError, ValidationError):
            raise ClientNotFoundError(f"Client {client_id} not found")

    @staticmethod
    def _bookable_psychologist(psychologist_id):
        psychologist = ProfileService.get_psychologist_by_id(psychologist_id)
        if not psychologist.can_book_appointments():
            raise ValidationError({'psychologist_id': _("This psychologist is not accepting bookings")})
        return psychologist

    @staticmethod
    def _check_access(identity: RequestIdentity, appointment: Appointment, allow_client=True,
                      allow_psychologist=True):
        if identity.is_admin:
            return
        if allow_client and identity.is_client and appointment.client_id == identity.user_id:
            return
        if allow_psychologist and identity.is_psychologist and appointment.psychologist_id == identity.user_id:
            return
        raise AccessDeniedError("You do not have access to this appointment")

    @staticmethod
    def _lock_appointment(appointment_id) -> Appointment:
        try:
            return Appointment.objects.select_for_update().select_related(
                'psychologist__user', 'client__user', 'subscription'
            ).get(appointment_id=appointment_id)
        except (Appointment.DoesNotExist, ValueError, ValidationError):
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")

    @staticmethod
    def get_appointment(identity: RequestIdentity, appointment_id) -> Appointment:
        try:
            appointment = Appointment.objects.select_related(
                'psychologist__user', 'client__user', 'subscription'
            ).get(appointment_id=appointment_id)
        except (Appointment.DoesNotExist, ValueError, ValidationError):
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        AppointmentLedger._check_access(identity, appointment)
        return appointment

    @staticmethod
    def list_appointments(identity: RequestIdentity, status: Optional[str] = None) -> List[Appointment]:
        queryset = Appointment.objects.select_related('psychologist__user', 'client__user')
        if identity.is_psychologist:
            queryset = queryset.filter(psychologist_id=identity.user_id)
        elif not identity.is_admin:
            queryset = queryset.filter(client_id=identity.user_id)
        if status:
            queryset = queryset.filter(status=status)
        return list(queryset.order_by('-start_time'))

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    @staticmethod
    def create_single(identity: RequestIdentity, psychologist_id, client_id, start_time: datetime,
                      modality: str = 'online', now: Optional[datetime] = None) -> Appointment:
        """
        Book one session paid by its own payment.

        Creates the pending appointment, a pending single-session payment and
        the deferred revenue for the session price, all or nothing.
        """
        def precondition():
            client = AppointmentLedger._get_booking_client(identity, client_id)
            psychologist = AppointmentLedger._bookable_psychologist(psychologist_id)
            pricing = PricingService.get_pricing(psychologist)
            return client, psychologist, pricing

        def mutation(context):
            client, psychologist, pricing = context
            appointment = BookingConflictGuard.reserve(
                psychologist, client, start_time,
                booking_kind='single', modality=modality, now=now
            )
            payment = PaymentService.create_payment(
                client=client,
                psychologist=psychologist,
                payment_type='single_session',
                base_amount=pricing.session_price,
                appointment=appointment,
            )
            DeferralService.defer_payment(payment, appointment=appointment)
            NotificationService.notify_booking_created(appointment)
            logger.info(f"Single session {appointment.appointment_id} booked, payment {payment.payment_id}")
            return appointment

        return AtomicUnit.run(precondition, mutation, name='create_single_booking')

    @staticmethod
    def create_from_package(identity: RequestIdentity, subscription_id, start_time: datetime,
                            modality: str = 'online', now: Optional[datetime] = None) -> Appointment:
        """
        Book a session from a package subscription.

        Raises:
            InsufficientCreditsError: no sessions left in the current period
        """
        def precondition():
            subscription = PackageSubscriptionManager.lock(subscription_id, now)
            if not identity.is_admin and subscription.client_id != identity.user_id:
                raise AccessDeniedError("You can only book from your own packages")
            if subscription.sessions_available <= 0 or not subscription.is_active:
                raise InsufficientCreditsError(
                    f"No sessions available on subscription {subscription.subscription_id}"
                )
            if not subscription.psychologist.can_book_appointments():
                raise ValidationError({'psychologist_id': _("This psychologist is not accepting bookings")})
            return subscription

        def mutation(subscription):
            PackageSubscriptionManager.consume_session(subscription)
            appointment = BookingConflictGuard.reserve(
                subscription.psychologist, subscription.client, start_time,
                booking_kind='package', subscription=subscription, modality=modality, now=now
            )
            current_payment = subscription.payments.order_by('-created_at').first()
            if current_payment and current_payment.is_successful:
                appointment.mark_as_confirmed()
            NotificationService.notify_booking_created(appointment)
            logger.info(
                f"Package session {appointment.appointment_id} booked from subscription "
                f"{subscription.subscription_id} ({subscription.sessions_available} left)"
            )
            return appointment

        return AtomicUnit.run(precondition, mutation, name='create_package_booking')

    @staticmethod
    def create_with_credit(identity: RequestIdentity, psychologist_id, client_id, credit_id,
                           start_time: datetime, modality: str = 'online',
                           now: Optional[datetime] = None) -> Appointment:
        """
        Book a session paid by a client credit. The credit must cover the
        session price and is consumed whole.
        """
        def precondition():
            client = AppointmentLedger._get_booking_client(identity, client_id)
            psychologist = AppointmentLedger._bookable_psychologist(psychologist_id)
            pricing = PricingService.get_pricing(psychologist)
            credit = CreditLedger.lock_available_credit(credit_id, client)
            if credit.amount < pricing.session_price:
                raise InsufficientCreditsError(
                    f"Credit {credit.credit_id} of {credit.amount} does not cover the session price {pricing.session_price}"
                )
            return client, psychologist, pricing, credit

        def mutation(context):
            client, psychologist, pricing, credit = context
            appointment = BookingConflictGuard.reserve(
                psychologist, client, start_time,
                booking_kind='credit', modality=modality, now=now
            )
            credit.mark_as_redeemed(appointment=appointment)
            DeferralService.defer_credit(credit, appointment, pricing.session_price)
            appointment.mark_as_confirmed()
            NotificationService.notify_booking_created(appointment)
            logger.info(f"Session {appointment.appointment_id} booked with credit {credit.credit_id}")
            return appointment

        return AtomicUnit.run(precondition, mutation, name='create_credit_booking')

    @staticmethod
    def create_booking(identity: RequestIdentity, psychologist_id, client_id, start_time: datetime,
                       kind: str, credit_id=None, modality: str = 'online',
                       now: Optional[datetime] = None) -> Appointment:
        """
        Entry point for every booking kind.

        ``package4``/``package8`` buy a subscription with the psychologist when
        the client has no active one, then book from it in the same unit. An
        active subscription of the other size is rejected rather than reused.
        """
        if kind not in AppointmentLedger.BOOKING_KINDS:
            raise ValidationError({'kind': _("Booking kind must be one of: %(kinds)s") % {
                'kinds': ', '.join(AppointmentLedger.BOOKING_KINDS)
            }})

        if kind == 'single':
            return AppointmentLedger.create_single(identity, psychologist_id, client_id, start_time, modality, now)

        if kind == 'credit':
            if not credit_id:
                raise ValidationError({'credit_id': _("A credit is required for credit bookings")})
            return AppointmentLedger.create_with_credit(
                identity, psychologist_id, client_id, credit_id, start_time, modality, now
            )

        def precondition():
            client = AppointmentLedger._get_booking_client(identity, client_id)
            psychologist = AppointmentLedger._bookable_psychologist(psychologist_id)
            package_type = AppointmentLedger.PACKAGE_KINDS[kind]
            subscription = PackageSubscriptionManager.find_active(client, psychologist, now)
            if subscription is None:
                subscription = PackageSubscriptionManager.create(client, psychologist, package_type, now)
            elif subscription.package_type != package_type:
                raise ValidationError({'kind': _(
                    "An active %(active)s subscription with this psychologist already exists"
                ) % {'active': subscription.package_type}})
            return subscription

        def mutation(subscription):
            return AppointmentLedger.create_from_package(
                identity, subscription.subscription_id, start_time, modality, now
            )

        return AtomicUnit.run(precondition, mutation, name='create_package_purchase_booking')

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @staticmethod
    def cancel(identity: RequestIdentity, appointment_id, reason: str = '',
               now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Cancel a pending or confirmed appointment.

        At or beyond the cancellation window a single (or credit-paid) session
        becomes a client credit worth the session price, and a package session
        goes back to its subscription. Inside the window nothing is returned.
        """
        now = now or timezone.now()
        window = settings.BOOKING_POLICY['CANCELLATION_WINDOW_HOURS']

        def precondition():
            appointment = AppointmentLedger._lock_appointment(appointment_id)
            AppointmentLedger._check_access(identity, appointment)
            if not appointment.can_transition_to('cancelled'):
                raise InvalidTransitionError(
                    f"Appointment {appointment.appointment_id} is {appointment.status} and cannot be cancelled"
                )
            return appointment

        def mutation(appointment):
            timely = appointment.hours_before_start(now) >= window
            actor = User.objects.filter(id=identity.user_id).first()
            appointment.mark_as_cancelled(cancelled_by=actor, reason=reason, cancelled_at=now)

            credit = None
            session_restored = False

            if appointment.is_package_bound:
                if timely:
                    subscription = PackageSubscriptionManager.lock(appointment.subscription_id, now)
                    session_restored = PackageSubscriptionManager.restore_session(
                        subscription, booked_at=appointment.created_at
                    )
            elif timely:
                credit = AppointmentLedger._convert_to_credit(appointment)

            if not timely:
                logger.info(
                    f"Appointment {appointment.appointment_id} cancelled inside the {window}h window, nothing returned"
                )

            NotificationService.notify_booking_cancelled(appointment, credit)
            logger.info(
                f"Appointment {appointment.appointment_id} cancelled by {identity.role} {identity.user_id}: "
                f"credit {'issued' if credit else 'none'}, session {'restored' if session_restored else 'not restored'}"
            )
            return {
                'appointment': appointment,
                'status': appointment.status,
                'credit_issued': credit,
                'session_restored': session_restored,
            }

        return AtomicUnit.run(precondition, mutation, name='cancel_booking')

    @staticmethod
    def _convert_to_credit(appointment: Appointment):
        """
        Issue a credit worth the session price for a timely cancellation and
        void its deferral. A single-session payment still pending at the
        gateway is cancelled so it can no longer be captured.
        """
        deferred = DeferralService.get_open_row_for_appointment(appointment)
        if deferred is None or deferred.recognized:
            return None

        if appointment.booking_kind == 'single':
            pending_payments = Payment.objects.select_for_update().filter(
                appointment=appointment, payment_status='pending'
            )
            for payment in pending_payments:
                payment.mark_as_cancelled()
                logger.info(f"Pending payment {payment.payment_id} cancelled with appointment {appointment.appointment_id}")

        credit = CreditLedger.issue(
            client=appointment.client,
            psychologist=appointment.psychologist,
            amount=deferred.total_amount,
            reason=f"Timely cancellation of session on {appointment.start_time:%Y-%m-%d %H:%M}",
            source_appointment=appointment,
        )
        DeferralService.void_for_appointment(appointment, "Converted to client credit")
        return credit

    @staticmethod
    def complete(identity: RequestIdentity, appointment_id, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Mark a confirmed appointment completed and recognize its revenue.

        Recognition runs in a savepoint inside the same transaction. If it
        fails the appointment stays completed and operators are alerted for
        manual reconciliation; it is never retried automatically. Completing
        an already completed appointment only re-runs recognition, which the
        idempotency guard turns into a no-op.
        """
        def precondition():
            appointment = AppointmentLedger._lock_appointment(appointment_id)
            AppointmentLedger._check_access(identity, appointment, allow_client=False)
            if appointment.status != 'completed' and not appointment.can_transition_to('completed'):
                raise InvalidTransitionError(
                    f"Appointment {appointment.appointment_id} is {appointment.status} and cannot be completed"
                )
            return appointment

        def mutation(appointment):
            newly_completed = appointment.status != 'completed'
            if newly_completed:
                appointment.mark_as_completed(completed_at=now)
                logger.info(f"Appointment {appointment.appointment_id} completed")

            result = {
                'appointment': appointment,
                'status': appointment.status,
                'recognized': False,
                'already_recognized': False,
                'recognition': None,
            }
            try:
                result['recognition'] = RevenueRecognitionEngine.recognize(appointment.appointment_id)
                result['recognized'] = True
            except AlreadyRecognizedError:
                logger.info(f"Revenue for appointment {appointment.appointment_id} was already recognized")
                result['already_recognized'] = True
            except Exception as e:
                NotificationService.alert_operators(
                    f"Revenue recognition failed for appointment {appointment.appointment_id}",
                    f"Appointment {appointment.appointment_id} is completed but its revenue was not recognized. "
                    f"Run reconcile_revenue once the cause is fixed. Error: {str(e)}"
                )

            if newly_completed:
                NotificationService.notify_booking_completed(appointment)
            return result

        return AtomicUnit.run(precondition, mutation, name='complete_booking')

    @staticmethod
    def mark_no_show(identity: RequestIdentity, appointment_id) -> Appointment:
        def precondition():
            appointment = AppointmentLedger._lock_appointment(appointment_id)
            AppointmentLedger._check_access(identity, appointment, allow_client=False)
            return appointment

        def mutation(appointment):
            appointment.mark_as_no_show()
            logger.info(f"Appointment {appointment.appointment_id} marked as no-show")
            return appointment

        return AtomicUnit.run(precondition, mutation, name='mark_no_show')


__all__ = ['AppointmentLedger', 'AppointmentNotFoundError', 'ClientNotFoundError']
