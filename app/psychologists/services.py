# psychologists/services.py
from django.conf import settings
from django.db import transaction
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from django.db.models import Q
from datetime import date, time
from decimal import Decimal
import logging
from typing import Optional, Dict, Any, List

from core.exceptions import NotFoundError, AccessDeniedError
from users.identity import RequestIdentity
from users.models import User
from .models import Psychologist, AvailabilityRule, CalendarBlock, PsychologistPricing

logger = logging.getLogger(__name__)


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class PsychologistNotFoundError(NotFoundError):
    """Raised when psychologist profile is not found"""
    pass


class PricingNotConfiguredError(NotFoundError):
    """Raised when a psychologist has not set up prices yet"""
    pass


# ============================================================================
# PROFILE STORE
# ============================================================================

class ProfileService:
    """
    Read access to psychologist profiles for the scheduling core
    """

    @staticmethod
    def get_psychologist_by_user(user: User) -> Optional[Psychologist]:
        try:
            return Psychologist.objects.select_related('user').get(user=user)
        except Psychologist.DoesNotExist:
            logger.warning(f"Psychologist profile not found for user {user.email}")
            return None

    @staticmethod
    def get_psychologist_by_user_or_raise(user: User) -> Psychologist:
        psychologist = ProfileService.get_psychologist_by_user(user)
        if not psychologist:
            raise PsychologistNotFoundError(f"Psychologist profile not found for user {user.email}")
        return psychologist

    @staticmethod
    def get_psychologist_by_id(psychologist_id) -> Psychologist:
        try:
            return Psychologist.objects.select_related('user').get(user__id=psychologist_id)
        except (Psychologist.DoesNotExist, ValueError, ValidationError):
            raise PsychologistNotFoundError(f"Psychologist {psychologist_id} not found")

    @staticmethod
    def get_experience_years(psychologist_id) -> int:
        return ProfileService.get_psychologist_by_id(psychologist_id).years_of_experience


# ============================================================================
# PRICING SERVICE
# ============================================================================

class PricingService:
    """
    Pricing setup with experience-tier caps
    """

    @staticmethod
    def get_price_cap(years_of_experience: int) -> Decimal:
        """
        Session price cap for an experience level.

        Tiers are [min_years, max_years) ranges; anything below the first tier
        falls back to the default cap.
        """
        for min_years, max_years, cap in settings.PRICE_CAPS['TIERS']:
            if years_of_experience >= min_years and (max_years is None or years_of_experience < max_years):
                return cap
        return settings.PRICE_CAPS['DEFAULT_CAP']

    @staticmethod
    def set_pricing(psychologist: Psychologist, session_price: Decimal, package_4_price: Decimal,
                    package_8_price: Decimal, cancellation_policy: str = '') -> PsychologistPricing:
        """
        Create or replace a psychologist's prices.

        Raises:
            ValidationError: field-level detail, e.g. session price above the cap
        """
        errors = {}
        years = ProfileService.get_experience_years(psychologist.user.id)
        cap = PricingService.get_price_cap(years)

        session_price = Decimal(str(session_price))
        package_4_price = Decimal(str(package_4_price))
        package_8_price = Decimal(str(package_8_price))

        if session_price > cap:
            errors['session_price'] = _("Session price %(price)s exceeds the cap of %(cap)s for %(years)s years of experience") % {
                'price': session_price, 'cap': cap, 'years': years
            }
        for field, value in (('session_price', session_price), ('package_4_price', package_4_price),
                             ('package_8_price', package_8_price)):
            if value <= 0 and field not in errors:
                errors[field] = _("Price must be greater than zero")

        if errors:
            raise ValidationError(errors)

        window = settings.BOOKING_POLICY['CANCELLATION_WINDOW_HOURS']
        pricing, created = PsychologistPricing.objects.update_or_create(
            psychologist=psychologist,
            defaults={
                'session_price': session_price,
                'package_4_price': package_4_price,
                'package_8_price': package_8_price,
                'session_duration_minutes': settings.BOOKING_POLICY['SESSION_DURATION_MINUTES'],
                'cancellation_policy': cancellation_policy or str(_(
                    "Cancel at least %(hours)s hours before your session to receive a credit."
                ) % {'hours': window}),
                'currency': settings.REVENUE_SETTINGS['CURRENCY'],
            }
        )
        logger.info(f"Pricing {'created' if created else 'updated'} for {psychologist.user.email}: session {session_price}")
        return pricing

    @staticmethod
    def get_pricing(psychologist: Psychologist) -> PsychologistPricing:
        try:
            return PsychologistPricing.objects.get(psychologist=psychologist)
        except PsychologistPricing.DoesNotExist:
            raise PricingNotConfiguredError(f"Pricing not configured for psychologist {psychologist.user.id}")


# ============================================================================
# AVAILABILITY MANAGEMENT
# ============================================================================

class AvailabilityManagementService:
    """
    Maintenance of availability rules and calendar blocks, always on behalf
    of the owning psychologist
    """

    @staticmethod
    def _check_owner(identity: RequestIdentity, psychologist: Psychologist):
        if identity.is_admin:
            return
        if not identity.is_psychologist or identity.user_id != psychologist.user_id:
            raise AccessDeniedError("Only the psychologist can change their own calendar")

    @staticmethod
    def create_rule(identity: RequestIdentity, psychologist: Psychologist, day_of_week: int = None,
                    start_time: time = None, end_time: time = None, specific_date: date = None) -> AvailabilityRule:
        """
        Create a weekly rule, or an exception rule when ``specific_date`` is given.

        Raises:
            ValidationError: overlapping or malformed window
        """
        AvailabilityManagementService._check_owner(identity, psychologist)

        if specific_date is None and day_of_week is None:
            raise ValidationError({'day_of_week': _("Weekly rules need a day of week")})

        with transaction.atomic():
            # Serialise rule edits per psychologist so the overlap check holds
            Psychologist.objects.select_for_update().get(pk=psychologist.pk)
            rule = AvailabilityRule(
                psychologist=psychologist,
                day_of_week=day_of_week if day_of_week is not None else 0,
                start_time=start_time,
                end_time=end_time,
                is_exception=specific_date is not None,
                specific_date=specific_date,
            )
            rule.save()

        logger.info(f"Availability rule created for {psychologist.user.email}: {rule}")
        return rule

    @staticmethod
    def supersede_rule(identity: RequestIdentity, rule: AvailabilityRule) -> AvailabilityRule:
        AvailabilityManagementService._check_owner(identity, rule.psychologist)
        rule.supersede()
        logger.info(f"Availability rule {rule.availability_id} superseded")
        return rule

    @staticmethod
    def replace_rule(identity: RequestIdentity, rule: AvailabilityRule, start_time: time,
                     end_time: time) -> AvailabilityRule:
        """Supersede a rule and create its successor in one transaction"""
        AvailabilityManagementService._check_owner(identity, rule.psychologist)
        with transaction.atomic():
            rule.supersede()
            return AvailabilityManagementService.create_rule(
                identity,
                rule.psychologist,
                day_of_week=rule.day_of_week,
                start_time=start_time,
                end_time=end_time,
                specific_date=rule.specific_date if rule.is_exception else None,
            )

    @staticmethod
    def get_active_rules(psychologist: Psychologist) -> List[AvailabilityRule]:
        return list(AvailabilityRule.objects.filter(
            psychologist=psychologist,
            superseded_at__isnull=True
        ).order_by('is_exception', 'day_of_week', 'specific_date', 'start_time'))

    @staticmethod
    def create_block(identity: RequestIdentity, psychologist: Psychologist, block_data: Dict[str, Any]) -> CalendarBlock:
        AvailabilityManagementService._check_owner(identity, psychologist)
        block = CalendarBlock(psychologist=psychologist, **block_data)
        block.save()
        logger.info(f"Calendar block created for {psychologist.user.email}: {block}")
        return block

    @staticmethod
    def block_day(identity: RequestIdentity, psychologist: Psychologist, target_date: date,
                  label: str = '') -> CalendarBlock:
        """Take a whole day off with a one-off block"""
        return AvailabilityManagementService.create_block(identity, psychologist, {
            'block_type': 'blocked',
            'is_recurring': False,
            'specific_date': target_date,
            'start_time': time(0, 0),
            'end_time': time(23, 59, 59),
            'label': label or str(_('Day off')),
        })

    @staticmethod
    def delete_block(identity: RequestIdentity, block: CalendarBlock) -> None:
        AvailabilityManagementService._check_owner(identity, block.psychologist)
        block_info = str(block)
        block.delete()
        logger.info(f"Calendar block deleted: {block_info}")

    @staticmethod
    def get_blocks(psychologist: Psychologist, date_from: date = None) -> List[CalendarBlock]:
        queryset = CalendarBlock.objects.filter(psychologist=psychologist)
        if date_from:
            queryset = queryset.filter(Q(is_recurring=True) | Q(specific_date__gte=date_from))
        return list(queryset.order_by('is_recurring', 'specific_date', 'day_of_week', 'start_time'))
