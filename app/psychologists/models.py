# psychologists/models.py
from django.db import models
from django.conf import settings
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone
from datetime import date, datetime, timedelta
from decimal import Decimal
from users.models import User
import logging
logger = logging.getLogger(__name__)


def to_sunday_based_weekday(target_date):
    """Convert Python weekday (0=Monday) to our format (0=Sunday)"""
    return (target_date.weekday() + 1) % 7


class Psychologist(models.Model):
    """
    Psychologist profile model - extends the base User model
    """

    VERIFICATION_STATUS_CHOICES = [
        ('Pending', _('Pending')),
        ('Approved', _('Approved')),
        ('Rejected', _('Rejected')),
    ]

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='psychologist_profile',
        help_text=_("Link to the base user account")
    )

    first_name = models.CharField(
        _('first name'),
        max_length=100,
        help_text=_("Psychologist's first name")
    )
    last_name = models.CharField(
        _('last name'),
        max_length=100,
        help_text=_("Psychologist's last name")
    )

    license_number = models.CharField(
        _('license number'),
        max_length=100,
        unique=True,
        help_text=_("Professional license (cédula) number")
    )
    years_of_experience = models.PositiveIntegerField(
        _('years of experience'),
        validators=[
            MinValueValidator(0, message=_("Years of experience cannot be negative")),
            MaxValueValidator(60, message=_("Years of experience seems too high"))
        ],
        help_text=_("Total years of professional experience, drives the session price cap")
    )

    verification_status = models.CharField(
        _('verification status'),
        max_length=20,
        choices=VERIFICATION_STATUS_CHOICES,
        default='Pending',
        help_text=_("Current verification status")
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )
    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('Psychologist')
        verbose_name_plural = _('Psychologists')
        db_table = 'psychologists'
        indexes = [
            models.Index(fields=['verification_status']),
            models.Index(fields=['license_number']),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.user.email})"

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self):
        return self.full_name or self.user.email.split('@')[0]

    @property
    def is_verified(self):
        return self.verification_status == 'Approved'

    @property
    def tzinfo(self):
        """Timezone in which availability wall-clock times are expressed"""
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
        try:
            return ZoneInfo(self.user.user_timezone or 'UTC')
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{self.user.user_timezone}' for psychologist {self.user.email}, using UTC")
            return ZoneInfo('UTC')

    def can_book_appointments(self):
        """Approved psychologists with an active account can receive bookings"""
        return self.is_verified and self.user.is_active


class AvailabilityRule(models.Model):
    """
    Weekly availability window, or a date-specific exception replacing the
    weekly windows of that date. Rules are superseded, never deleted.
    """

    availability_id = models.BigAutoField(
        primary_key=True,
        help_text=_("Unique identifier for availability rule")
    )

    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.CASCADE,
        related_name='availability_rules',
        help_text=_("Psychologist this availability belongs to")
    )

    day_of_week = models.IntegerField(
        _('day of week'),
        validators=[
            MinValueValidator(0, message=_("Day of week must be 0-6 (0=Sunday)")),
            MaxValueValidator(6, message=_("Day of week must be 0-6 (6=Saturday)"))
        ],
        help_text=_("Day of week: 0=Sunday, 1=Monday, 2=Tuesday, 3=Wednesday, 4=Thursday, 5=Friday, 6=Saturday")
    )

    start_time = models.TimeField(
        _('start time'),
        help_text=_("Start of the availability window (psychologist's local time)")
    )

    end_time = models.TimeField(
        _('end time'),
        help_text=_("End of the availability window (psychologist's local time)")
    )

    is_exception = models.BooleanField(
        _('is exception'),
        default=False,
        help_text=_("Date-specific rule that replaces the weekly rules of that date")
    )

    specific_date = models.DateField(
        _('specific date'),
        null=True,
        blank=True,
        help_text=_("Date an exception rule applies to")
    )

    superseded_at = models.DateTimeField(
        _('superseded at'),
        null=True,
        blank=True,
        help_text=_("When this rule stopped applying")
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )
    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('Availability Rule')
        verbose_name_plural = _('Availability Rules')
        db_table = 'availability_rules'
        indexes = [
            models.Index(fields=['psychologist', 'day_of_week']),
            models.Index(fields=['psychologist', 'specific_date']),
            models.Index(fields=['psychologist', 'superseded_at']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='rule_end_time_after_start_time'
            ),
            models.CheckConstraint(
                condition=models.Q(is_exception=True, specific_date__isnull=False) |
                models.Q(is_exception=False, specific_date__isnull=True),
                name='exception_rule_has_specific_date'
            ),
        ]

    def __str__(self):
        when = self.specific_date.isoformat() if self.is_exception else self.get_day_name()
        return f"{self.psychologist.display_name} - {when} {self.get_time_range_display()}"

    def clean(self):
        """Model validation"""
        errors = {}

        if self.start_time and self.end_time:
            if self.end_time <= self.start_time:
                errors['end_time'] = _("End time must be after start time")
            else:
                session_minutes = settings.BOOKING_POLICY['SESSION_DURATION_MINUTES']
                duration = datetime.combine(date.min, self.end_time) - datetime.combine(date.min, self.start_time)
                if duration < timedelta(minutes=session_minutes):
                    errors['end_time'] = _("Availability must fit at least one session of %(minutes)s minutes") % {
                        'minutes': session_minutes
                    }

        if self.is_exception and not self.specific_date:
            errors['specific_date'] = _("Exception rules must have a specific date")
        elif not self.is_exception and self.specific_date:
            errors['specific_date'] = _("Weekly rules should not have a specific date")

        if not errors and self.superseded_at is None and self.psychologist_id:
            overlapping = self.find_overlapping_rules()
            if overlapping:
                errors['start_time'] = _("Availability overlaps an existing rule: %(rule)s") % {
                    'rule': overlapping[0].get_time_range_display()
                }

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        """Override save to run validation"""
        if self.is_exception and self.specific_date:
            self.day_of_week = to_sunday_based_weekday(self.specific_date)
        self.full_clean()
        super().save(*args, **kwargs)

    def find_overlapping_rules(self):
        """Active rules of the same day (or exception date) overlapping this window"""
        queryset = AvailabilityRule.objects.filter(
            psychologist_id=self.psychologist_id,
            superseded_at__isnull=True,
            is_exception=self.is_exception,
            start_time__lt=self.end_time,
            end_time__gt=self.start_time,
        )
        if self.is_exception:
            queryset = queryset.filter(specific_date=self.specific_date)
        else:
            queryset = queryset.filter(day_of_week=self.day_of_week)
        if self.pk:
            queryset = queryset.exclude(pk=self.pk)
        return list(queryset)

    @property
    def is_active(self):
        return self.superseded_at is None

    def supersede(self, when=None):
        """Retire the rule; history stays queryable"""
        if self.superseded_at is not None:
            raise ValidationError(_("Availability rule is already superseded"))
        self.superseded_at = when or timezone.now()
        self.save(update_fields=['superseded_at', 'updated_at'])

    def get_day_name(self):
        days = [
            _('Sunday'), _('Monday'), _('Tuesday'), _('Wednesday'),
            _('Thursday'), _('Friday'), _('Saturday')
        ]
        return days[self.day_of_week]

    def get_time_range_display(self):
        return f"{self.start_time.strftime('%H:%M')} - {self.end_time.strftime('%H:%M')}"

    @classmethod
    def get_rules_for_date(cls, psychologist, target_date):
        """
        Active rules governing a date. Exception rules for the date fully
        replace the weekly rules of that weekday.
        """
        active = cls.objects.filter(psychologist=psychologist, superseded_at__isnull=True)

        exceptions = list(active.filter(is_exception=True, specific_date=target_date).order_by('start_time'))
        if exceptions:
            return exceptions

        return list(active.filter(
            is_exception=False,
            day_of_week=to_sunday_based_weekday(target_date)
        ).order_by('start_time'))


class CalendarBlock(models.Model):
    """
    Busy time that does not come from the marketplace's own appointments
    (outside consultations, personal time, days off).
    """

    BLOCK_TYPE_CHOICES = [
        ('external', _('External appointment')),
        ('blocked', _('Blocked time')),
    ]

    block_id = models.BigAutoField(
        primary_key=True,
        help_text=_("Unique identifier for the calendar block")
    )

    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.CASCADE,
        related_name='calendar_blocks',
        help_text=_("Psychologist this block belongs to")
    )

    block_type = models.CharField(
        _('block type'),
        max_length=20,
        choices=BLOCK_TYPE_CHOICES,
        default='blocked',
    )

    is_recurring = models.BooleanField(
        _('is recurring'),
        default=False,
        help_text=_("Whether the block repeats every week on day_of_week")
    )

    day_of_week = models.IntegerField(
        _('day of week'),
        null=True,
        blank=True,
        validators=[
            MinValueValidator(0, message=_("Day of week must be 0-6 (0=Sunday)")),
            MaxValueValidator(6, message=_("Day of week must be 0-6 (6=Saturday)"))
        ],
        help_text=_("Weekday for recurring blocks (0=Sunday)")
    )

    specific_date = models.DateField(
        _('specific date'),
        null=True,
        blank=True,
        help_text=_("Date for one-off blocks")
    )

    start_time = models.TimeField(_('start time'))
    end_time = models.TimeField(_('end time'))

    label = models.CharField(
        _('label'),
        max_length=200,
        blank=True,
        help_text=_("Short note shown on the psychologist's calendar")
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )
    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('Calendar Block')
        verbose_name_plural = _('Calendar Blocks')
        db_table = 'calendar_blocks'
        indexes = [
            models.Index(fields=['psychologist', 'specific_date']),
            models.Index(fields=['psychologist', 'is_recurring', 'day_of_week']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='block_end_time_after_start_time'
            ),
        ]

    def __str__(self):
        when = self.get_day_name() if self.is_recurring else self.specific_date
        return f"{self.psychologist.display_name} - {self.block_type} {when} {self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"

    def clean(self):
        errors = {}

        if self.start_time and self.end_time and self.end_time <= self.start_time:
            errors['end_time'] = _("End time must be after start time")

        if self.is_recurring:
            if self.day_of_week is None:
                errors['day_of_week'] = _("Recurring blocks need a day of week")
            if self.specific_date:
                errors['specific_date'] = _("Recurring blocks should not have a specific date")
        elif not self.specific_date:
            errors['specific_date'] = _("One-off blocks need a specific date")

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        if not self.is_recurring and self.specific_date:
            self.day_of_week = to_sunday_based_weekday(self.specific_date)
        self.full_clean()
        super().save(*args, **kwargs)

    def get_day_name(self):
        if self.day_of_week is None:
            return ''
        days = [
            _('Sunday'), _('Monday'), _('Tuesday'), _('Wednesday'),
            _('Thursday'), _('Friday'), _('Saturday')
        ]
        return days[self.day_of_week]

    @classmethod
    def get_blocks_for_date(cls, psychologist, target_date):
        """Recurring blocks matching the weekday plus one-off blocks on the exact date"""
        return list(cls.objects.filter(
            models.Q(psychologist=psychologist) &
            (
                models.Q(is_recurring=True, day_of_week=to_sunday_based_weekday(target_date)) |
                models.Q(is_recurring=False, specific_date=target_date)
            )
        ).order_by('start_time'))


class PsychologistPricing(models.Model):
    """
    Prices a psychologist charges. The session price is checked against the
    experience cap when pricing is set up and is not re-validated afterwards.
    """

    psychologist = models.OneToOneField(
        Psychologist,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='pricing',
    )

    session_price = models.DecimalField(
        _('session price'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Price of a single session")
    )
    package_4_price = models.DecimalField(
        _('4-session package price'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Price of a 4-session package period")
    )
    package_8_price = models.DecimalField(
        _('8-session package price'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Price of an 8-session package period")
    )
    session_duration_minutes = models.PositiveIntegerField(
        _('session duration (minutes)'),
        default=50,
    )
    cancellation_policy = models.TextField(
        _('cancellation policy'),
        blank=True,
        help_text=_("Policy text shown to clients")
    )
    currency = models.CharField(
        _('currency'),
        max_length=3,
        default='MXN',
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )
    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('Psychologist Pricing')
        verbose_name_plural = _('Psychologist Pricing')
        db_table = 'psychologist_pricing'

    def __str__(self):
        return f"{self.psychologist.display_name}: {self.session_price} {self.currency}"

    def package_price(self, package_type):
        if package_type == 'package_4':
            return self.package_4_price
        if package_type == 'package_8':
            return self.package_8_price
        raise ValueError(f"Unknown package type: {package_type}")
