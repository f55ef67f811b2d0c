# subscriptions/models.py
import uuid
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone

from clients.models import Client
from psychologists.models import Psychologist


class Subscription(models.Model):
    """
    Prepaid 4- or 8-session package with one psychologist, renewed every period.

    Sessions available in the current period are
    ``sessions_total + rollover_sessions - sessions_used``.
    """

    PACKAGE_TYPE_CHOICES = [
        ('package_4', _('4 sessions')),
        ('package_8', _('8 sessions')),
    ]

    PACKAGE_SIZES = {
        'package_4': 4,
        'package_8': 8,
    }

    STATUS_CHOICES = [
        ('active', _('Active')),
        ('payment_failed', _('Payment failed')),
        ('cancelled', _('Cancelled')),
    ]

    subscription_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.PROTECT,
        related_name='subscriptions',
        help_text=_("Package credits are only usable with this psychologist")
    )
    client = models.ForeignKey(
        Client,
        on_delete=models.PROTECT,
        related_name='subscriptions',
    )

    package_type = models.CharField(
        _('package type'),
        max_length=20,
        choices=PACKAGE_TYPE_CHOICES,
    )
    package_price = models.DecimalField(
        _('package price'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Price per period, frozen at purchase")
    )

    sessions_total = models.PositiveIntegerField(_('sessions per period'))
    sessions_used = models.PositiveIntegerField(_('sessions used'), default=0)
    rollover_sessions = models.PositiveIntegerField(
        _('rollover sessions'),
        default=0,
        help_text=_("Unused sessions carried over from the previous period")
    )

    current_period_start = models.DateTimeField(_('current period start'))
    current_period_end = models.DateTimeField(_('current period end'))
    cancel_at_period_end = models.BooleanField(
        _('cancel at period end'),
        default=False,
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='active',
    )
    cancelled_at = models.DateTimeField(
        _('cancelled at'),
        null=True,
        blank=True,
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
        verbose_name = _('Subscription')
        verbose_name_plural = _('Subscriptions')
        db_table = 'subscriptions'
        indexes = [
            models.Index(fields=['client', 'psychologist', 'status']),
            models.Index(fields=['status', 'current_period_end']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    sessions_used__lte=models.F('sessions_total') + models.F('rollover_sessions')
                ),
                name='subscription_sessions_used_within_allowance'
            ),
            models.CheckConstraint(
                condition=models.Q(current_period_end__gt=models.F('current_period_start')),
                name='subscription_period_end_after_start'
            ),
        ]

    def __str__(self):
        return f"{self.client.display_name} - {self.psychologist.display_name} {self.package_type} ({self.status})"

    def clean(self):
        errors = {}
        expected = self.PACKAGE_SIZES.get(self.package_type)
        if expected and self.sessions_total != expected:
            errors['sessions_total'] = _("Sessions per period must match the package size")
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def sessions_available(self):
        return max(self.sessions_total + self.rollover_sessions - self.sessions_used, 0)

    @property
    def price_per_session(self):
        return (self.package_price / self.sessions_total).quantize(Decimal('0.01'))

    def period_has_ended(self, now=None):
        return (now or timezone.now()) >= self.current_period_end

    @property
    def is_active(self):
        return self.status == 'active'

    def record_history(self, event_type, sessions_used=None, rollover_sessions=None,
                       sessions_discarded=0, amount_charged=Decimal('0.00')):
        return SubscriptionHistory.objects.create(
            subscription=self,
            event_type=event_type,
            period_start=self.current_period_start,
            period_end=self.current_period_end,
            sessions_used=self.sessions_used if sessions_used is None else sessions_used,
            rollover_sessions=self.rollover_sessions if rollover_sessions is None else rollover_sessions,
            sessions_discarded=sessions_discarded,
            amount_charged=amount_charged,
        )

    def mark_as_payment_failed(self):
        self.status = 'payment_failed'
        self.save(update_fields=['status', 'updated_at'])
        self.record_history('payment_failed')

    def mark_as_cancelled(self, cancelled_at=None):
        self.status = 'cancelled'
        self.cancelled_at = cancelled_at or timezone.now()
        self.save(update_fields=['status', 'cancelled_at', 'updated_at'])
        self.record_history('cancelled')


class SubscriptionHistory(models.Model):
    """
    Audit trail of subscription lifecycle events
    """

    EVENT_CHOICES = [
        ('created', _('Created')),
        ('renewal', _('Renewal')),
        ('payment_failed', _('Payment failed')),
        ('cancel_scheduled', _('Cancellation scheduled')),
        ('cancelled', _('Cancelled')),
    ]

    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.CASCADE,
        related_name='history',
    )
    event_type = models.CharField(
        _('event type'),
        max_length=20,
        choices=EVENT_CHOICES,
    )
    period_start = models.DateTimeField(_('period start'))
    period_end = models.DateTimeField(_('period end'))
    sessions_used = models.PositiveIntegerField(
        _('sessions used'),
        default=0,
        help_text=_("Sessions used in the period that just closed")
    )
    rollover_sessions = models.PositiveIntegerField(_('rollover sessions'), default=0)
    sessions_discarded = models.PositiveIntegerField(_('sessions discarded'), default=0)
    amount_charged = models.DecimalField(
        _('amount charged'),
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
    )
    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('Subscription History')
        verbose_name_plural = _('Subscription History')
        db_table = 'subscription_history'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.subscription_id} {self.event_type} {self.period_start:%Y-%m-%d}"
