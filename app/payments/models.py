# payments/models.py
import uuid
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone

from clients.models import Client
from psychologists.models import Psychologist


class Payment(models.Model):
    """
    One payment per booked unit of consumption: a single session or a package
    period. The gateway executes the charge; this record only follows the
    status changes it reports.
    """

    PAYMENT_TYPE_CHOICES = [
        ('single_session', _('Single session')),
        ('package_4', _('4-session package')),
        ('package_8', _('8-session package')),
    ]

    STATUS_CHOICES = [
        ('pending', _('Pending')),
        ('succeeded', _('Succeeded')),
        ('failed', _('Failed')),
        ('cancelled', _('Cancelled')),
        ('refunded', _('Refunded')),
    ]

    FINAL_STATUSES = ('succeeded', 'failed', 'cancelled', 'refunded')

    payment_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text=_("Unique identifier for the payment")
    )

    client = models.ForeignKey(
        Client,
        on_delete=models.PROTECT,
        related_name='payments',
    )
    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.PROTECT,
        related_name='payments',
    )
    appointment = models.ForeignKey(
        'appointments.Appointment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payments',
        help_text=_("Session paid for (single-session payments)")
    )
    subscription = models.ForeignKey(
        'subscriptions.Subscription',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payments',
        help_text=_("Package period paid for (package payments)")
    )

    payment_type = models.CharField(
        _('payment type'),
        max_length=20,
        choices=PAYMENT_TYPE_CHOICES,
    )
    payment_status = models.CharField(
        _('payment status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
    )

    base_amount = models.DecimalField(
        _('base amount'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Price of the session or package")
    )
    platform_fee = models.DecimalField(
        _('platform fee'),
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_("Service fee charged on top of the base amount")
    )
    amount = models.DecimalField(
        _('amount'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Total charged: base amount plus platform fee")
    )
    currency = models.CharField(
        _('currency'),
        max_length=3,
        default='MXN',
    )

    provider_reference = models.CharField(
        _('provider reference'),
        max_length=255,
        blank=True,
        db_index=True,
        help_text=_("Payment intent ID reported by the gateway")
    )
    failure_reason = models.TextField(
        _('failure reason'),
        blank=True,
    )
    paid_at = models.DateTimeField(
        _('paid at'),
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
        verbose_name = _('Payment')
        verbose_name_plural = _('Payments')
        db_table = 'payments'
        indexes = [
            models.Index(fields=['client', 'payment_status']),
            models.Index(fields=['psychologist', 'created_at']),
            models.Index(fields=['payment_status', 'created_at']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount=models.F('base_amount') + models.F('platform_fee')),
                name='payment_amount_is_base_plus_fee'
            ),
        ]

    def __str__(self):
        return f"Payment {self.payment_id} - {self.payment_type} {self.amount} {self.currency} - {self.payment_status}"

    def clean(self):
        errors = {}

        if self.payment_type == 'single_session' and self.subscription_id:
            errors['subscription'] = _("Single-session payments cannot reference a subscription")
        if self.payment_type in ('package_4', 'package_8') and not self.subscription_id:
            errors['subscription'] = _("Package payments must reference a subscription")

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_successful(self):
        return self.payment_status == 'succeeded'

    @property
    def is_package(self):
        return self.payment_type in ('package_4', 'package_8')

    def mark_as_succeeded(self, provider_reference=None, paid_at=None):
        self.payment_status = 'succeeded'
        self.paid_at = paid_at or timezone.now()
        update_fields = ['payment_status', 'paid_at', 'updated_at']
        if provider_reference:
            self.provider_reference = provider_reference
            update_fields.append('provider_reference')
        self.save(update_fields=update_fields)

    def mark_as_failed(self, failure_reason=None):
        self.payment_status = 'failed'
        update_fields = ['payment_status', 'updated_at']
        if failure_reason:
            self.failure_reason = failure_reason
            update_fields.append('failure_reason')
        self.save(update_fields=update_fields)

    def mark_as_cancelled(self):
        self.payment_status = 'cancelled'
        self.save(update_fields=['payment_status', 'updated_at'])
