# revenue/models.py
import uuid
from decimal import Decimal
from django.db import models
from django.db.models import Sum
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone

from psychologists.models import Psychologist


class DeferredRevenue(models.Model):
    """
    Money collected (or credit applied) but not yet earned.

    Single-session and credit rows are recognized whole on completion. Package
    rows are drawn down one session at a time and flip ``recognized`` only when
    nothing is left deferred.
    """

    deferred_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.PROTECT,
        related_name='deferred_revenue',
    )
    payment = models.OneToOneField(
        'payments.Payment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='deferred_revenue',
    )
    subscription = models.ForeignKey(
        'subscriptions.Subscription',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='deferred_revenue',
    )
    appointment = models.ForeignKey(
        'appointments.Appointment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='deferred_revenue',
        help_text=_("Session the amount is deferred for (single-session and credit bookings)")
    )
    client_credit = models.OneToOneField(
        'credits.ClientCredit',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='deferred_revenue',
    )

    total_amount = models.DecimalField(
        _('total amount'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    deferred_amount = models.DecimalField(
        _('deferred amount'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    recognized_amount = models.DecimalField(
        _('recognized amount'),
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
    )
    sessions_total = models.PositiveIntegerField(_('sessions covered'), default=1)
    sessions_recognized = models.PositiveIntegerField(_('sessions recognized'), default=0)
    recognized = models.BooleanField(_('recognized'), default=False)
    recognized_at = models.DateTimeField(_('recognized at'), null=True, blank=True)

    voided_at = models.DateTimeField(_('voided at'), null=True, blank=True)
    void_reason = models.CharField(_('void reason'), max_length=255, blank=True)

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )
    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('Deferred Revenue')
        verbose_name_plural = _('Deferred Revenue')
        db_table = 'deferred_revenue'
        indexes = [
            models.Index(fields=['psychologist', 'recognized']),
            models.Index(fields=['subscription', 'created_at']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(payment__isnull=False) | models.Q(client_credit__isnull=False),
                name='deferred_revenue_has_source'
            ),
            models.CheckConstraint(
                condition=models.Q(deferred_amount__lte=models.F('total_amount')),
                name='deferred_amount_within_total'
            ),
        ]

    def __str__(self):
        return f"Deferred {self.deferred_amount}/{self.total_amount} ({'recognized' if self.recognized else 'open'})"

    def clean(self):
        errors = {}
        if self.recognized and self.deferred_amount != Decimal('0.00'):
            errors['deferred_amount'] = _("Recognized rows cannot keep a deferred balance")
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_void(self):
        return self.voided_at is not None

    @property
    def price_per_session(self):
        return (self.total_amount / self.sessions_total).quantize(Decimal('0.01'))

    def mark_as_void(self, reason):
        self.voided_at = timezone.now()
        self.void_reason = reason
        self.save(update_fields=['voided_at', 'void_reason', 'updated_at'])


class Wallet(models.Model):
    """
    Balance holder for the platform (one admin wallet) and each psychologist.
    The balance is always derived from the transaction ledger.
    """

    OWNER_TYPE_CHOICES = [
        ('admin', _('Platform')),
        ('psychologist', _('Psychologist')),
    ]

    wallet_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    owner_type = models.CharField(
        _('owner type'),
        max_length=20,
        choices=OWNER_TYPE_CHOICES,
    )
    psychologist = models.OneToOneField(
        Psychologist,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='wallet',
    )
    currency = models.CharField(_('currency'), max_length=3, default='MXN')
    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('Wallet')
        verbose_name_plural = _('Wallets')
        db_table = 'wallets'
        constraints = [
            models.UniqueConstraint(
                fields=['owner_type'],
                condition=models.Q(owner_type='admin'),
                name='single_admin_wallet'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(owner_type='admin', psychologist__isnull=True) |
                    models.Q(owner_type='psychologist', psychologist__isnull=False)
                ),
                name='wallet_owner_matches_type'
            ),
        ]

    def __str__(self):
        if self.owner_type == 'admin':
            return "Platform wallet"
        return f"Wallet - {self.psychologist.display_name}"

    @property
    def balance(self):
        total = self.transactions.aggregate(total=Sum('amount'))['total'] or Decimal('0')
        return Decimal(total).quantize(Decimal('0.01'))


class WalletTransaction(models.Model):
    """
    Append-only wallet ledger entry. Rows are never updated or deleted.
    """

    CATEGORY_CHOICES = [
        ('session_commission', _('Session commission')),
        ('session_earning', _('Session earning')),
        ('platform_fee', _('Platform service fee')),
    ]

    RECOGNITION_CATEGORIES = ('session_commission', 'session_earning')

    transaction_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.PROTECT,
        related_name='transactions',
    )
    category = models.CharField(
        _('category'),
        max_length=30,
        choices=CATEGORY_CHOICES,
    )
    amount = models.DecimalField(
        _('amount'),
        max_digits=10,
        decimal_places=2,
    )
    appointment = models.ForeignKey(
        'appointments.Appointment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='wallet_transactions',
    )
    subscription = models.ForeignKey(
        'subscriptions.Subscription',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='wallet_transactions',
    )
    payment = models.ForeignKey(
        'payments.Payment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='wallet_transactions',
    )
    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='attributed_transactions',
        help_text=_("Psychologist whose session or payment produced this entry")
    )
    description = models.CharField(_('description'), max_length=255, blank=True)
    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('Wallet Transaction')
        verbose_name_plural = _('Wallet Transactions')
        db_table = 'wallet_transactions'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['wallet', 'created_at']),
            models.Index(fields=['appointment']),
            models.Index(fields=['psychologist', 'category']),
        ]
        constraints = [
            # At most one recognition entry per wallet and appointment
            models.UniqueConstraint(
                fields=['wallet', 'appointment'],
                condition=models.Q(category__in=['session_commission', 'session_earning']),
                name='unique_recognition_per_wallet_appointment'
            ),
            models.UniqueConstraint(
                fields=['wallet', 'payment'],
                condition=models.Q(category='platform_fee'),
                name='unique_platform_fee_per_payment'
            ),
        ]

    def __str__(self):
        return f"{self.category} {self.amount} -> {self.wallet}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError(_("Wallet transactions are append-only"))
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(_("Wallet transactions are append-only"))
