# credits/models.py
import uuid
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone

from clients.models import Client
from psychologists.models import Psychologist


class ClientCredit(models.Model):
    """
    Refund-in-kind for a timely single-session cancellation.

    Usable with any psychologist, never expires, and is consumed whole:
    redemption is the only mutation after issue.
    """

    STATUS_CHOICES = [
        ('available', _('Available')),
        ('redeemed', _('Redeemed')),
    ]

    credit_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    client = models.ForeignKey(
        Client,
        on_delete=models.PROTECT,
        related_name='credits',
    )
    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.PROTECT,
        related_name='issued_credits',
        help_text=_("Psychologist of the cancelled session the credit came from")
    )
    amount = models.DecimalField(
        _('amount'),
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
    )
    reason = models.CharField(
        _('reason'),
        max_length=255,
    )
    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='available',
    )
    source_appointment = models.OneToOneField(
        'appointments.Appointment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='issued_credit',
        help_text=_("Cancelled appointment that produced this credit")
    )
    redeemed_for_appointment = models.OneToOneField(
        'appointments.Appointment',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='redeemed_credit',
    )
    redeemed_at = models.DateTimeField(
        _('redeemed at'),
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
        verbose_name = _('Client Credit')
        verbose_name_plural = _('Client Credits')
        db_table = 'client_credits'
        indexes = [
            models.Index(fields=['client', 'status']),
        ]

    def __str__(self):
        return f"Credit {self.credit_id} - {self.amount} ({self.status})"

    def clean(self):
        errors = {}
        if self.status == 'redeemed' and not self.redeemed_at:
            errors['redeemed_at'] = _("Redeemed credits need a redemption time")
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_available(self):
        return self.status == 'available'

    def mark_as_redeemed(self, appointment=None, redeemed_at=None):
        if not self.is_available:
            raise ValidationError(_("Credit has already been redeemed"))
        self.status = 'redeemed'
        self.redeemed_at = redeemed_at or timezone.now()
        self.redeemed_for_appointment = appointment
        self.save(update_fields=['status', 'redeemed_at', 'redeemed_for_appointment', 'updated_at'])
