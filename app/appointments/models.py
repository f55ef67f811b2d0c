# appointments/models.py
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from django.utils import timezone

from core.exceptions import InvalidTransitionError
from psychologists.models import Psychologist
from clients.models import Client


class Appointment(models.Model):
    """
    A booked session between a client and a psychologist.

    pending -> confirmed -> completed, and pending|confirmed -> cancelled|no_show.
    completed, cancelled and no_show are terminal. Appointments are never deleted.
    """

    STATUS_CHOICES = [
        ('pending', _('Pending')),
        ('confirmed', _('Confirmed')),
        ('completed', _('Completed')),
        ('cancelled', _('Cancelled')),
        ('no_show', _('No Show')),
    ]

    TERMINAL_STATUSES = ('completed', 'cancelled', 'no_show')

    MODALITY_CHOICES = [
        ('online', _('Online')),
        ('in_person', _('In person')),
    ]

    BOOKING_KIND_CHOICES = [
        ('single', _('Single session')),
        ('package', _('Package session')),
        ('credit', _('Paid with client credit')),
    ]

    appointment_id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text=_("Unique identifier for the appointment")
    )

    psychologist = models.ForeignKey(
        Psychologist,
        on_delete=models.PROTECT,
        related_name='appointments',
        help_text=_("Psychologist providing the session")
    )

    client = models.ForeignKey(
        Client,
        on_delete=models.PROTECT,
        related_name='appointments',
        help_text=_("Client attending the session")
    )

    subscription = models.ForeignKey(
        'subscriptions.Subscription',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='appointments',
        help_text=_("Package the session was booked from, if any")
    )

    booking_kind = models.CharField(
        _('booking kind'),
        max_length=20,
        choices=BOOKING_KIND_CHOICES,
        default='single',
    )

    start_time = models.DateTimeField(
        _('start time'),
        help_text=_("When the session starts")
    )

    end_time = models.DateTimeField(
        _('end time'),
        help_text=_("When the session ends")
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending',
    )

    modality = models.CharField(
        _('modality'),
        max_length=20,
        choices=MODALITY_CHOICES,
        default='online',
    )

    # Cancellation audit
    cancelled_by = models.ForeignKey(
        'users.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='cancelled_appointments',
        help_text=_("Who cancelled the appointment")
    )
    cancellation_reason = models.TextField(
        _('cancellation reason'),
        blank=True,
    )
    cancelled_at = models.DateTimeField(
        _('cancelled at'),
        null=True,
        blank=True,
    )

    completed_at = models.DateTimeField(
        _('completed at'),
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
        verbose_name = _('Appointment')
        verbose_name_plural = _('Appointments')
        db_table = 'appointments'
        indexes = [
            models.Index(fields=['psychologist', 'start_time']),
            models.Index(fields=['client', 'start_time']),
            models.Index(fields=['status', 'start_time']),
            models.Index(fields=['subscription']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F('start_time')),
                name='appointment_end_after_start'
            ),
            # One live appointment per psychologist and start time
            models.UniqueConstraint(
                fields=['psychologist', 'start_time'],
                condition=~models.Q(status='cancelled'),
                name='unique_live_appointment_per_slot'
            ),
        ]

    def __str__(self):
        return f"{self.client.display_name} - {self.psychologist.display_name} - {self.start_time.strftime('%Y-%m-%d %H:%M')} ({self.status})"

    def clean(self):
        errors = {}

        if self.start_time and self.end_time and self.end_time <= self.start_time:
            errors['end_time'] = _("End time must be after start time")

        if self.booking_kind == 'package' and not self.subscription_id:
            errors['subscription'] = _("Package sessions must reference a subscription")

        if self.subscription_id and self.subscription.psychologist_id != self.psychologist_id:
            errors['subscription'] = _("Package sessions can only be booked with the package's psychologist")

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        # Uniqueness is enforced by the database inside the reservation transaction
        self.full_clean(validate_constraints=False)
        super().save(*args, **kwargs)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_package_bound(self):
        return self.subscription_id is not None

    def hours_before_start(self, now=None):
        now = now or timezone.now()
        return (self.start_time - now).total_seconds() / 3600

    def can_transition_to(self, new_status):
        allowed = {
            'confirmed': ('pending',),
            'completed': ('confirmed',),
            'cancelled': ('pending', 'confirmed'),
            'no_show': ('pending', 'confirmed'),
        }
        return self.status in allowed.get(new_status, ())

    def _ensure_transition(self, new_status):
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Appointment {self.appointment_id} cannot move from {self.status} to {new_status}"
            )

    def mark_as_confirmed(self):
        self._ensure_transition('confirmed')
        self.status = 'confirmed'
        self.save(update_fields=['status', 'updated_at'])

    def mark_as_completed(self, completed_at=None):
        self._ensure_transition('completed')
        self.status = 'completed'
        self.completed_at = completed_at or timezone.now()
        self.save(update_fields=['status', 'completed_at', 'updated_at'])

    def mark_as_cancelled(self, cancelled_by=None, reason='', cancelled_at=None):
        self._ensure_transition('cancelled')
        self.status = 'cancelled'
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason or ''
        self.cancelled_at = cancelled_at or timezone.now()
        self.save(update_fields=['status', 'cancelled_by', 'cancellation_reason', 'cancelled_at', 'updated_at'])

    def mark_as_no_show(self):
        self._ensure_transition('no_show')
        self.status = 'no_show'
        self.save(update_fields=['status', 'updated_at'])
