# appointments/services/booking.py
from django.db import transaction, IntegrityError
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from datetime import datetime
import logging
from typing import Optional

from core.exceptions import SlotConflictError, InsufficientNoticeError
from psychologists.models import Psychologist
from clients.models import Client
from ..models import Appointment
from .availability import AvailabilityResolver

logger = logging.getLogger(__name__)


class BookingConflictGuard:
    """
    Re-checks a slot at write time and inserts the pending appointment.

    Must run inside the caller's transaction. The psychologist row is locked
    while checking, and the partial unique index on (psychologist, start_time)
    for live appointments rejects whatever still races past the check.
    """

    @staticmethod
    def reserve(psychologist: Psychologist, client: Client, start_time: datetime,
                booking_kind: str = 'single', subscription=None, modality: str = 'online',
                now: Optional[datetime] = None) -> Appointment:
        """
        Raises:
            InsufficientNoticeError: slot starts inside the notice window
            ValidationError: start time is not a slot the calendar offers
            SlotConflictError: slot already taken
        """
        if timezone.is_naive(start_time):
            raise ValidationError({'start_time': _("Start time must include a timezone offset")})

        if start_time < AvailabilityResolver.notice_cutoff(now):
            raise InsufficientNoticeError(
                f"Slot at {start_time.isoformat()} is inside the minimum booking notice window"
            )

        Psychologist.objects.select_for_update().get(pk=psychologist.pk)

        local_date = start_time.astimezone(psychologist.tzinfo).date()
        candidates = {start: end for start, end in AvailabilityResolver.candidate_slots(psychologist, local_date)}
        end_time = candidates.get(start_time)
        if end_time is None:
            raise ValidationError({'start_time': _("The psychologist is not available at this time")})

        overlapping = Appointment.objects.filter(
            psychologist=psychologist,
            start_time__lt=end_time,
            end_time__gt=start_time,
        ).exclude(status='cancelled')
        if overlapping.exists():
            raise SlotConflictError(f"Slot at {start_time.isoformat()} is already booked")

        appointment = Appointment(
            psychologist=psychologist,
            client=client,
            subscription=subscription,
            booking_kind=booking_kind,
            start_time=start_time,
            end_time=end_time,
            modality=modality,
            status='pending',
        )
        try:
            with transaction.atomic():
                appointment.save()
        except IntegrityError:
            logger.info(f"Lost booking race for {psychologist.user.email} at {start_time.isoformat()}")
            raise SlotConflictError(f"Slot at {start_time.isoformat()} is already booked")

        logger.info(f"Reserved {start_time.isoformat()} with {psychologist.user.email} for {client.user.email}")
        return appointment
