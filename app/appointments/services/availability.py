# appointments/services/availability.py
from django.conf import settings
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django.core.exceptions import ValidationError
from datetime import datetime, date, time, timedelta
import logging
from typing import List, Dict, Tuple, Optional

from psychologists.models import Psychologist, AvailabilityRule, CalendarBlock, PsychologistPricing
from psychologists.services import ProfileService
from ..models import Appointment

logger = logging.getLogger(__name__)

Interval = Tuple[datetime, datetime]


class AvailabilityResolver:
    """
    Turns availability rules and calendar blocks into bookable slot starts.

    Pure read: nothing is cached or written, so every call reflects the
    bookings committed at that moment.
    """

    @staticmethod
    def session_duration(psychologist: Psychologist) -> timedelta:
        pricing = PsychologistPricing.objects.filter(psychologist=psychologist).first()
        minutes = pricing.session_duration_minutes if pricing else settings.BOOKING_POLICY['SESSION_DURATION_MINUTES']
        return timedelta(minutes=minutes)

    @staticmethod
    def notice_cutoff(now: Optional[datetime] = None) -> datetime:
        now = now or timezone.now()
        return now + timedelta(hours=settings.BOOKING_POLICY['MINIMUM_NOTICE_HOURS'])

    @staticmethod
    def _local(target_date: date, wall_time: time, tz) -> datetime:
        return datetime.combine(target_date, wall_time, tzinfo=tz)

    @staticmethod
    def candidate_slots(psychologist: Psychologist, target_date: date) -> List[Interval]:
        """
        Slots the rules offer on a date, minus calendar blocks.
        Ignores booking notice and existing appointments.
        """
        tz = psychologist.tzinfo
        duration = AvailabilityResolver.session_duration(psychologist)
        step = timedelta(minutes=settings.BOOKING_POLICY['SLOT_INTERVAL_MINUTES'])

        blocks = [
            (AvailabilityResolver._local(target_date, block.start_time, tz),
             AvailabilityResolver._local(target_date, block.end_time, tz))
            for block in CalendarBlock.get_blocks_for_date(psychologist, target_date)
        ]

        slots = []
        for rule in AvailabilityRule.get_rules_for_date(psychologist, target_date):
            cursor = AvailabilityResolver._local(target_date, rule.start_time, tz)
            rule_end = AvailabilityResolver._local(target_date, rule.end_time, tz)
            while cursor + duration <= rule_end:
                slot = (cursor, cursor + duration)
                if not AvailabilityResolver._overlaps_any(slot, blocks):
                    slots.append(slot)
                cursor += step

        return sorted(set(slots))

    @staticmethod
    def _overlaps_any(slot: Interval, busy: List[Interval]) -> bool:
        start, end = slot
        return any(start < busy_end and end > busy_start for busy_start, busy_end in busy)

    @staticmethod
    def _booked_intervals(psychologist: Psychologist, target_date: date) -> List[Interval]:
        tz = psychologist.tzinfo
        day_start = AvailabilityResolver._local(target_date, time(0, 0), tz)
        day_end = day_start + timedelta(days=1)
        return list(Appointment.objects.filter(
            psychologist=psychologist,
            start_time__lt=day_end,
            end_time__gt=day_start,
        ).exclude(status='cancelled').values_list('start_time', 'end_time'))

    @staticmethod
    def list_available_slots(psychologist_id, target_date: date, now: Optional[datetime] = None) -> List[datetime]:
        """
        Ordered slot start times still bookable on ``target_date``.

        A slot is dropped when it starts inside the minimum notice window or
        overlaps a live appointment or a calendar block.
        """
        psychologist = ProfileService.get_psychologist_by_id(psychologist_id)
        return AvailabilityResolver.available_slots_for(psychologist, target_date, now)

    @staticmethod
    def available_slots_for(psychologist: Psychologist, target_date: date,
                            now: Optional[datetime] = None) -> List[datetime]:
        cutoff = AvailabilityResolver.notice_cutoff(now)
        booked = AvailabilityResolver._booked_intervals(psychologist, target_date)

        available = [
            start for start, end in AvailabilityResolver.candidate_slots(psychologist, target_date)
            if start >= cutoff and not AvailabilityResolver._overlaps_any((start, end), booked)
        ]
        logger.debug(f"{len(available)} slots available for {psychologist.user.email} on {target_date}")
        return available

    @staticmethod
    def list_available_slots_for_range(psychologist_id, date_from: date, date_to: date,
                                       now: Optional[datetime] = None) -> Dict[date, List[datetime]]:
        """
        Slots per date for an inclusive date range.

        Raises:
            ValidationError: reversed range or longer than MAX_RANGE_DAYS
        """
        if date_to < date_from:
            raise ValidationError({'date_to': _("End date must be on or after start date")})
        max_days = settings.BOOKING_POLICY['MAX_RANGE_DAYS']
        if (date_to - date_from).days + 1 > max_days:
            raise ValidationError({'date_to': _("Date range cannot exceed %(days)s days") % {'days': max_days}})

        psychologist = ProfileService.get_psychologist_by_id(psychologist_id)
        result = {}
        current = date_from
        while current <= date_to:
            result[current] = AvailabilityResolver.available_slots_for(psychologist, current, now)
            current += timedelta(days=1)
        return result
