# appointments/tests/test_availability.py
from django.test import TestCase
from django.core.exceptions import ValidationError
from datetime import time, timedelta

from appointments.models import Appointment
from appointments.services import AvailabilityResolver
from factories.psychologists import AvailabilityRuleFactory, CalendarBlockFactory
from core.tests.helpers import MarketplaceTestMixin, MONDAY, at


class AvailabilityResolverTests(MarketplaceTestMixin, TestCase):
    """Slots generated from Monday 09:00-13:00"""

    def early_monday(self):
        # Well before the 6 hour notice cutoff reaches 09:00
        return self.slot(9) - timedelta(days=1)

    def test_lists_hourly_slots_inside_rule(self):
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.early_monday()
        )
        self.assertEqual(slots, [self.slot(9), self.slot(10), self.slot(11), self.slot(12)])

    def test_booked_appointment_removes_its_slot(self):
        Appointment.objects.create(
            psychologist=self.psychologist,
            client=self.client_profile,
            start_time=self.slot(10),
            end_time=self.slot(10) + timedelta(minutes=50),
            status='confirmed',
        )
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.early_monday()
        )
        self.assertEqual(slots, [self.slot(9), self.slot(11), self.slot(12)])

    def test_cancelled_appointment_frees_its_slot(self):
        Appointment.objects.create(
            psychologist=self.psychologist,
            client=self.client_profile,
            start_time=self.slot(10),
            end_time=self.slot(10) + timedelta(minutes=50),
            status='cancelled',
        )
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.early_monday()
        )
        self.assertIn(self.slot(10), slots)

    def test_slots_inside_minimum_notice_are_dropped(self):
        # 04:00 + 6h notice: 09:00 is too soon, 10:00 is exactly on the cutoff
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.slot(4)
        )
        self.assertEqual(slots, [self.slot(10), self.slot(11), self.slot(12)])

    def test_exception_rule_replaces_weekly_rules(self):
        AvailabilityRuleFactory(
            psychologist=self.psychologist,
            is_exception=True,
            specific_date=self.monday,
            start_time=time(15, 0),
            end_time=time(17, 0),
        )
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.early_monday()
        )
        self.assertEqual(slots, [self.slot(15), self.slot(16)])

        # The following Monday still uses the weekly rule
        next_monday = self.monday + timedelta(days=7)
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, next_monday, now=self.early_monday()
        )
        self.assertEqual(len(slots), 4)

    def test_superseded_rule_is_ignored(self):
        self.rule.supersede()
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.early_monday()
        )
        self.assertEqual(slots, [])

    def test_one_off_block_removes_overlapping_slots(self):
        CalendarBlockFactory(
            psychologist=self.psychologist,
            specific_date=self.monday,
            start_time=time(10, 30),
            end_time=time(11, 15),
        )
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.early_monday()
        )
        self.assertEqual(slots, [self.slot(9), self.slot(12)])

    def test_recurring_block_applies_every_week(self):
        CalendarBlockFactory(
            psychologist=self.psychologist,
            is_recurring=True,
            day_of_week=MONDAY,
            start_time=time(12, 0),
            end_time=time(12, 30),
        )
        for target in (self.monday, self.monday + timedelta(days=7)):
            slots = AvailabilityResolver.list_available_slots(
                self.psychologist.user.id, target, now=self.early_monday()
            )
            self.assertNotIn(at(target, 12), slots)
            self.assertEqual(len(slots), 3)

    def test_day_without_rules_has_no_slots(self):
        tuesday = self.monday + timedelta(days=1)
        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, tuesday, now=self.early_monday()
        )
        self.assertEqual(slots, [])

    def test_wall_clock_times_use_psychologist_timezone(self):
        self.psychologist.user.user_timezone = 'America/Mexico_City'
        self.psychologist.user.save()

        slots = AvailabilityResolver.list_available_slots(
            self.psychologist.user.id, self.monday, now=self.early_monday()
        )
        self.assertEqual(slots[0], at(self.monday, 9, tz='America/Mexico_City'))
        self.assertEqual(len(slots), 4)

    def test_range_returns_every_date(self):
        result = AvailabilityResolver.list_available_slots_for_range(
            self.psychologist.user.id, self.monday, self.monday + timedelta(days=6),
            now=self.early_monday()
        )
        self.assertEqual(len(result), 7)
        self.assertEqual(len(result[self.monday]), 4)
        self.assertEqual(sum(len(slots) for slots in result.values()), 4)

    def test_range_rejects_reversed_dates(self):
        with self.assertRaises(ValidationError):
            AvailabilityResolver.list_available_slots_for_range(
                self.psychologist.user.id, self.monday, self.monday - timedelta(days=1)
            )

    def test_range_rejects_long_ranges(self):
        with self.assertRaises(ValidationError):
            AvailabilityResolver.list_available_slots_for_range(
                self.psychologist.user.id, self.monday, self.monday + timedelta(days=40)
            )
