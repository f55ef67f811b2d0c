# psychologists/tests/test_models.py
from django.test import TestCase
from django.core.exceptions import ValidationError
from datetime import date, time

from psychologists.models import AvailabilityRule, CalendarBlock, to_sunday_based_weekday
from factories.psychologists import PsychologistFactory, AvailabilityRuleFactory, CalendarBlockFactory


class AvailabilityRuleModelTest(TestCase):

    def setUp(self):
        self.psychologist = PsychologistFactory()

    def test_weekday_conversion_is_sunday_based(self):
        self.assertEqual(to_sunday_based_weekday(date(2026, 10, 18)), 0)  # Sunday
        self.assertEqual(to_sunday_based_weekday(date(2026, 10, 19)), 1)  # Monday
        self.assertEqual(to_sunday_based_weekday(date(2026, 10, 24)), 6)  # Saturday

    def test_end_time_must_follow_start_time(self):
        with self.assertRaises(ValidationError) as ctx:
            AvailabilityRuleFactory(psychologist=self.psychologist, start_time=time(13, 0), end_time=time(9, 0))
        self.assertIn('end_time', ctx.exception.message_dict)

    def test_window_must_fit_one_session(self):
        with self.assertRaises(ValidationError) as ctx:
            AvailabilityRuleFactory(psychologist=self.psychologist, start_time=time(9, 0), end_time=time(9, 30))
        self.assertIn('end_time', ctx.exception.message_dict)

    def test_overlapping_weekly_rules_are_rejected(self):
        AvailabilityRuleFactory(psychologist=self.psychologist, day_of_week=1)

        with self.assertRaises(ValidationError) as ctx:
            AvailabilityRuleFactory(
                psychologist=self.psychologist, day_of_week=1,
                start_time=time(12, 0), end_time=time(15, 0)
            )
        self.assertIn('start_time', ctx.exception.message_dict)

    def test_adjacent_rules_do_not_overlap(self):
        AvailabilityRuleFactory(psychologist=self.psychologist, day_of_week=1)
        rule = AvailabilityRuleFactory(
            psychologist=self.psychologist, day_of_week=1,
            start_time=time(13, 0), end_time=time(17, 0)
        )
        self.assertTrue(rule.is_active)

    def test_exception_rule_takes_weekday_of_its_date(self):
        rule = AvailabilityRuleFactory(
            psychologist=self.psychologist, day_of_week=0,
            is_exception=True, specific_date=date(2026, 10, 21)
        )
        self.assertEqual(rule.day_of_week, 3)

    def test_exception_rule_requires_date(self):
        with self.assertRaises(ValidationError) as ctx:
            AvailabilityRuleFactory(psychologist=self.psychologist, is_exception=True, specific_date=None)
        self.assertIn('specific_date', ctx.exception.message_dict)

    def test_exception_rules_replace_weekly_rules(self):
        AvailabilityRuleFactory(psychologist=self.psychologist, day_of_week=1)
        monday = date(2026, 10, 26)
        exception = AvailabilityRuleFactory(
            psychologist=self.psychologist, is_exception=True, specific_date=monday,
            start_time=time(15, 0), end_time=time(17, 0)
        )

        self.assertEqual(AvailabilityRule.get_rules_for_date(self.psychologist, monday), [exception])
        self.assertEqual(len(AvailabilityRule.get_rules_for_date(self.psychologist, date(2026, 11, 2))), 1)

    def test_supersede_keeps_history(self):
        rule = AvailabilityRuleFactory(psychologist=self.psychologist)
        rule.supersede()

        rule.refresh_from_db()
        self.assertFalse(rule.is_active)
        self.assertEqual(AvailabilityRule.objects.filter(psychologist=self.psychologist).count(), 1)

    def test_superseded_rule_frees_its_window(self):
        rule = AvailabilityRuleFactory(psychologist=self.psychologist)
        rule.supersede()

        replacement = AvailabilityRuleFactory(psychologist=self.psychologist)
        self.assertTrue(replacement.is_active)

    def test_supersede_twice_is_rejected(self):
        rule = AvailabilityRuleFactory(psychologist=self.psychologist)
        rule.supersede()

        with self.assertRaises(ValidationError):
            rule.supersede()


class CalendarBlockModelTest(TestCase):

    def setUp(self):
        self.psychologist = PsychologistFactory()

    def test_one_off_block_requires_date(self):
        with self.assertRaises(ValidationError) as ctx:
            CalendarBlockFactory(psychologist=self.psychologist)
        self.assertIn('specific_date', ctx.exception.message_dict)

    def test_recurring_block_requires_weekday(self):
        with self.assertRaises(ValidationError) as ctx:
            CalendarBlockFactory(psychologist=self.psychologist, is_recurring=True)
        self.assertIn('day_of_week', ctx.exception.message_dict)

    def test_blocks_for_date(self):
        monday = date(2026, 10, 26)
        one_off = CalendarBlockFactory(psychologist=self.psychologist, specific_date=monday)
        recurring = CalendarBlockFactory(
            psychologist=self.psychologist, is_recurring=True, day_of_week=1,
            start_time=time(16, 0), end_time=time(17, 0)
        )
        CalendarBlockFactory(psychologist=self.psychologist, specific_date=date(2026, 10, 27))

        self.assertEqual(CalendarBlock.get_blocks_for_date(self.psychologist, monday), [one_off, recurring])
        self.assertEqual(CalendarBlock.get_blocks_for_date(self.psychologist, date(2026, 11, 2)), [recurring])
