# psychologists/tests/test_services.py
from django.test import TestCase
from django.core.exceptions import ValidationError
from decimal import Decimal
from datetime import time

from core.exceptions import AccessDeniedError
from users.identity import RequestIdentity
from psychologists.models import AvailabilityRule, CalendarBlock
from psychologists.services import (
    ProfileService,
    PricingService,
    AvailabilityManagementService,
    PsychologistNotFoundError,
    PricingNotConfiguredError,
)
from factories.users import ClientFactory, AdminUserFactory
from factories.psychologists import PsychologistFactory, AvailabilityRuleFactory
from core.tests.helpers import next_weekday, MONDAY


class ProfileServiceTest(TestCase):

    def test_get_psychologist_by_id(self):
        psychologist = PsychologistFactory()
        self.assertEqual(ProfileService.get_psychologist_by_id(psychologist.user.id), psychologist)

    def test_unknown_or_malformed_id_raises_not_found(self):
        with self.assertRaises(PsychologistNotFoundError):
            ProfileService.get_psychologist_by_id('00000000-0000-0000-0000-000000000001')
        with self.assertRaises(PsychologistNotFoundError):
            ProfileService.get_psychologist_by_id('not-a-uuid')


class PricingServiceTest(TestCase):

    def test_price_caps_by_experience(self):
        self.assertEqual(PricingService.get_price_cap(0), Decimal('700.00'))
        self.assertEqual(PricingService.get_price_cap(2), Decimal('700.00'))
        self.assertEqual(PricingService.get_price_cap(3), Decimal('1000.00'))
        self.assertEqual(PricingService.get_price_cap(4), Decimal('1000.00'))
        self.assertEqual(PricingService.get_price_cap(5), Decimal('2000.00'))
        self.assertEqual(PricingService.get_price_cap(30), Decimal('2000.00'))

    def test_set_pricing_within_cap(self):
        psychologist = PsychologistFactory(years_of_experience=3)

        pricing = PricingService.set_pricing(psychologist, '1000', '3600', '7000')

        self.assertEqual(pricing.session_price, Decimal('1000'))
        self.assertEqual(pricing.session_duration_minutes, 50)
        self.assertEqual(pricing.currency, 'MXN')
        self.assertIn('24 hours', pricing.cancellation_policy)

    def test_set_pricing_above_cap(self):
        psychologist = PsychologistFactory(years_of_experience=2)

        with self.assertRaises(ValidationError) as ctx:
            PricingService.set_pricing(psychologist, '701', '2400', '4800')
        self.assertIn('session_price', ctx.exception.message_dict)

    def test_set_pricing_rejects_non_positive_prices(self):
        psychologist = PsychologistFactory()

        with self.assertRaises(ValidationError) as ctx:
            PricingService.set_pricing(psychologist, '800', '0', '5600')
        self.assertIn('package_4_price', ctx.exception.message_dict)

    def test_set_pricing_replaces_existing(self):
        psychologist = PsychologistFactory()
        PricingService.set_pricing(psychologist, '800', '3000', '5600')
        PricingService.set_pricing(psychologist, '900', '3200', '6000')

        self.assertEqual(PricingService.get_pricing(psychologist).session_price, Decimal('900'))

    def test_get_pricing_not_configured(self):
        with self.assertRaises(PricingNotConfiguredError):
            PricingService.get_pricing(PsychologistFactory())


class AvailabilityManagementServiceTest(TestCase):

    def setUp(self):
        self.psychologist = PsychologistFactory()
        self.identity = RequestIdentity.from_user(self.psychologist.user)

    def test_create_weekly_rule(self):
        rule = AvailabilityManagementService.create_rule(
            self.identity, self.psychologist, day_of_week=2, start_time=time(9, 0), end_time=time(12, 0)
        )
        self.assertFalse(rule.is_exception)
        self.assertEqual(rule.day_of_week, 2)

    def test_create_exception_rule(self):
        target = next_weekday(MONDAY)
        rule = AvailabilityManagementService.create_rule(
            self.identity, self.psychologist, start_time=time(15, 0), end_time=time(18, 0), specific_date=target
        )
        self.assertTrue(rule.is_exception)
        self.assertEqual(rule.day_of_week, MONDAY)

    def test_rule_needs_a_day(self):
        with self.assertRaises(ValidationError):
            AvailabilityManagementService.create_rule(
                self.identity, self.psychologist, start_time=time(9, 0), end_time=time(12, 0)
            )

    def test_other_psychologist_cannot_edit(self):
        other = RequestIdentity.from_user(PsychologistFactory().user)
        with self.assertRaises(AccessDeniedError):
            AvailabilityManagementService.create_rule(
                other, self.psychologist, day_of_week=2, start_time=time(9, 0), end_time=time(12, 0)
            )

    def test_client_cannot_edit(self):
        client = RequestIdentity.from_user(ClientFactory().user)
        rule = AvailabilityRuleFactory(psychologist=self.psychologist)
        with self.assertRaises(AccessDeniedError):
            AvailabilityManagementService.supersede_rule(client, rule)

    def test_admin_can_edit(self):
        admin = RequestIdentity.from_user(AdminUserFactory())
        rule = AvailabilityManagementService.create_rule(
            admin, self.psychologist, day_of_week=4, start_time=time(9, 0), end_time=time(12, 0)
        )
        self.assertEqual(rule.psychologist, self.psychologist)

    def test_replace_rule(self):
        rule = AvailabilityRuleFactory(psychologist=self.psychologist)

        replacement = AvailabilityManagementService.replace_rule(self.identity, rule, time(10, 0), time(14, 0))

        rule.refresh_from_db()
        self.assertFalse(rule.is_active)
        self.assertEqual(replacement.day_of_week, rule.day_of_week)
        self.assertEqual(replacement.start_time, time(10, 0))
        self.assertEqual(AvailabilityManagementService.get_active_rules(self.psychologist), [replacement])

    def test_block_day(self):
        target = next_weekday(MONDAY)

        block = AvailabilityManagementService.block_day(self.identity, self.psychologist, target, label='Conference')

        self.assertFalse(block.is_recurring)
        self.assertEqual(block.specific_date, target)
        self.assertEqual(block.start_time, time(0, 0))
        self.assertEqual(block.label, 'Conference')

    def test_delete_block(self):
        block = AvailabilityManagementService.block_day(self.identity, self.psychologist, next_weekday(MONDAY))

        AvailabilityManagementService.delete_block(self.identity, block)

        self.assertFalse(CalendarBlock.objects.exists())
