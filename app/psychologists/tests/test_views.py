# psychologists/tests/test_views.py
from rest_framework.test import APITestCase
from rest_framework import status
from django.urls import reverse

from psychologists.models import AvailabilityRule, CalendarBlock
from factories.users import ClientFactory, AdminUserFactory
from factories.psychologists import PsychologistFactory, PsychologistPricingFactory, AvailabilityRuleFactory
from core.tests.helpers import next_weekday, MONDAY


class PsychologistAvailabilityViewSetTest(APITestCase):

    def setUp(self):
        self.psychologist = PsychologistFactory()
        self.client.force_authenticate(user=self.psychologist.user)
        self.list_url = reverse('psychologist-availability-list')

    def test_create_weekly_rule(self):
        response = self.client.post(self.list_url, {
            'day_of_week': 2,
            'start_time': '09:00',
            'end_time': '13:00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['availability']['day_of_week'], 2)
        self.assertEqual(AvailabilityRule.objects.filter(psychologist=self.psychologist).count(), 1)

    def test_overlapping_rule_returns_validation_error(self):
        AvailabilityRuleFactory(psychologist=self.psychologist, day_of_week=2)

        response = self.client.post(self.list_url, {
            'day_of_week': 2,
            'start_time': '10:00',
            'end_time': '14:00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('start_time', response.data['details'])

    def test_reversed_times_are_rejected(self):
        response = self.client.post(self.list_url, {
            'day_of_week': 2,
            'start_time': '13:00',
            'end_time': '09:00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_time', response.data)

    def test_list_splits_weekly_and_exception_rules(self):
        AvailabilityRuleFactory(psychologist=self.psychologist, day_of_week=2)
        AvailabilityRuleFactory(
            psychologist=self.psychologist, is_exception=True, specific_date=next_weekday(MONDAY)
        )

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['weekly_rules']), 1)
        self.assertEqual(len(response.data['exception_rules']), 1)
        self.assertEqual(response.data['total_rules'], 2)

    def test_supersede_rule(self):
        rule = AvailabilityRuleFactory(psychologist=self.psychologist)

        response = self.client.post(reverse('psychologist-availability-supersede', kwargs={'pk': rule.pk}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rule.refresh_from_db()
        self.assertIsNotNone(rule.superseded_at)

    def test_supersede_with_replacement(self):
        rule = AvailabilityRuleFactory(psychologist=self.psychologist)

        response = self.client.post(
            reverse('psychologist-availability-supersede', kwargs={'pk': rule.pk}),
            {'start_time': '14:00', 'end_time': '18:00'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['availability']['start_time'], '14:00:00')
        self.assertEqual(AvailabilityRule.objects.filter(superseded_at__isnull=True).count(), 1)

    def test_cannot_supersede_another_psychologists_rule(self):
        rule = AvailabilityRuleFactory()

        response = self.client.post(reverse('psychologist-availability-supersede', kwargs={'pk': rule.pk}))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_block_day(self):
        target = next_weekday(MONDAY)

        response = self.client.post(
            reverse('psychologist-availability-block-day'),
            {'date': target.isoformat(), 'label': 'Holiday'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(CalendarBlock.objects.filter(psychologist=self.psychologist, specific_date=target).exists())

    def test_client_cannot_manage_availability(self):
        self.client.force_authenticate(user=ClientFactory().user)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_must_name_psychologist(self):
        self.client.force_authenticate(user=AdminUserFactory())

        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get(self.list_url, {'psychologist_id': str(self.psychologist.user.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class CalendarBlockViewSetTest(APITestCase):

    def setUp(self):
        self.psychologist = PsychologistFactory()
        self.client.force_authenticate(user=self.psychologist.user)

    def test_create_list_and_delete_block(self):
        response = self.client.post(reverse('psychologist-blocks-list'), {
            'block_type': 'external',
            'is_recurring': True,
            'day_of_week': 3,
            'start_time': '16:00',
            'end_time': '18:00',
            'label': 'Hospital shift',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        block_id = response.data['block']['block_id']

        response = self.client.get(reverse('psychologist-blocks-list'))
        self.assertEqual(response.data['total_blocks'], 1)

        response = self.client.delete(reverse('psychologist-blocks-detail', kwargs={'pk': block_id}))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CalendarBlock.objects.exists())

    def test_one_off_block_requires_date(self):
        response = self.client.post(reverse('psychologist-blocks-list'), {
            'start_time': '16:00',
            'end_time': '18:00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('specific_date', response.data)


class PsychologistPricingViewSetTest(APITestCase):

    def setUp(self):
        self.psychologist = PsychologistFactory(years_of_experience=4)
        self.client.force_authenticate(user=self.psychologist.user)
        self.update_url = reverse('psychologist-pricing-set-pricing')

    def test_set_pricing(self):
        response = self.client.put(self.update_url, {
            'session_price': '950.00',
            'package_4_price': '3400.00',
            'package_8_price': '6400.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pricing']['session_price'], '950.00')
        self.assertEqual(response.data['pricing']['session_duration_minutes'], 50)

    def test_price_above_cap_is_rejected(self):
        response = self.client.put(self.update_url, {
            'session_price': '1200.00',
            'package_4_price': '4000.00',
            'package_8_price': '8000.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('session_price', response.data['details'])

    def test_get_pricing_with_cap(self):
        PsychologistPricingFactory(psychologist=self.psychologist, session_price='900.00')

        response = self.client.get(reverse('psychologist-pricing-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['session_price_cap'], '1000.00')
        self.assertEqual(response.data['pricing']['session_price'], '900.00')

    def test_get_pricing_not_configured(self):
        response = self.client.get(reverse('psychologist-pricing-list'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
