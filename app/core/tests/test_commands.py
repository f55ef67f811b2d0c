# core/tests/test_commands.py
from django.test import TestCase, override_settings
from django.core.management import call_command
from django.core.management.base import CommandError
from io import StringIO
from unittest.mock import patch
from redis.exceptions import ConnectionError

from clients.models import Client
from psychologists.models import Psychologist, PsychologistPricing, AvailabilityRule
from factories.base import DEFAULT_PASSWORD


class GenerateSampleDataCommandTest(TestCase):

    def test_generates_bookable_psychologists_and_clients(self):
        out = StringIO()
        call_command('generate_sample_data', psychologists=2, clients=3, seed=7, stdout=out)

        self.assertEqual(Psychologist.objects.count(), 2)
        self.assertEqual(PsychologistPricing.objects.count(), 2)
        self.assertEqual(Client.objects.count(), 3)
        for psychologist in Psychologist.objects.all():
            weekdays = set(AvailabilityRule.objects.filter(psychologist=psychologist).values_list('day_of_week', flat=True))
            self.assertEqual(weekdays, {1, 2, 3, 4, 5})
        self.assertIn('Created 2 psychologists and 3 clients', out.getvalue())
        for client in Client.objects.select_related('user'):
            self.assertTrue(client.user.check_password(DEFAULT_PASSWORD))


@override_settings(CELERY_BROKER_URL='redis://broker:6379/0')
class WaitForBrokerCommandTest(TestCase):

    @patch('core.management.commands.wait_for_broker.redis.Redis.from_url')
    def test_returns_once_broker_answers(self, mock_from_url):
        mock_from_url.return_value.ping.return_value = True
        out = StringIO()

        call_command('wait_for_broker', stdout=out)

        self.assertIn('Redis broker is available', out.getvalue())
        mock_from_url.assert_called_once_with('redis://broker:6379/0')

    @patch('core.management.commands.wait_for_broker.time.sleep')
    @patch('core.management.commands.wait_for_broker.redis.Redis.from_url')
    def test_gives_up_after_attempts(self, mock_from_url, mock_sleep):
        mock_from_url.return_value.ping.side_effect = ConnectionError('refused')

        with self.assertRaises(CommandError):
            call_command('wait_for_broker', attempts=3, stdout=StringIO())
        self.assertEqual(mock_sleep.call_count, 3)

    @override_settings(CELERY_BROKER_URL='memory://')
    def test_rejects_non_redis_broker(self):
        with self.assertRaises(CommandError):
            call_command('wait_for_broker', stdout=StringIO())
