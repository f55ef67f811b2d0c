# subscriptions/tests/test_tasks.py
from django.test import TestCase
from unittest.mock import patch

from core.exceptions import UpstreamUnavailableError
from subscriptions.tasks import sweep_expired_periods_task


class SweepExpiredPeriodsTaskTest(TestCase):

    @patch('subscriptions.tasks.PackageSubscriptionManager.sweep_expired_periods')
    def test_task_returns_sweep_result(self, mock_sweep):
        mock_sweep.return_value = {'due': 1, 'renewed': 1, 'cancelled': 0}

        result = sweep_expired_periods_task()

        self.assertEqual(result['renewed'], 1)
        mock_sweep.assert_called_once_with()

    @patch('subscriptions.tasks.PackageSubscriptionManager.sweep_expired_periods')
    def test_task_retries_when_store_unavailable(self, mock_sweep):
        mock_sweep.side_effect = UpstreamUnavailableError("database is down")

        with self.assertRaises(UpstreamUnavailableError):
            sweep_expired_periods_task()
