# core/tests/test_responses.py
from django.test import SimpleTestCase
from django.core.exceptions import ValidationError
from rest_framework import status

from core.exceptions import (
    MarketplaceError,
    SlotConflictError,
    InsufficientCreditsError,
    UpstreamUnavailableError,
)
from core.responses import domain_error_response
from psychologists.services import PsychologistNotFoundError


class DomainErrorResponseTest(SimpleTestCase):

    def test_status_codes(self):
        self.assertEqual(domain_error_response(PsychologistNotFoundError('x')).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(domain_error_response(SlotConflictError('x')).status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(
            domain_error_response(InsufficientCreditsError('x')).status_code, status.HTTP_402_PAYMENT_REQUIRED
        )
        self.assertEqual(
            domain_error_response(UpstreamUnavailableError('x')).status_code, status.HTTP_503_SERVICE_UNAVAILABLE
        )

    def test_code_names_the_error(self):
        response = domain_error_response(SlotConflictError('Slot taken'))
        self.assertEqual(response.data, {'error': 'Slot taken', 'code': 'SlotConflictError'})

    def test_validation_error_details(self):
        response = domain_error_response(ValidationError({'start_time': 'Not offered'}))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['details'], {'start_time': ['Not offered']})

    def test_unmapped_domain_error(self):
        response = domain_error_response(MarketplaceError('odd'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_exceptions_are_reraised(self):
        with self.assertRaises(KeyError):
            domain_error_response(KeyError('boom'))
