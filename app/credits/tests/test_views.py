# credits/tests/test_views.py
from rest_framework.test import APITestCase
from rest_framework import status
from django.urls import reverse
from decimal import Decimal

from credits.services import CreditLedger
from factories.users import ClientFactory
from factories.psychologists import PsychologistFactory


class ClientCreditViewSetTest(APITestCase):

    def setUp(self):
        self.client_profile = ClientFactory()
        self.psychologist = PsychologistFactory()
        self.url = reverse('credit-list')

    def test_list_credits_with_balance(self):
        CreditLedger.issue(self.client_profile, self.psychologist, Decimal('800.00'), 'Timely cancellation')
        self.client.force_authenticate(user=self.client_profile.user)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['credits']), 1)
        self.assertEqual(response.data['credits'][0]['amount'], '800.00')
        self.assertEqual(response.data['available_balance'], '800.00')

    def test_psychologist_has_no_credits(self):
        self.client.force_authenticate(user=self.psychologist.user)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
