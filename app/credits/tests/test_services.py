# credits/tests/test_services.py
from django.test import TestCase
from decimal import Decimal

from core.exceptions import AccessDeniedError, InsufficientCreditsError
from users.identity import RequestIdentity
from credits.services import CreditLedger, CreditNotFoundError
from factories.users import ClientFactory, AdminUserFactory
from factories.psychologists import PsychologistFactory


class CreditLedgerTest(TestCase):

    def setUp(self):
        self.client_profile = ClientFactory()
        self.psychologist = PsychologistFactory()
        self.identity = RequestIdentity.from_user(self.client_profile.user)

    def issue(self, amount='800.00', client=None):
        return CreditLedger.issue(
            client or self.client_profile, self.psychologist, Decimal(amount), 'Cancelled 48h ahead'
        )

    def test_issue_credit(self):
        credit = self.issue()

        self.assertTrue(credit.is_available)
        self.assertEqual(credit.amount, Decimal('800.00'))
        self.assertIsNone(credit.redeemed_at)

    def test_available_balance_counts_only_available_credits(self):
        first = self.issue()
        self.issue('500.00')
        self.issue('300.00', client=ClientFactory())
        CreditLedger.redeem(first.credit_id, self.client_profile)

        self.assertEqual(CreditLedger.get_available_balance(self.client_profile), Decimal('500.00'))

    def test_redeem_consumes_credit_whole(self):
        credit = self.issue()

        redeemed = CreditLedger.redeem(credit.credit_id, self.client_profile)

        self.assertEqual(redeemed.status, 'redeemed')
        self.assertIsNotNone(redeemed.redeemed_at)
        self.assertEqual(redeemed.amount, Decimal('800.00'))

    def test_credit_cannot_be_redeemed_twice(self):
        credit = self.issue()
        CreditLedger.redeem(credit.credit_id, self.client_profile)

        with self.assertRaises(InsufficientCreditsError):
            CreditLedger.redeem(credit.credit_id, self.client_profile)

    def test_credit_belongs_to_its_client(self):
        credit = self.issue()

        with self.assertRaises(CreditNotFoundError):
            CreditLedger.redeem(credit.credit_id, ClientFactory())

    def test_unknown_credit(self):
        with self.assertRaises(CreditNotFoundError):
            CreditLedger.lock_available_credit('not-a-uuid', self.client_profile)

    def test_get_credits_filters_by_status(self):
        first = self.issue()
        self.issue('500.00')
        CreditLedger.redeem(first.credit_id, self.client_profile)

        self.assertEqual(len(CreditLedger.get_credits(self.identity, self.client_profile)), 2)
        available = CreditLedger.get_credits(self.identity, self.client_profile, status='available')
        self.assertEqual([c.amount for c in available], [Decimal('500.00')])

    def test_get_credits_access(self):
        self.issue()
        stranger = RequestIdentity.from_user(ClientFactory().user)
        admin = RequestIdentity.from_user(AdminUserFactory())

        with self.assertRaises(AccessDeniedError):
            CreditLedger.get_credits(stranger, self.client_profile)
        self.assertEqual(len(CreditLedger.get_credits(admin, self.client_profile)), 1)
