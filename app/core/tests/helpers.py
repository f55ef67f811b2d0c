# core/tests/helpers.py
from datetime import datetime, date, time, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo
from django.utils import timezone

from psychologists.models import to_sunday_based_weekday
from users.identity import RequestIdentity
from factories.users import ClientFactory, AdminUserFactory
from factories.psychologists import PsychologistPricingFactory, AvailabilityRuleFactory

MONDAY = 1


def next_weekday(day_of_week, min_days_ahead=3):
    """First date at least ``min_days_ahead`` days out falling on a Sunday-based weekday"""
    target = timezone.now().date() + timedelta(days=min_days_ahead)
    while to_sunday_based_weekday(target) != day_of_week:
        target += timedelta(days=1)
    return target


def at(target_date, hour, minute=0, tz='UTC'):
    return datetime.combine(target_date, time(hour, minute), tzinfo=ZoneInfo(tz))


class MarketplaceTestMixin:
    """
    Approved psychologist priced at 800 per session with Monday 09:00-13:00
    availability, a verified client and an admin
    """

    session_price = Decimal('800.00')
    package_4_price = Decimal('2800.00')
    package_8_price = Decimal('5600.00')

    def setUp(self):
        super().setUp()
        self.pricing = PsychologistPricingFactory(
            session_price=self.session_price,
            package_4_price=self.package_4_price,
            package_8_price=self.package_8_price,
        )
        self.psychologist = self.pricing.psychologist
        self.rule = AvailabilityRuleFactory(psychologist=self.psychologist, day_of_week=MONDAY)
        self.client_profile = ClientFactory()
        self.admin_user = AdminUserFactory()

        self.monday = next_weekday(MONDAY)
        self.client_identity = RequestIdentity.from_user(self.client_profile.user)
        self.psychologist_identity = RequestIdentity.from_user(self.psychologist.user)
        self.admin_identity = RequestIdentity.from_user(self.admin_user)

    def slot(self, hour, on=None):
        return at(on or self.monday, hour)
