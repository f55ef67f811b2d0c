# factories/psychologists.py
import factory
from datetime import time
from decimal import Decimal

from psychologists.models import Psychologist, AvailabilityRule, CalendarBlock, PsychologistPricing
from .base import BaseFactory
from .users import PsychologistUserFactory


class PsychologistFactory(BaseFactory):
    """
    Approved psychologist able to receive bookings
    """

    class Meta:
        model = Psychologist

    user = factory.SubFactory(PsychologistUserFactory)
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    license_number = factory.Sequence(lambda n: f'CED{n:07d}')
    years_of_experience = 6
    verification_status = 'Approved'


class PsychologistPricingFactory(BaseFactory):
    """
    Prices below the top experience cap; package prices are a multiple of the
    package size so per-session amounts divide evenly
    """

    class Meta:
        model = PsychologistPricing

    psychologist = factory.SubFactory(PsychologistFactory)
    session_price = Decimal('800.00')
    package_4_price = Decimal('3000.00')
    package_8_price = Decimal('5600.00')
    session_duration_minutes = 50
    cancellation_policy = 'Cancel at least 24 hours before your session to receive a credit.'
    currency = 'MXN'


class AvailabilityRuleFactory(BaseFactory):
    """
    Weekly rule; pass ``specific_date`` together with ``is_exception=True``
    for an exception rule
    """

    class Meta:
        model = AvailabilityRule

    psychologist = factory.SubFactory(PsychologistFactory)
    day_of_week = 1  # Monday
    start_time = time(9, 0)
    end_time = time(13, 0)
    is_exception = False
    specific_date = None


class CalendarBlockFactory(BaseFactory):

    class Meta:
        model = CalendarBlock

    psychologist = factory.SubFactory(PsychologistFactory)
    block_type = 'external'
    is_recurring = False
    day_of_week = None
    specific_date = None
    start_time = time(10, 0)
    end_time = time(11, 0)
    label = factory.Faker('sentence', nb_words=3)
