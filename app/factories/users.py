# factories/users.py
import factory
from django.utils import timezone

from users.models import User
from clients.models import Client
from .base import BaseFactory, PasswordMixin


class UserFactory(BaseFactory, PasswordMixin):
    """
    Factory for creating User instances
    """

    class Meta:
        model = User
        django_get_or_create = ('email',)  # Avoid duplicate emails

    email = factory.Sequence(lambda n: f'user{n}@example.com')
    user_type = 'Client'
    is_active = True
    is_verified = True
    is_staff = False
    is_superuser = False
    user_timezone = 'UTC'

    registration_date = factory.LazyFunction(timezone.now)


class ClientUserFactory(UserFactory):
    """
    Client accounts; the Client profile is attached by the post_save signal
    """
    user_type = 'Client'
    email = factory.Sequence(lambda n: f'client{n}@example.com')


class PsychologistUserFactory(UserFactory):
    user_type = 'Psychologist'
    email = factory.Sequence(lambda n: f'dr.psychologist{n}@clinic.com')


class AdminUserFactory(UserFactory):
    user_type = 'Admin'
    is_staff = True
    is_superuser = True
    email = factory.Sequence(lambda n: f'admin{n}@marketplace.com')


class ClientFactory(BaseFactory):
    """
    Client profile. Looked up by user because the signal already created it.
    """

    class Meta:
        model = Client
        django_get_or_create = ('user',)

    user = factory.SubFactory(ClientUserFactory)
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
