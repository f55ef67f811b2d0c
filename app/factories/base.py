# factories/base.py
import factory
from django.contrib.auth.hashers import make_password

# Login password for every generated account
DEFAULT_PASSWORD = 'marketplace-pass-123'


class BaseFactory(factory.django.DjangoModelFactory):

    class Meta:
        abstract = True


class PasswordMixin:
    """Hashes ``DEFAULT_PASSWORD`` once per account so sample users can log in"""

    @factory.lazy_attribute
    def password(self):
        return make_password(DEFAULT_PASSWORD)
