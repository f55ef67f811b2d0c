from django.test import TestCase
from django.contrib.auth import get_user_model
from django.db import IntegrityError

from clients.models import Client


User = get_user_model()


class UserManagerTest(TestCase):
    """Test cases for UserManager"""

    def setUp(self):
        self.manager = User.objects
        self.valid_email = 'test@example.com'
        self.valid_password = 'testpassword123'

    def test_email_validator_with_invalid_email(self):
        """Test email validator with invalid email"""
        for invalid_email in ['invalid_email', '@example.com', 'test@', '']:
            with self.subTest(email=invalid_email):
                with self.assertRaises(ValueError) as context:
                    self.manager.email_validator(invalid_email)
                self.assertIn('Invalid email address', str(context.exception))

    def test_create_user_without_email(self):
        with self.assertRaises(ValueError) as context:
            self.manager.create_user(email='', password=self.valid_password, user_type='Client')
        self.assertIn('The Email field must be set', str(context.exception))

    def test_create_user_email_normalization(self):
        user = self.manager.create_user(
            email='Test@EXAMPLE.COM', password=self.valid_password, user_type='Psychologist'
        )
        self.assertEqual(user.email, 'Test@example.com')

    def test_create_client_attaches_profile(self):
        """Client accounts get a Client profile from the post_save signal"""
        user = self.manager.create_client(email=self.valid_email, password=self.valid_password)

        self.assertTrue(user.is_client)
        self.assertFalse(user.is_verified)
        self.assertTrue(Client.objects.filter(user=user).exists())

    def test_create_psychologist_has_no_client_profile(self):
        user = self.manager.create_psychologist(email=self.valid_email, password=self.valid_password)

        self.assertTrue(user.is_psychologist)
        self.assertFalse(Client.objects.filter(user=user).exists())

    def test_create_superuser_success(self):
        user = self.manager.create_superuser(email=self.valid_email, password=self.valid_password)

        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_admin)

    def test_create_superuser_without_is_staff(self):
        with self.assertRaises(ValueError) as context:
            self.manager.create_superuser(email=self.valid_email, password=self.valid_password, is_staff=False)
        self.assertIn('Superuser must have is_staff=True', str(context.exception))

    def test_duplicate_email_raises_integrity_error(self):
        self.manager.create_client(email=self.valid_email, password=self.valid_password)

        with self.assertRaises(IntegrityError):
            self.manager.create_client(email=self.valid_email, password=self.valid_password)
