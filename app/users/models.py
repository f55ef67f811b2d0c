# users/models.py
import uuid
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.utils import timezone

from .managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Account for every marketplace participant, identified by email
    """

    # User Type Choices
    USER_TYPE_CHOICES = [
        ('Client', _('Client')),
        ('Psychologist', _('Psychologist')),
        ('Admin', _('Admin')),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text=_("Unique identifier for the user")
    )
    email = models.EmailField(
        _('email address'),
        unique=True,
        help_text=_("User's email address, used for login")
    )
    user_type = models.CharField(
        max_length=20,
        choices=USER_TYPE_CHOICES,
        help_text=_("Type of user: Client, Psychologist, or Admin")
    )

    # Status fields
    is_active = models.BooleanField(
        _('active'),
        default=True,
        help_text=_("Designates whether this user should be treated as active.")
    )
    is_verified = models.BooleanField(
        _('verified'),
        default=False,
        help_text=_("Designates whether user has verified their email address.")
    )
    is_staff = models.BooleanField(
        _('staff status'),
        default=False,
        help_text=_("Designates whether the user can log into the admin site.")
    )

    user_timezone = models.CharField(
        _('timezone'),
        max_length=50,
        default='UTC',
        help_text=_("IANA timezone used to interpret availability wall-clock times")
    )

    # Timestamp fields
    registration_date = models.DateTimeField(
        _('registration date'),
        default=timezone.now,
        help_text=_("When the user registered")
    )
    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )
    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['user_type']

    class Meta:
        verbose_name = _('User')
        verbose_name_plural = _('Users')
        db_table = 'users'
        indexes = [
            models.Index(fields=['email']),
            models.Index(fields=['user_type']),
            models.Index(fields=['is_active', 'is_verified']),
        ]

    def __str__(self):
        return f"{self.email} ({self.user_type})"

    @property
    def is_client(self):
        """Check if user books sessions"""
        return self.user_type == 'Client'

    @property
    def is_psychologist(self):
        """Check if user is a psychologist"""
        return self.user_type == 'Psychologist'

    @property
    def is_admin(self):
        """Check if user is a platform admin"""
        return self.user_type == 'Admin'
