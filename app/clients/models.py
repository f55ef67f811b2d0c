# clients/models.py
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.validators import RegexValidator
from users.models import User


class Client(models.Model):
    """
    Client profile - the person booking and attending therapy sessions
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='client_profile',
        help_text=_("Link to the base user account")
    )

    first_name = models.CharField(
        _('first name'),
        max_length=100,
        blank=True,
        help_text=_("Client's first name")
    )
    last_name = models.CharField(
        _('last name'),
        max_length=100,
        blank=True,
        help_text=_("Client's last name")
    )
    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        validators=[
            RegexValidator(
                regex=r'^\+?1?\d{9,15}$',
                message=_("Phone number must be entered in the format: '+999999999'. Up to 15 digits allowed.")
            )
        ],
        help_text=_("Contact phone number")
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )
    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('Client')
        verbose_name_plural = _('Clients')
        db_table = 'clients'

    def __str__(self):
        return f"{self.display_name} ({self.user.email})"

    @property
    def display_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.user.email.split('@')[0]
