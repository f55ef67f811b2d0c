# clients/signals.py
from django.db.models.signals import post_save
from django.dispatch import receiver
import logging

from users.models import User
from .models import Client

logger = logging.getLogger(__name__)


@receiver(post_save, sender=User)
def create_client_profile(sender, instance, created, **kwargs):
    """
    Create Client profile when a new user with type 'Client' is created
    """
    if created and instance.user_type == 'Client':
        Client.objects.get_or_create(user=instance)
        logger.info(f"Client profile created for user: {instance.email}")
