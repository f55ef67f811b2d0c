# clients/services.py
import logging
from typing import Optional

from core.exceptions import NotFoundError
from users.models import User
from .models import Client

logger = logging.getLogger(__name__)


class ClientNotFoundError(NotFoundError):
    """Raised when client profile is not found"""
    pass


class ClientService:

    @staticmethod
    def get_client_by_user(user: User) -> Optional[Client]:
        try:
            return Client.objects.select_related('user').get(user=user)
        except Client.DoesNotExist:
            logger.warning(f"Client profile not found for user {user.email}")
            return None

    @staticmethod
    def get_client_by_user_or_raise(user: User) -> Client:
        client = ClientService.get_client_by_user(user)
        if not client:
            raise ClientNotFoundError(f"Client profile not found for user {user.email}")
        return client
