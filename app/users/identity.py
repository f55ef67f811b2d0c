# users/identity.py
from dataclasses import dataclass
from typing import Optional
import uuid


@dataclass(frozen=True)
class RequestIdentity:
    """
    Acting user and role for a single request.

    Built once at the edge (view, task, management command) and handed to every
    service operation that needs to check ownership.
    """
    user_id: uuid.UUID
    role: str

    CLIENT = 'Client'
    PSYCHOLOGIST = 'Psychologist'
    ADMIN = 'Admin'

    @classmethod
    def from_user(cls, user) -> 'RequestIdentity':
        role = cls.ADMIN if (user.is_staff or user.user_type == cls.ADMIN) else user.user_type
        return cls(user_id=user.id, role=role)

    @classmethod
    def from_request(cls, request) -> Optional['RequestIdentity']:
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            return None
        return cls.from_user(user)

    @classmethod
    def system(cls) -> 'RequestIdentity':
        """Identity for gateway callbacks, scheduled jobs and operator commands"""
        return cls(user_id=uuid.UUID(int=0), role=cls.ADMIN)

    @property
    def is_admin(self):
        return self.role == self.ADMIN

    @property
    def is_client(self):
        return self.role == self.CLIENT

    @property
    def is_psychologist(self):
        return self.role == self.PSYCHOLOGIST
