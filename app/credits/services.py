# credits/services.py
from django.db import transaction
from django.core.exceptions import ValidationError
from decimal import Decimal
import logging
from typing import List

from core.exceptions import NotFoundError, AccessDeniedError, InsufficientCreditsError
from users.identity import RequestIdentity
from clients.models import Client
from .models import ClientCredit

logger = logging.getLogger(__name__)


class CreditNotFoundError(NotFoundError):
    """Raised when a client credit does not exist"""
    pass


class CreditLedger:
    """
    Issue and redeem client credits. Redemption consumes a credit whole.
    """

    @staticmethod
    def issue(client: Client, psychologist, amount: Decimal, reason: str,
              source_appointment=None) -> ClientCredit:
        credit = ClientCredit.objects.create(
            client=client,
            psychologist=psychologist,
            amount=amount,
            reason=reason,
            source_appointment=source_appointment,
        )
        logger.info(f"Issued credit {credit.credit_id} of {amount} to client {client.user.email}: {reason}")
        return credit

    @staticmethod
    def lock_available_credit(credit_id, client: Client) -> ClientCredit:
        """
        Lock a credit for redemption inside the caller's transaction.

        Raises:
            CreditNotFoundError: unknown credit or owned by someone else
            InsufficientCreditsError: credit already redeemed
        """
        try:
            credit = ClientCredit.objects.select_for_update().get(credit_id=credit_id, client=client)
        except (ClientCredit.DoesNotExist, ValueError, ValidationError):
            raise CreditNotFoundError(f"Credit {credit_id} not found")
        if not credit.is_available:
            raise InsufficientCreditsError(f"Credit {credit_id} has already been redeemed")
        return credit

    @staticmethod
    def redeem(credit_id, client: Client, appointment=None) -> ClientCredit:
        with transaction.atomic():
            credit = CreditLedger.lock_available_credit(credit_id, client)
            credit.mark_as_redeemed(appointment=appointment)
        logger.info(f"Credit {credit_id} redeemed by client {client.user.email}")
        return credit

    @staticmethod
    def get_credits(identity: RequestIdentity, client: Client, status: str = None) -> List[ClientCredit]:
        if not identity.is_admin and identity.user_id != client.user_id:
            raise AccessDeniedError("You can only view your own credits")
        queryset = ClientCredit.objects.filter(client=client).select_related('psychologist__user')
        if status:
            queryset = queryset.filter(status=status)
        return list(queryset.order_by('-created_at'))

    @staticmethod
    def get_available_balance(client: Client) -> Decimal:
        return sum(
            (c.amount for c in ClientCredit.objects.filter(client=client, status='available')),
            Decimal('0.00')
        )
