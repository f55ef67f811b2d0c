# core/atomic.py
import logging
from typing import Any, Callable, Optional

from django.db import transaction, InterfaceError, OperationalError

from .exceptions import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class AtomicUnit:
    """
    Runs ``mutation(precondition())`` as one all-or-nothing database transaction.

    The precondition is expected to lock the rows it reads (``select_for_update``)
    so nothing can interleave between the check and the write. Domain exceptions
    raised by either callable propagate unchanged after the rollback. Store
    connectivity failures surface as ``UpstreamUnavailableError``.
    """

    def __init__(self, precondition: Callable[[], Any], mutation: Callable[[Any], Any],
                 name: Optional[str] = None):
        self.precondition = precondition
        self.mutation = mutation
        self.name = name or getattr(mutation, '__name__', 'atomic_unit')

    def execute(self):
        try:
            with transaction.atomic():
                context = self.precondition()
                return self.mutation(context)
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Store unavailable while running {self.name}: {str(e)}")
            raise UpstreamUnavailableError(f"{self.name} failed, no changes were saved: {str(e)}")

    @classmethod
    def run(cls, precondition, mutation, name=None):
        return cls(precondition, mutation, name=name).execute()

