# appointments/services/__init__.py

from .availability import AvailabilityResolver
from .booking import BookingConflictGuard
from .ledger import (
    AppointmentLedger,
    AppointmentNotFoundError,
)
