# core/exceptions.py
"""
Error taxonomy shared by the scheduling and revenue apps.

Field-level validation problems are reported with Django's ``ValidationError``
(a field -> message dict) and never reach these classes.
"""


class MarketplaceError(Exception):
    """Base exception for marketplace domain errors"""
    pass


class NotFoundError(MarketplaceError):
    """Raised when a referenced record does not exist"""
    pass


class AccessDeniedError(MarketplaceError):
    """Raised when the acting identity may not touch the record"""
    pass


class InvalidTransitionError(MarketplaceError):
    """Raised when a state machine transition is not allowed"""
    pass


class SlotConflictError(MarketplaceError):
    """Raised when the requested slot was taken by a concurrent booking.

    Callers must re-fetch availability instead of retrying the same slot.
    """
    pass


class InsufficientNoticeError(MarketplaceError):
    """Raised when a slot starts inside the minimum booking notice window"""
    pass


class InsufficientCreditsError(MarketplaceError):
    """Raised when a package or client credit cannot cover a session"""
    pass


class AlreadyRecognizedError(MarketplaceError):
    """Raised when revenue for an appointment was already recognized"""

    def __init__(self, appointment_id):
        self.appointment_id = appointment_id
        super().__init__(f"Revenue already recognized for appointment {appointment_id}")


class UpstreamUnavailableError(MarketplaceError):
    """Raised when the backing store fails; nothing was persisted and the call may be retried"""
    pass
