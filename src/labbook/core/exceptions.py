"""Domain-specific exception types."""


class BookingError(Exception):
    """Base application error."""


class FormatError(BookingError, ValueError):
    """Raised when a time-of-day or date string cannot be parsed."""


class OutOfBoundsError(BookingError):
    """Raised when a proposed booking leaves the bookable day window."""


class PastTimeError(BookingError):
    """Raised when a proposed booking violates the current-time constraint."""


class CollisionError(BookingError):
    """Raised when a proposed booking overlaps an existing booking."""


class EditPermissionError(BookingError):
    """Raised when a booking is edited without the rights to do so."""


class SettingsError(BookingError):
    """Raised when settings cannot be validated or saved."""


class PersistenceError(BookingError):
    """Raised when persistence operations fail."""
