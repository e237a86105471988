"""Domain Exceptions"""


class BookingPlatformError(Exception):
    """Base class for every error raised by the booking core"""


class ValidationError(BookingPlatformError, ValueError):
    """Malformed input: bad dates, missing fields, out-of-range amounts"""


class NotFoundError(BookingPlatformError):
    """Referenced room, service, booking, user or request does not exist"""


class UnauthorizedError(BookingPlatformError):
    """Actor has no rights over the resource"""


class ConflictError(BookingPlatformError):
    """Operation clashes with the current state of the system"""


class InvalidStateTransition(ConflictError):
    """Transition is not legal from the current persisted status"""

    def __init__(self, entity: str, current: str, action: str):
        self.entity = entity
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} {entity} with status {current}")


class RoomUnavailableError(ConflictError):
    """No free unit of the room remains for the requested dates"""


class DuplicateInvoiceError(ConflictError):
    """Invoice number already assigned to another booking"""


class InsufficientFundsError(BookingPlatformError):
    """A debit would drive a balance below zero"""


class InternalError(BookingPlatformError):
    """Storage or transaction failure; the unit of work is rolled back"""


class TransactionConflictError(InternalError):
    """Concurrent write detected; the whole operation may be retried"""
