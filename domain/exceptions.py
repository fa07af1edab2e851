"""Domain Exceptions"""
from typing import Optional

from domain.enums import BookingErrorKind


class DomainException(Exception):
    """Base exception raised by the domain and application layers"""


class DuplicateResource(DomainException):
    """A uniqueness rule was violated (room number, email, phone)"""


class InvalidResetCode(DomainException):
    """Password reset code missing, wrong or expired"""


class BookingError(DomainException):
    """Booking rejection carrying the error kind for the caller"""

    kind: BookingErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidReference(BookingError):
    kind = BookingErrorKind.INVALID_REFERENCE


class RoomHotelMismatch(BookingError):
    kind = BookingErrorKind.ROOM_HOTEL_MISMATCH

    def __init__(self, message: str = "Rooms must belong to the selected hotel"):
        super().__init__(message)


class InvalidDateRange(BookingError):
    kind = BookingErrorKind.INVALID_DATE_RANGE

    def __init__(self, message: str = "End date must be after start date"):
        super().__init__(message)


class NoRoomsSelected(BookingError):
    kind = BookingErrorKind.NO_ROOMS_SELECTED

    def __init__(self, message: str = "At least one room must be selected"):
        super().__init__(message)


class RoomUnavailable(BookingError):
    kind = BookingErrorKind.ROOM_UNAVAILABLE

    def __init__(self, room_number: Optional[str]):
        super().__init__(f"Room {room_number} is already booked for this period")
        self.room_number = room_number


class NotAuthorized(BookingError):
    kind = BookingErrorKind.NOT_AUTHORIZED


class NotFound(BookingError):
    kind = BookingErrorKind.NOT_FOUND
