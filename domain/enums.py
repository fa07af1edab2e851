"""Domain Enums"""
from enum import Enum


class Role(str, Enum):
    USER = "ROLE_USER"
    ADMIN = "ROLE_ADMIN"


class OverlapPolicy(str, Enum):
    """How two stays sharing a boundary instant are treated"""
    INCLUSIVE = "INCLUSIVE"  # touching boundaries conflict
    EXCLUSIVE = "EXCLUSIVE"  # back-to-back stays allowed


class BookingErrorKind(str, Enum):
    INVALID_REFERENCE = "InvalidReference"
    ROOM_HOTEL_MISMATCH = "RoomHotelMismatch"
    INVALID_DATE_RANGE = "InvalidDateRange"
    NO_ROOMS_SELECTED = "NoRoomsSelected"
    ROOM_UNAVAILABLE = "RoomUnavailable"
    NOT_AUTHORIZED = "NotAuthorized"
    NOT_FOUND = "NotFound"
