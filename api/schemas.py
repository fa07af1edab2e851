"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional


# ============================================================================
# HOTEL & ROOM SCHEMAS
# ============================================================================

class HotelRequest(BaseModel):
    """Create/update hotel request DTO"""
    name: str = Field(min_length=1)
    address: str
    city: str
    phone: str
    category: int = Field(ge=1, le=5)


class HotelResponse(BaseModel):
    """Hotel response DTO"""
    hotel_id: UUID
    name: str
    address: str
    city: str
    phone: str
    category: int
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None


class RoomRequest(BaseModel):
    """Create/update room request DTO"""
    number: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    room_type: str


class RoomResponse(BaseModel):
    """Room response DTO"""
    room_id: UUID
    hotel_id: UUID
    number: str
    capacity: int
    price: Decimal
    room_type: str


# ============================================================================
# AVAILABILITY SCHEMAS
# ============================================================================

class CheckAvailabilityRequest(BaseModel):
    """Check availability request DTO; dates are ISO-8601 strings"""
    room_id: UUID
    start: str
    end: str
    exclude_reservation_id: Optional[UUID] = None


class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    room_id: UUID
    available: bool


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO

    ``client_id`` is only honoured for administrators; other callers
    always book for themselves.
    """
    hotel_id: UUID
    room_ids: List[UUID]
    start: str
    end: str
    client_id: Optional[UUID] = None


class UpdateReservationRequest(BaseModel):
    """Update reservation request DTO"""
    hotel_id: UUID
    client_id: UUID
    room_ids: List[UUID]
    start: str
    end: str


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    code: str
    hotel_id: UUID
    room_ids: List[UUID]
    client_id: Optional[UUID] = None
    start: datetime
    end: datetime
    orphaned: bool
    created_at: datetime
    modified_at: datetime
    version: int


class CommentRequest(BaseModel):
    """Comment request DTO"""
    content: str


class CommentResponse(BaseModel):
    """Comment response DTO"""
    comment_id: UUID
    reservation_id: UUID
    author_id: UUID
    content: str
    created_at: datetime


# ============================================================================
# CLIENT & AUTH SCHEMAS
# ============================================================================

class ClientCreateRequest(BaseModel):
    """Client registration request DTO"""
    name: str
    email: str
    phone: str
    password: str = Field(min_length=6)


class ClientResponse(BaseModel):
    """Client response DTO"""
    client_id: UUID
    name: str
    email: str
    phone: str
    roles: List[str]


class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str

class TokenData(BaseModel):
    """Token payload DTO"""
    client_id: Optional[UUID] = None
