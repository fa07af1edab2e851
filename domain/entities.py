"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field, validator
from uuid import UUID, uuid4
from datetime import datetime, timedelta
from typing import Optional, List
from decimal import Decimal
import random
import secrets

from domain.enums import Role, OverlapPolicy
from domain.exceptions import InvalidResetCode
from domain.value_objects import DateRange


class Hotel(BaseModel):
    """Hotel Aggregate Root Entity

    Rooms are not embedded: they point at their hotel through
    ``Room.hotel_id`` and are looked up by query.
    """

    hotel_id: UUID = Field(default_factory=uuid4)
    name: str = Field(min_length=1)
    address: str
    city: str
    phone: str
    category: int = Field(ge=1, le=5)

    # Audit
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    class Config:
        from_attributes = True
        validate_assignment = True

    def update(
        self,
        name: str,
        address: str,
        city: str,
        phone: str,
        category: int,
        updated_by: Optional[str] = None
    ) -> None:
        """Replace hotel details, validating every field on assignment"""
        self.category = category
        self.name = name
        self.address = address
        self.city = city
        self.phone = phone
        self.updated_at = datetime.now()
        self.updated_by = updated_by


class Room(BaseModel):
    """Room Entity, owned by exactly one hotel"""

    room_id: UUID = Field(default_factory=uuid4)
    number: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    room_type: str
    hotel_id: UUID

    class Config:
        from_attributes = True
        validate_assignment = True


class Client(BaseModel):
    """Client Entity (customer or administrator)"""

    client_id: UUID = Field(default_factory=uuid4)
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=1)
    hashed_password: str
    roles: List[Role] = [Role.USER]

    # Password reset
    reset_code: Optional[str] = None
    reset_requested_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        validate_assignment = True

    @validator('email')
    def email_has_at(cls, v):
        if '@' not in v:
            raise ValueError('Invalid email address')
        return v.lower()

    @validator('roles')
    def always_user(cls, v):
        roles = list(dict.fromkeys(v))
        if Role.USER not in roles:
            roles.append(Role.USER)
        return roles

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    def issue_reset_code(self, now: Optional[datetime] = None) -> str:
        """Generate a 6-digit reset code and record the request time"""
        code = str(100000 + secrets.randbelow(900000))
        self.reset_code = code
        self.reset_requested_at = now or datetime.now()
        return code

    def consume_reset_code(self, code: str, ttl: timedelta,
                           now: Optional[datetime] = None) -> None:
        """Validate a reset code and clear it so it cannot be reused"""
        now = now or datetime.now()
        if not self.reset_code or not self.reset_requested_at:
            raise InvalidResetCode("No password reset was requested")
        if not secrets.compare_digest(self.reset_code, code):
            raise InvalidResetCode("Invalid reset code")
        if now > self.reset_requested_at + ttl:
            raise InvalidResetCode("Reset code has expired")

        self.reset_code = None
        self.reset_requested_at = None


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)
    code: str

    # References
    hotel_id: UUID
    room_ids: List[UUID] = Field(min_length=1)
    client_id: Optional[UUID] = None

    # Value Objects
    date_range: DateRange

    # Metadata
    created_at: datetime = Field(default_factory=datetime.now)
    modified_at: datetime = Field(default_factory=datetime.now)
    version: int = 1

    class Config:
        from_attributes = True
        validate_assignment = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        hotel_id: UUID,
        client_id: Optional[UUID],
        room_ids: List[UUID],
        date_range: DateRange
    ) -> "Reservation":
        """Create new reservation with a fresh human-readable code"""
        return Reservation(
            code=Reservation.generate_code(),
            hotel_id=hotel_id,
            room_ids=list(room_ids),
            client_id=client_id,
            date_range=date_range
        )

    # ==================== MODIFICATION METHODS ====================
    def reschedule(
        self,
        hotel_id: UUID,
        client_id: Optional[UUID],
        room_ids: List[UUID],
        date_range: DateRange
    ) -> None:
        """Replace hotel, client, room set and dates wholesale"""
        self.hotel_id = hotel_id
        self.client_id = client_id
        self.room_ids = list(room_ids)
        self.date_range = date_range
        self.modified_at = datetime.now()
        self.version += 1

    # ==================== QUERY METHODS ====================
    @property
    def start(self) -> datetime:
        return self.date_range.start

    @property
    def end(self) -> datetime:
        return self.date_range.end

    @property
    def is_orphaned(self) -> bool:
        return self.client_id is None

    def occupies(self, room_id: UUID, start: datetime, end: datetime,
                 policy: OverlapPolicy = OverlapPolicy.INCLUSIVE) -> bool:
        """Whether this reservation holds ``room_id`` over [start, end)"""
        return room_id in self.room_ids and self.date_range.overlaps(start, end, policy)

    def is_owned_by(self, client_id: Optional[UUID]) -> bool:
        return self.client_id is not None and self.client_id == client_id

    @staticmethod
    def generate_code(now: Optional[datetime] = None) -> str:
        """RES-<YYYYMMDDHHMMSS>-<100..999>"""
        now = now or datetime.now()
        return f"RES-{now.strftime('%Y%m%d%H%M%S')}-{random.randint(100, 999)}"


class Comment(BaseModel):
    """Review left by a client on one of their reservations"""

    comment_id: UUID = Field(default_factory=uuid4)
    content: str
    created_at: datetime = Field(default_factory=datetime.now)
    reservation_id: UUID
    author_id: UUID

    class Config:
        from_attributes = True

    @validator('content')
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError('Comment cannot be empty')
        return v.strip()
