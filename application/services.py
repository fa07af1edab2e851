"""Application Services - Business use cases"""
import logging
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from domain.repositories import EntityStore
from domain.entities import Hotel, Room, Client, Reservation, Comment
from domain.enums import OverlapPolicy, Role
from domain.exceptions import (
    BookingError, DuplicateResource, InvalidDateRange, InvalidReference,
    NoRoomsSelected, NotAuthorized, NotFound, RoomHotelMismatch, RoomUnavailable
)
from domain.value_objects import DateRange, Moment, to_datetime
from infrastructure.config import RESET_CODE_TTL, get_overlap_policy
from infrastructure.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

# Lock key serializing client email/phone uniqueness checks
CLIENT_REGISTRY_KEY = UUID(int=1)


def _parse_range(start: Moment, end: Moment) -> Tuple[datetime, datetime]:
    try:
        start, end = to_datetime(start), to_datetime(end)
    except (TypeError, ValueError):
        raise InvalidDateRange("Dates must be ISO-8601 dates or date-times")
    if end <= start:
        raise InvalidDateRange()
    return start, end


class AvailabilityService:
    """Decides whether rooms are free over a stay interval"""

    def __init__(self, store: EntityStore, policy: Optional[OverlapPolicy] = None):
        self.store = store
        self.policy = policy or get_overlap_policy()

    async def is_available(
        self,
        room_id: UUID,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        """True iff no stored reservation holds the room over [start, end)"""
        conflicts = await self.store.count_where(
            Reservation,
            lambda r: r.reservation_id != exclude_reservation_id
            and r.occupies(room_id, start, end, self.policy)
        )
        return conflicts == 0

    async def check_availability(
        self,
        room_id: UUID,
        start: Moment,
        end: Moment,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        """Validate inputs, then check a single room"""
        room = await self.store.find_by_id(Room, room_id)
        if not room:
            raise InvalidReference(f"Room {room_id} not found")
        start, end = _parse_range(start, end)
        return await self.is_available(room.room_id, start, end, exclude_reservation_id)

    async def hotel_has_free_room(self, hotel_id: UUID, start: datetime, end: datetime) -> bool:
        rooms = await self.store.find_where(Room, lambda r: r.hotel_id == hotel_id)
        for room in rooms:
            if await self.is_available(room.room_id, start, end):
                return True
        return False

    async def search_hotels(
        self,
        query: str = "",
        start: Optional[Moment] = None,
        end: Optional[Moment] = None
    ) -> List[Hotel]:
        """Hotels whose name or city contains ``query``.

        When both dates are given only hotels with at least one free room
        over the interval are kept.
        """
        needle = query.strip().lower()
        hotels = await self.store.find_where(
            Hotel,
            lambda h: not needle or needle in h.name.lower() or needle in h.city.lower()
        )
        if start is None and end is None:
            return hotels
        if start is None or end is None:
            raise InvalidDateRange("Both start and end are required to filter by dates")

        start, end = _parse_range(start, end)
        return [h for h in hotels if await self.hotel_has_free_room(h.hotel_id, start, end)]


class ReservationService:
    """Service for Reservation business use cases"""

    def __init__(self, store: EntityStore, availability: AvailabilityService):
        self.store = store
        self.availability = availability

    async def _validate_request(
        self,
        hotel_id: UUID,
        client_id: UUID,
        room_ids: List[UUID],
        start: Moment,
        end: Moment
    ) -> Tuple[DateRange, List[UUID]]:
        """Checks run before locking: references, room list, dates"""
        await self._check_references(hotel_id, client_id)

        if not room_ids:
            raise NoRoomsSelected()

        start, end = _parse_range(start, end)
        # Duplicates collapse, input order is kept
        return DateRange(start=start, end=end), list(dict.fromkeys(room_ids))

    async def _check_references(self, hotel_id: UUID, client_id: UUID) -> None:
        hotel = await self.store.find_by_id(Hotel, hotel_id)
        client = await self.store.find_by_id(Client, client_id)
        if not hotel or not client:
            raise InvalidReference("Invalid client or hotel")

    async def _check_rooms(
        self,
        hotel_id: UUID,
        room_ids: List[UUID],
        date_range: DateRange,
        exclude_reservation_id: Optional[UUID] = None
    ) -> None:
        for room_id in room_ids:
            room = await self.store.find_by_id(Room, room_id)
            if not room or room.hotel_id != hotel_id:
                raise RoomHotelMismatch()
            available = await self.availability.is_available(
                room.room_id, date_range.start, date_range.end, exclude_reservation_id
            )
            if not available:
                raise RoomUnavailable(room.number)

    async def create_reservation(
        self,
        hotel_id: UUID,
        client_id: UUID,
        room_ids: List[UUID],
        start: Moment,
        end: Moment
    ) -> Reservation:
        """Book every requested room or none of them"""
        try:
            date_range, room_ids = await self._validate_request(
                hotel_id, client_id, room_ids, start, end
            )
            # The client lock excludes a concurrent delete_client cascade
            async with self.store.locked([*room_ids, client_id]):
                await self._check_references(hotel_id, client_id)
                await self._check_rooms(hotel_id, room_ids, date_range)
                reservation = Reservation.create(
                    hotel_id=hotel_id,
                    client_id=client_id,
                    room_ids=room_ids,
                    date_range=date_range
                )
                await self.store.save(reservation)
        except BookingError as e:
            logger.warning("Booking rejected (%s): %s", e.kind.value, e.message)
            raise

        logger.info("Reservation %s created for client %s", reservation.code, client_id)
        return reservation

    async def update_reservation(
        self,
        reservation_id: UUID,
        hotel_id: UUID,
        client_id: UUID,
        room_ids: List[UUID],
        start: Moment,
        end: Moment
    ) -> Reservation:
        """Re-validate and replace rooms and dates; a reservation never conflicts with itself"""
        try:
            if not await self.store.find_by_id(Reservation, reservation_id):
                raise NotFound("Reservation not found")

            date_range, room_ids = await self._validate_request(
                hotel_id, client_id, room_ids, start, end
            )
            async with self.store.locked([*room_ids, client_id]):
                await self._check_references(hotel_id, client_id)
                await self._check_rooms(hotel_id, room_ids, date_range, reservation_id)
                reservation = await self.store.find_by_id(Reservation, reservation_id)
                if not reservation:
                    raise NotFound("Reservation not found")
                reservation.reschedule(
                    hotel_id=hotel_id,
                    client_id=client_id,
                    room_ids=room_ids,
                    date_range=date_range
                )
                await self.store.save(reservation)
        except BookingError as e:
            logger.warning("Update of reservation %s rejected (%s): %s",
                           reservation_id, e.kind.value, e.message)
            raise

        logger.info("Reservation %s updated", reservation.code)
        return reservation

    async def cancel_reservation(self, reservation_id: UUID, requesting_client_id: UUID) -> None:
        """Cancellation by the owning client"""
        reservation = await self.store.find_by_id(Reservation, reservation_id)
        if not reservation:
            raise NotFound("Reservation not found")
        if not reservation.is_owned_by(requesting_client_id):
            logger.warning("Client %s may not cancel reservation %s",
                           requesting_client_id, reservation.code)
            raise NotAuthorized("You are not allowed to cancel this reservation")

        await self._remove(reservation)
        logger.info("Reservation %s cancelled by its client", reservation.code)

    async def admin_delete_reservation(self, reservation_id: UUID) -> None:
        """Deletion without ownership check"""
        reservation = await self.store.find_by_id(Reservation, reservation_id)
        if not reservation:
            raise NotFound("Reservation not found")

        await self._remove(reservation)
        logger.info("Reservation %s deleted by an administrator", reservation.code)

    async def _remove(self, reservation: Reservation) -> None:
        comments = await self.store.find_where(
            Comment, lambda c: c.reservation_id == reservation.reservation_id
        )
        for comment in comments:
            await self.store.delete(comment)
        await self.store.delete(reservation)

    async def get_reservation(self, reservation_id: UUID) -> Optional[Reservation]:
        """Get reservation by ID"""
        return await self.store.find_by_id(Reservation, reservation_id)

    async def get_reservation_by_code(self, code: str) -> Optional[Reservation]:
        """Get reservation by its human-readable code"""
        matches = await self.store.find_where(Reservation, lambda r: r.code == code, limit=1)
        return matches[0] if matches else None

    async def get_reservations_by_client(self, client_id: UUID) -> List[Reservation]:
        """Get all reservations for a client"""
        return await self.store.find_where(Reservation, lambda r: r.client_id == client_id)

    async def get_orphaned_reservations(self) -> List[Reservation]:
        return await self.store.find_where(Reservation, lambda r: r.is_orphaned)


class HotelService:
    """Service for hotel and room administration"""

    def __init__(self, store: EntityStore):
        self.store = store

    async def create_hotel(self, name: str, address: str, city: str, phone: str,
                           category: int) -> Hotel:
        hotel = Hotel(name=name, address=address, city=city, phone=phone, category=category)
        await self.store.save(hotel)
        logger.info("Hotel %s created", hotel.hotel_id)
        return hotel

    async def update_hotel(self, hotel_id: UUID, name: str, address: str, city: str,
                           phone: str, category: int,
                           updated_by: Optional[str] = None) -> Hotel:
        hotel = await self.store.find_by_id(Hotel, hotel_id)
        if not hotel:
            raise NotFound("Hotel not found")
        hotel.update(name=name, address=address, city=city, phone=phone,
                     category=category, updated_by=updated_by)
        return await self.store.save(hotel)

    async def get_hotel(self, hotel_id: UUID) -> Optional[Hotel]:
        return await self.store.find_by_id(Hotel, hotel_id)

    async def delete_hotel(self, hotel_id: UUID) -> None:
        """Remove a hotel together with its rooms"""
        hotel = await self.store.find_by_id(Hotel, hotel_id)
        if not hotel:
            raise NotFound("Hotel not found")
        for room in await self.list_rooms(hotel_id):
            await self.store.delete(room)
        await self.store.delete(hotel)
        logger.info("Hotel %s deleted", hotel_id)

    async def list_rooms(self, hotel_id: UUID) -> List[Room]:
        return await self.store.find_where(Room, lambda r: r.hotel_id == hotel_id)

    async def _ensure_unique_number(self, hotel_id: UUID, number: str,
                                    ignore_room_id: Optional[UUID] = None) -> None:
        taken = await self.store.count_where(
            Room,
            lambda r: r.hotel_id == hotel_id and r.number == number and r.room_id != ignore_room_id
        )
        if taken:
            raise DuplicateResource(f"Room {number} already exists in this hotel")

    async def add_room(self, hotel_id: UUID, number: str, capacity: int,
                       price: Decimal, room_type: str) -> Room:
        """Add a room; numbers are unique within a hotel only"""
        if not await self.store.find_by_id(Hotel, hotel_id):
            raise NotFound("Hotel not found")

        async with self.store.locked([hotel_id]):
            await self._ensure_unique_number(hotel_id, number)
            room = Room(number=number, capacity=capacity, price=price,
                        room_type=room_type, hotel_id=hotel_id)
            await self.store.save(room)
        return room

    async def update_room(self, room_id: UUID, number: str, capacity: int,
                          price: Decimal, room_type: str) -> Room:
        room = await self.store.find_by_id(Room, room_id)
        if not room:
            raise NotFound("Room not found")

        async with self.store.locked([room.hotel_id]):
            await self._ensure_unique_number(room.hotel_id, number, ignore_room_id=room_id)
            room.number = number
            room.capacity = capacity
            room.price = price
            room.room_type = room_type
            await self.store.save(room)
        return room

    async def delete_room(self, room_id: UUID) -> None:
        room = await self.store.find_by_id(Room, room_id)
        if not room:
            raise NotFound("Room not found")
        await self.store.delete(room)


class ClientService:
    """Service for client accounts"""

    def __init__(self, store: EntityStore, reservations: ReservationService):
        self.store = store
        self.reservations = reservations

    async def register_client(self, name: str, email: str, phone: str, password: str,
                              roles: Optional[List[Role]] = None) -> Client:
        """Create a client; email and phone must be unique"""
        client = Client(
            name=name,
            email=email,
            phone=phone,
            hashed_password=get_password_hash(password),
            roles=roles or [Role.USER]
        )
        async with self.store.locked([CLIENT_REGISTRY_KEY]):
            if await self.store.count_where(Client, lambda c: c.email == client.email):
                raise DuplicateResource("Email already registered")
            if await self.store.count_where(Client, lambda c: c.phone == client.phone):
                raise DuplicateResource("Phone number already registered")
            await self.store.save(client)
        logger.info("Client %s registered", client.client_id)
        return client

    async def get_client(self, client_id: UUID) -> Optional[Client]:
        return await self.store.find_by_id(Client, client_id)

    async def find_by_email(self, email: str) -> Optional[Client]:
        email = email.strip().lower()
        matches = await self.store.find_where(Client, lambda c: c.email == email, limit=1)
        return matches[0] if matches else None

    async def authenticate(self, email: str, password: str) -> Optional[Client]:
        client = await self.find_by_email(email)
        if not client or not verify_password(password, client.hashed_password):
            return None
        return client

    async def delete_client(self, client_id: UUID) -> None:
        """Delete the client's reservations first, then the client"""
        client = await self.store.find_by_id(Client, client_id)
        if not client:
            raise NotFound("Client not found")

        # Bookings for this client hold the same lock until they are saved
        async with self.store.locked([client_id]):
            for reservation in await self.reservations.get_reservations_by_client(client_id):
                await self.reservations.admin_delete_reservation(reservation.reservation_id)
            await self.store.delete(client)
        logger.info("Client %s deleted with their reservations", client_id)

    async def request_password_reset(self, email: str, now: Optional[datetime] = None) -> str:
        """Issue a reset code; delivering it is up to the caller"""
        client = await self.find_by_email(email)
        if not client:
            raise NotFound("Client not found")
        code = client.issue_reset_code(now)
        await self.store.save(client)
        return code

    async def reset_password(self, email: str, code: str, new_password: str,
                             now: Optional[datetime] = None) -> Client:
        client = await self.find_by_email(email)
        if not client:
            raise NotFound("Client not found")
        client.consume_reset_code(code, RESET_CODE_TTL, now)
        client.hashed_password = get_password_hash(new_password)
        await self.store.save(client)
        return client


class CommentService:
    """Reviews on reservations"""

    def __init__(self, store: EntityStore):
        self.store = store

    async def add_comment(self, reservation_id: UUID, author_id: UUID, content: str) -> Comment:
        """Only the reservation's client may comment on it"""
        reservation = await self.store.find_by_id(Reservation, reservation_id)
        if not reservation:
            raise NotFound("Reservation not found")
        if not reservation.is_owned_by(author_id):
            raise NotAuthorized("You are not allowed to comment on this reservation")

        comment = Comment(content=content, reservation_id=reservation_id, author_id=author_id)
        return await self.store.save(comment)

    async def comments_for_room(self, room_id: UUID) -> List[Comment]:
        """Comments on every reservation that included the room, newest first"""
        reservation_ids = {
            r.reservation_id
            for r in await self.store.find_where(Reservation, lambda r: room_id in r.room_ids)
        }
        comments = await self.store.find_where(
            Comment, lambda c: c.reservation_id in reservation_ids
        )
        return sorted(comments, key=lambda c: c.created_at, reverse=True)
