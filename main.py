import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from uuid import UUID
from typing import List, Optional

from api.schemas import (
    # Hotels & rooms
    HotelRequest, HotelResponse, RoomRequest, RoomResponse,
    # Availability
    CheckAvailabilityRequest, AvailabilityResponse,
    # Reservations
    CreateReservationRequest, UpdateReservationRequest, ReservationResponse,
    CommentRequest, CommentResponse,
    # Clients & auth
    ClientCreateRequest, ClientResponse, Token
)
from api.dependencies import (
    get_availability_service, get_reservation_service, get_hotel_service,
    get_client_service, get_comment_service, get_current_client, require_admin,
    get_entity_store
)
from application.services import (
    AvailabilityService, ClientService, CommentService, HotelService, ReservationService
)
from domain.entities import Client
from domain.enums import BookingErrorKind, Role
from domain.exceptions import BookingError, DuplicateResource
from infrastructure.config import (
    ADMIN_EMAIL, ADMIN_PASSWORD, configure_logging
)
from infrastructure.security import create_client_token

configure_logging()
logger = logging.getLogger(__name__)

async def seed_admin() -> None:
    """Create the bootstrap administrator when configured and missing"""
    if not ADMIN_EMAIL or not ADMIN_PASSWORD:
        return
    store = get_entity_store()
    clients = get_client_service(
        store, get_reservation_service(store, get_availability_service(store))
    )
    if await clients.find_by_email(ADMIN_EMAIL):
        return
    await clients.register_client(
        name="Administrator", email=ADMIN_EMAIL, phone="admin",
        password=ADMIN_PASSWORD, roles=[Role.ADMIN]
    )
    logger.info("Bootstrap administrator %s created", ADMIN_EMAIL)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await seed_admin()
    yield

app = FastAPI(
    title="Hotel Booking API",
    description="Hotel, room and reservation management with double-booking protection",
    version="1.0.0",
    lifespan=lifespan
)

_ERROR_STATUS = {
    BookingErrorKind.NOT_FOUND: 404,
    BookingErrorKind.NOT_AUTHORIZED: 403,
    BookingErrorKind.ROOM_UNAVAILABLE: 409,
}

# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    content = {"detail": exc.message, "kind": exc.kind.value}
    room_number = getattr(exc, "room_number", None)
    if room_number is not None:
        content["room_number"] = room_number
    return JSONResponse(status_code=_ERROR_STATUS.get(exc.kind, 400), content=content)

@app.exception_handler(DuplicateResource)
async def duplicate_resource_handler(request: Request, exc: DuplicateResource):
    return JSONResponse(status_code=409, content={"detail": str(exc), "kind": "DuplicateResource"})

# ============================================================================
# HEALTH & AUTH ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    clients: ClientService = Depends(get_client_service)
):
    """Log in with email as username"""
    client = await clients.authenticate(form_data.username, form_data.password)
    if not client:
        raise HTTPException(
            status_code=401,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_client_token(client.client_id, [role.value for role in client.roles])
    return {"access_token": access_token, "token_type": "bearer"}

# ============================================================================
# CLIENT ENDPOINTS
# ============================================================================

@app.post("/api/clients", response_model=ClientResponse, status_code=201, tags=["Clients"])
async def register_client(
    request: ClientCreateRequest,
    clients: ClientService = Depends(get_client_service)
):
    """Register a customer account"""
    try:
        client = await clients.register_client(
            name=request.name,
            email=request.email,
            phone=request.phone,
            password=request.password
        )
        return _client_to_response(client)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/clients/me", response_model=ClientResponse, tags=["Clients"])
async def read_current_client(current_client: Client = Depends(get_current_client)):
    return _client_to_response(current_client)

@app.delete("/api/clients/{client_id}", tags=["Clients"])
async def delete_client(
    client_id: UUID,
    clients: ClientService = Depends(get_client_service),
    admin: Client = Depends(require_admin)
):
    """Delete a client and every reservation they own"""
    await clients.delete_client(client_id)
    return {"success": True, "message": "Client deleted"}

# ============================================================================
# HOTEL & ROOM ENDPOINTS
# ============================================================================

@app.post("/api/hotels", response_model=HotelResponse, status_code=201, tags=["Hotels"])
async def create_hotel(
    request: HotelRequest,
    hotels: HotelService = Depends(get_hotel_service),
    admin: Client = Depends(require_admin)
):
    try:
        hotel = await hotels.create_hotel(
            name=request.name,
            address=request.address,
            city=request.city,
            phone=request.phone,
            category=request.category
        )
        return _hotel_to_response(hotel)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/hotels/search", response_model=List[HotelResponse], tags=["Hotels"])
async def search_hotels(
    q: str = "",
    start: Optional[str] = None,
    end: Optional[str] = None,
    availability: AvailabilityService = Depends(get_availability_service)
):
    """Search hotels by name or city, optionally keeping only those with a free room"""
    hotels = await availability.search_hotels(q, start, end)
    return [_hotel_to_response(h) for h in hotels]

@app.put("/api/hotels/{hotel_id}", response_model=HotelResponse, tags=["Hotels"])
async def update_hotel(
    hotel_id: UUID,
    request: HotelRequest,
    hotels: HotelService = Depends(get_hotel_service),
    admin: Client = Depends(require_admin)
):
    try:
        hotel = await hotels.update_hotel(
            hotel_id,
            name=request.name,
            address=request.address,
            city=request.city,
            phone=request.phone,
            category=request.category,
            updated_by=admin.email
        )
        return _hotel_to_response(hotel)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.delete("/api/hotels/{hotel_id}", tags=["Hotels"])
async def delete_hotel(
    hotel_id: UUID,
    hotels: HotelService = Depends(get_hotel_service),
    admin: Client = Depends(require_admin)
):
    await hotels.delete_hotel(hotel_id)
    return {"success": True, "message": "Hotel deleted"}

@app.post("/api/hotels/{hotel_id}/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def add_room(
    hotel_id: UUID,
    request: RoomRequest,
    hotels: HotelService = Depends(get_hotel_service),
    admin: Client = Depends(require_admin)
):
    try:
        room = await hotels.add_room(
            hotel_id,
            number=request.number,
            capacity=request.capacity,
            price=request.price,
            room_type=request.room_type
        )
        return _room_to_response(room)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.get("/api/hotels/{hotel_id}/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def list_rooms(
    hotel_id: UUID,
    hotels: HotelService = Depends(get_hotel_service)
):
    rooms = await hotels.list_rooms(hotel_id)
    return [_room_to_response(r) for r in rooms]

@app.put("/api/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def update_room(
    room_id: UUID,
    request: RoomRequest,
    hotels: HotelService = Depends(get_hotel_service),
    admin: Client = Depends(require_admin)
):
    try:
        room = await hotels.update_room(
            room_id,
            number=request.number,
            capacity=request.capacity,
            price=request.price,
            room_type=request.room_type
        )
        return _room_to_response(room)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

@app.delete("/api/rooms/{room_id}", tags=["Rooms"])
async def delete_room(
    room_id: UUID,
    hotels: HotelService = Depends(get_hotel_service),
    admin: Client = Depends(require_admin)
):
    await hotels.delete_room(room_id)
    return {"success": True, "message": "Room deleted"}

@app.get("/api/rooms/{room_id}/comments", response_model=List[CommentResponse], tags=["Rooms"])
async def room_comments(
    room_id: UUID,
    comments: CommentService = Depends(get_comment_service)
):
    """Comments left on reservations of a room"""
    return [_comment_to_response(c) for c in await comments.comments_for_room(room_id)]

# ============================================================================
# AVAILABILITY ENDPOINTS
# ============================================================================

@app.post("/api/availability/check", response_model=AvailabilityResponse, tags=["Availability"])
async def check_availability(
    request: CheckAvailabilityRequest,
    availability: AvailabilityService = Depends(get_availability_service)
):
    """Check whether a room is free for a date range"""
    available = await availability.check_availability(
        room_id=request.room_id,
        start=request.start,
        end=request.end,
        exclude_reservation_id=request.exclude_reservation_id
    )
    return {"room_id": request.room_id, "available": available}

# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_client: Client = Depends(get_current_client)
):
    """Book one or more rooms of a hotel"""
    client_id = current_client.client_id
    if request.client_id and current_client.is_admin:
        client_id = request.client_id

    reservation = await service.create_reservation(
        hotel_id=request.hotel_id,
        client_id=client_id,
        room_ids=request.room_ids,
        start=request.start,
        end=request.end
    )
    return _reservation_to_response(reservation)

@app.get("/api/reservations/me", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_my_reservations(
    service: ReservationService = Depends(get_reservation_service),
    current_client: Client = Depends(get_current_client)
):
    reservations = await service.get_reservations_by_client(current_client.client_id)
    return [_reservation_to_response(r) for r in reservations]

@app.get("/api/reservations/code/{code}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation_by_code(
    code: str,
    service: ReservationService = Depends(get_reservation_service),
    admin: Client = Depends(require_admin)
):
    reservation = await service.get_reservation_by_code(code)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return _reservation_to_response(reservation)

@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    admin: Client = Depends(require_admin)
):
    reservation = await service.get_reservation(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    if reservation.is_orphaned:
        logger.warning("Reservation %s has no client", reservation.code)
    return _reservation_to_response(reservation)

@app.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation(
    reservation_id: UUID,
    request: UpdateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    admin: Client = Depends(require_admin)
):
    """Replace hotel, client, rooms and dates of a reservation"""
    reservation = await service.update_reservation(
        reservation_id=reservation_id,
        hotel_id=request.hotel_id,
        client_id=request.client_id,
        room_ids=request.room_ids,
        start=request.start,
        end=request.end
    )
    return _reservation_to_response(reservation)

@app.post("/api/reservations/{reservation_id}/cancel", tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_client: Client = Depends(get_current_client)
):
    """Cancel one of the caller's own reservations"""
    await service.cancel_reservation(reservation_id, current_client.client_id)
    return {"success": True, "message": "Reservation cancelled"}

@app.delete("/api/reservations/{reservation_id}", tags=["Reservations"])
async def admin_delete_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    admin: Client = Depends(require_admin)
):
    await service.admin_delete_reservation(reservation_id)
    return {"success": True, "message": "Reservation deleted"}

@app.post("/api/reservations/{reservation_id}/comments", response_model=CommentResponse,
          status_code=201, tags=["Reservations"])
async def comment_reservation(
    reservation_id: UUID,
    request: CommentRequest,
    comments: CommentService = Depends(get_comment_service),
    current_client: Client = Depends(get_current_client)
):
    try:
        comment = await comments.add_comment(reservation_id, current_client.client_id, request.content)
        return _comment_to_response(comment)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _client_to_response(client) -> ClientResponse:
    return ClientResponse(
        client_id=client.client_id,
        name=client.name,
        email=client.email,
        phone=client.phone,
        roles=[role.value for role in client.roles]
    )

def _hotel_to_response(hotel) -> HotelResponse:
    return HotelResponse(
        hotel_id=hotel.hotel_id,
        name=hotel.name,
        address=hotel.address,
        city=hotel.city,
        phone=hotel.phone,
        category=hotel.category,
        updated_at=hotel.updated_at,
        updated_by=hotel.updated_by
    )

def _room_to_response(room) -> RoomResponse:
    return RoomResponse(
        room_id=room.room_id,
        hotel_id=room.hotel_id,
        number=room.number,
        capacity=room.capacity,
        price=room.price,
        room_type=room.room_type
    )

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        code=reservation.code,
        hotel_id=reservation.hotel_id,
        room_ids=reservation.room_ids,
        client_id=reservation.client_id,
        start=reservation.start,
        end=reservation.end,
        orphaned=reservation.is_orphaned,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

def _comment_to_response(comment) -> CommentResponse:
    return CommentResponse(
        comment_id=comment.comment_id,
        reservation_id=comment.reservation_id,
        author_id=comment.author_id,
        content=comment.content,
        created_at=comment.created_at
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
