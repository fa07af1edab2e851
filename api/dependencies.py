"""API Dependencies - Services and Authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from application.services import (
    AvailabilityService, ClientService, CommentService, HotelService, ReservationService
)
from domain.entities import Client
from domain.repositories import EntityStore
from infrastructure.repositories.in_memory_repositories import InMemoryEntityStore
from infrastructure.security import read_client_id
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Shared store; every request re-reads current state from it
entity_store = InMemoryEntityStore()


def get_entity_store() -> EntityStore:
    return entity_store

def get_availability_service(store: EntityStore = Depends(get_entity_store)) -> AvailabilityService:
    return AvailabilityService(store)

def get_reservation_service(
    store: EntityStore = Depends(get_entity_store),
    availability: AvailabilityService = Depends(get_availability_service)
) -> ReservationService:
    return ReservationService(store, availability)

def get_hotel_service(store: EntityStore = Depends(get_entity_store)) -> HotelService:
    return HotelService(store)

def get_client_service(
    store: EntityStore = Depends(get_entity_store),
    reservations: ReservationService = Depends(get_reservation_service)
) -> ClientService:
    return ClientService(store, reservations)

def get_comment_service(store: EntityStore = Depends(get_entity_store)) -> CommentService:
    return CommentService(store)


async def get_current_client(
    token: str = Depends(oauth2_scheme),
    clients: ClientService = Depends(get_client_service)
) -> Client:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        token_data = TokenData(client_id=read_client_id(token))
    except (JWTError, ValueError):
        raise credentials_exception

    client = await clients.get_client(token_data.client_id)
    if client is None:
        raise credentials_exception
    return client

async def require_admin(current_client: Client = Depends(get_current_client)) -> Client:
    if not current_client.is_admin:
        raise HTTPException(status_code=403, detail="Administrator access required")
    return current_client
