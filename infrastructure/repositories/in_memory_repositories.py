"""In-Memory Repository Implementations"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Type
from uuid import UUID

from pydantic import BaseModel

from domain.repositories import EntityStore, E
from domain.entities import Hotel, Room, Client, Reservation, Comment


_ID_FIELDS: Dict[type, str] = {
    Hotel: "hotel_id",
    Room: "room_id",
    Client: "client_id",
    Reservation: "reservation_id",
    Comment: "comment_id",
}


def _identity(entity: BaseModel) -> UUID:
    try:
        return getattr(entity, _ID_FIELDS[type(entity)])
    except KeyError:
        raise TypeError(f"Unsupported entity type: {type(entity).__name__}")


class InMemoryEntityStore(EntityStore):
    """In-memory implementation of EntityStore

    Entities are stored and returned as deep copies so a caller's changes
    only become visible after ``save``. Locks are ``asyncio.Lock`` objects
    and therefore only serialize callers sharing this process.
    """

    def __init__(self):
        self._storage: Dict[type, Dict[UUID, BaseModel]] = {t: {} for t in _ID_FIELDS}
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._lock_users: Dict[UUID, int] = {}

    def _table(self, entity_type: type) -> Dict[UUID, BaseModel]:
        if entity_type not in self._storage:
            raise TypeError(f"Unsupported entity type: {entity_type.__name__}")
        return self._storage[entity_type]

    async def find_by_id(self, entity_type: Type[E], entity_id: UUID) -> Optional[E]:
        """Find entity by ID"""
        entity = self._table(entity_type).get(entity_id)
        return entity.model_copy(deep=True) if entity is not None else None

    async def find_where(
        self,
        entity_type: Type[E],
        predicate: Callable[[E], bool],
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[E]:
        """Find entities matching predicate"""
        matches = [e for e in self._table(entity_type).values() if predicate(e)]
        end = None if limit is None else skip + limit
        return [e.model_copy(deep=True) for e in matches[skip:end]]

    async def count_where(self, entity_type: Type[E], predicate: Callable[[E], bool]) -> int:
        """Count entities matching predicate"""
        return sum(1 for e in self._table(entity_type).values() if predicate(e))

    async def save(self, entity: E) -> E:
        """Save entity to memory"""
        self._table(type(entity))[_identity(entity)] = entity.model_copy(deep=True)
        return entity

    async def delete(self, entity: BaseModel) -> bool:
        """Delete entity"""
        table = self._table(type(entity))
        entity_id = _identity(entity)
        if entity_id in table:
            del table[entity_id]
            return True
        return False

    @asynccontextmanager
    async def locked(self, keys: Iterable[UUID]) -> AsyncIterator[None]:
        # Sorted acquisition order keeps overlapping key sets deadlock-free
        ordered = sorted(set(keys), key=str)
        for key in ordered:
            self._locks.setdefault(key, asyncio.Lock())
            self._lock_users[key] = self._lock_users.get(key, 0) + 1

        acquired: List[asyncio.Lock] = []
        try:
            for key in ordered:
                lock = self._locks[key]
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            # A lock nobody holds or waits for is dropped
            for key in ordered:
                self._lock_users[key] -= 1
                if not self._lock_users[key]:
                    del self._lock_users[key]
                    del self._locks[key]

    def lock_count(self) -> int:
        """Number of keys currently held or awaited"""
        return len(self._locks)
