"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, Callable, Iterable, List, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel


E = TypeVar("E", bound=BaseModel)


class EntityStore(ABC):
    """Persistence contract shared by every aggregate.

    Entities are identified by their first ``*_id`` field; implementations
    must return the current state on every call, never a cached view.
    """

    @abstractmethod
    async def find_by_id(self, entity_type: Type[E], entity_id: UUID) -> Optional[E]:
        """Find an entity by its identifier"""
        pass

    @abstractmethod
    async def find_where(
        self,
        entity_type: Type[E],
        predicate: Callable[[E], bool],
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[E]:
        """Find entities matching a predicate, in insertion order"""
        pass

    @abstractmethod
    async def count_where(self, entity_type: Type[E], predicate: Callable[[E], bool]) -> int:
        """Count entities matching a predicate"""
        pass

    @abstractmethod
    async def save(self, entity: E) -> E:
        """Insert or replace an entity"""
        pass

    @abstractmethod
    async def delete(self, entity: BaseModel) -> bool:
        """Delete an entity, returning False if it was not stored"""
        pass

    @abstractmethod
    def locked(self, keys: Iterable[UUID]) -> AsyncContextManager[None]:
        """Hold exclusive locks on ``keys`` for the duration of the block.

        Used to make check-then-insert sequences atomic per room.
        """
        pass
