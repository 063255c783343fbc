from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

WriteAction = Literal["create", "update"]


@dataclass
class StagedWrite:
    """One record write to stage inside a store transaction."""
    action: WriteAction
    collection: str
    record_id: str
    data: Dict[str, Any]
    permissions: List[str] = field(default_factory=list)


class RecordStore(ABC):
    """
    Capability interface of a transactional document/row store.

    Implementations translate their native failures into the errors
    defined in mealsync.core.errors.
    """

    @abstractmethod
    async def get_by_id(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Returns the stored record, or None when the key is free."""

    @abstractmethod
    async def open_transaction(self, ttl: int) -> str:
        """Opens a transaction living at most `ttl` seconds and returns its id."""

    @abstractmethod
    async def stage_writes(self, transaction_id: str, writes: List[StagedWrite]) -> None:
        """Stages writes into an open transaction. Nothing is visible before commit."""

    @abstractmethod
    async def commit(self, transaction_id: str) -> None:
        ...

    @abstractmethod
    async def rollback(self, transaction_id: str) -> None:
        ...

    async def close(self) -> None:
        """Releases connections held by the store."""
