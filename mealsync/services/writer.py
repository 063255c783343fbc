import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional

from mealsync.core.config import Settings
from mealsync.core.errors import AlreadyExists, MealSyncError, OperationLimitExceeded, UnexpectedRemoteError
from mealsync.stores.base import RecordStore, StagedWrite

log = logging.getLogger(__name__)


@dataclass
class WriterOptions:
    max_operations: int = 99
    mode: Literal["auto", "single", "batched"] = "auto"
    staging: Literal["bulk", "per_row"] = "bulk"
    transaction_ttl: int = 120
    rollback_attempts: int = 3
    rollback_delay: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "WriterOptions":
        return cls(
            max_operations=settings.max_operations_per_transaction,
            mode=settings.write_mode,
            staging=settings.staging_mode,
            transaction_ttl=settings.transaction_ttl,
            rollback_attempts=settings.rollback_attempts,
            rollback_delay=settings.rollback_retry_delay,
        )


@dataclass
class WriteResult:
    transaction_ids: List[str] = field(default_factory=list)
    parent_count: int = 0
    child_count: int = 0


def partition(writes: List[StagedWrite], size: int) -> List[List[StagedWrite]]:
    """Splits writes into consecutive batches of at most `size` elements."""
    return [writes[start:start + size] for start in range(0, len(writes), size)]


class BatchedTransactionalWriter:
    """
    Writes one optional parent record plus an ordered list of child records
    through a RecordStore, keeping every transaction under the store's
    per-transaction operation cap.

    Every opened transaction id goes into a rollback ledger. On failure each
    ledger entry is rolled back (with bounded retries) and the original error
    is re-raised. Child batches that already committed stay committed.
    """

    def __init__(self, store: RecordStore, options: WriterOptions):
        self.store = store
        self.options = options

    async def write(
        self,
        parent: Optional[StagedWrite],
        children: List[StagedWrite],
        guard_parent: bool = True,
    ) -> WriteResult:
        ledger: List[str] = []
        try:
            if parent is not None and guard_parent:
                await self._ensure_absent(parent)

            if self._fits_single(parent, children):
                await self._write_single(parent, children, ledger)
            else:
                await self._write_batched(parent, children, ledger)

            return WriteResult(
                transaction_ids=list(ledger),
                parent_count=1 if parent is not None else 0,
                child_count=len(children),
            )
        except Exception as e:
            error = e if isinstance(e, MealSyncError) else UnexpectedRemoteError(str(e) or repr(e))
            log.error(f"Write sequence failed after opening {len(ledger)} transaction(s): {error.message}")
            if ledger:
                await self._rollback_all(ledger)
                error.rolled_back = True
            if error is e:
                raise
            raise error from e

    async def _ensure_absent(self, parent: StagedWrite):
        existing = await self.store.get_by_id(parent.collection, parent.record_id)
        if existing is not None:
            log.info(f"Record {parent.record_id} already exists in {parent.collection}")
            raise AlreadyExists(f"Record {parent.record_id} already exists")

    def _fits_single(self, parent: Optional[StagedWrite], children: List[StagedWrite]) -> bool:
        total = len(children) + (1 if parent is not None else 0)
        mode = self.options.mode
        if mode == "single":
            if total > self.options.max_operations:
                raise OperationLimitExceeded(
                    f"{total} operations exceed the limit of {self.options.max_operations} per transaction"
                )
            return True
        if mode == "batched":
            return False
        return total <= self.options.max_operations

    async def _open(self, ledger: List[str]) -> str:
        transaction_id = await self.store.open_transaction(self.options.transaction_ttl)
        ledger.append(transaction_id)
        log.info(f"Transaction opened: {transaction_id}")
        return transaction_id

    async def _stage(self, transaction_id: str, writes: List[StagedWrite]):
        if not writes:
            return
        if self.options.staging == "bulk":
            await self.store.stage_writes(transaction_id, writes)
        else:
            for write in writes:
                await self.store.stage_writes(transaction_id, [write])

    async def _write_single(self, parent, children, ledger):
        writes = ([parent] if parent is not None else []) + list(children)
        transaction_id = await self._open(ledger)
        await self._stage(transaction_id, writes)
        await self.store.commit(transaction_id)
        log.info(f"Transaction {transaction_id} committed with {len(writes)} operation(s)")

    async def _write_batched(self, parent, children, ledger):
        parent_tx = None
        if parent is not None:
            parent_tx = await self._open(ledger)
            await self._stage(parent_tx, [parent])

        batches = partition(children, self.options.max_operations)
        for index, batch in enumerate(batches, start=1):
            transaction_id = await self._open(ledger)
            await self._stage(transaction_id, batch)
            await self.store.commit(transaction_id)
            log.info(f"Batch {index}/{len(batches)} committed in {transaction_id} ({len(batch)} operation(s))")

        # The parent becomes visible only once every child batch is durable
        if parent_tx is not None:
            await self.store.commit(parent_tx)
            log.info(f"Parent transaction {parent_tx} committed")

    async def _rollback_all(self, ledger: List[str]):
        for transaction_id in ledger:
            await self._rollback_one(transaction_id)

    async def _rollback_one(self, transaction_id: str) -> bool:
        attempts = self.options.rollback_attempts
        for attempt in range(1, attempts + 1):
            try:
                await self.store.rollback(transaction_id)
                log.info(f"Transaction {transaction_id} rolled back")
                return True
            except Exception as e:
                log.warning(f"Rollback of {transaction_id} failed (attempt {attempt}/{attempts}): {e}")
                if attempt < attempts:
                    await asyncio.sleep(self.options.rollback_delay)
        log.error(f"Rollback of {transaction_id} abandoned after {attempts} attempts")
        return False
