import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from tortoise.transactions import in_transaction

from mealsync.core.errors import NotFound, OperationLimitExceeded, RemoteConflict
from mealsync.models.store import StagedOperation, StoredRecord, StoreTransaction, TransactionStatus
from mealsync.stores.base import RecordStore, StagedWrite

log = logging.getLogger(__name__)


class LocalStore(RecordStore):
    """
    RecordStore over a relational database through Tortoise ORM.
    Emulates the remote transaction lifecycle: staged operations are kept
    in their own table and replayed atomically on commit.
    """

    def __init__(self, max_operations: int = 100):
        self.max_operations = max_operations

    async def _pending(self, transaction_id: str, conn: Any) -> StoreTransaction:
        tx = await StoreTransaction.get_or_none(id=transaction_id).using_db(conn)
        if not tx:
            raise NotFound(f"Transaction {transaction_id} not found", code="transaction_not_found")
        if tx.status != TransactionStatus.PENDING:
            raise RemoteConflict(f"Transaction {transaction_id} is already {tx.status.value}")
        if tx.expires_at < time.time():
            raise RemoteConflict(f"Transaction {transaction_id} has expired")
        return tx

    async def get_by_id(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = await StoredRecord.get_or_none(collection=collection, record_id=record_id)
        if not record:
            return None
        return dict(record.data, **{"$id": record.record_id, "$permissions": record.permissions})

    async def open_transaction(self, ttl: int) -> str:
        tx = await StoreTransaction.create(
            id=uuid.uuid4().hex,
            status=TransactionStatus.PENDING,
            expires_at=time.time() + ttl,
        )
        return tx.id

    async def stage_writes(self, transaction_id: str, writes: List[StagedWrite]) -> None:
        async with in_transaction() as conn:
            tx = await self._pending(transaction_id, conn)
            staged = await StagedOperation.filter(store_transaction_id=tx.id).using_db(conn).count()
            if staged + len(writes) > self.max_operations:
                raise OperationLimitExceeded(
                    f"Transaction {tx.id} would hold {staged + len(writes)} operations, "
                    f"limit is {self.max_operations}"
                )
            for offset, write in enumerate(writes):
                await StagedOperation.create(
                    store_transaction=tx,
                    seq=staged + offset,
                    action=write.action,
                    collection=write.collection,
                    record_id=write.record_id,
                    data=write.data,
                    permissions=write.permissions,
                    using_db=conn,
                )

    async def commit(self, transaction_id: str) -> None:
        async with in_transaction() as conn:
            tx = await self._pending(transaction_id, conn)
            operations = await StagedOperation.filter(store_transaction_id=tx.id).using_db(conn).order_by("seq")

            for op in operations:
                existing = await StoredRecord.get_or_none(
                    collection=op.collection, record_id=op.record_id
                ).using_db(conn)

                if op.action == "create":
                    if existing:
                        raise RemoteConflict(f"Record {op.record_id} already exists in {op.collection}")
                    await StoredRecord.create(
                        collection=op.collection,
                        record_id=op.record_id,
                        data=op.data,
                        permissions=op.permissions,
                        using_db=conn,
                    )
                elif op.action == "update":
                    if not existing:
                        raise NotFound(f"Record {op.record_id} not found in {op.collection}")
                    existing.data = {**existing.data, **op.data}
                    if op.permissions:
                        existing.permissions = op.permissions
                    await existing.save(using_db=conn)
                else:
                    raise ValueError(f"Unknown staged action: {op.action}")

            await StagedOperation.filter(store_transaction_id=tx.id).using_db(conn).delete()
            tx.status = TransactionStatus.COMMITTED
            await tx.save(update_fields=['status', 'updated_at'], using_db=conn)
        log.debug(f"Local transaction {transaction_id} committed ({len(operations)} operations)")

    async def rollback(self, transaction_id: str) -> None:
        async with in_transaction() as conn:
            tx = await StoreTransaction.get_or_none(id=transaction_id).using_db(conn)
            if not tx:
                raise NotFound(f"Transaction {transaction_id} not found", code="transaction_not_found")
            if tx.status != TransactionStatus.PENDING:
                raise RemoteConflict(f"Transaction {transaction_id} is already {tx.status.value}")

            await StagedOperation.filter(store_transaction_id=tx.id).using_db(conn).delete()
            tx.status = TransactionStatus.ROLLED_BACK
            await tx.save(update_fields=['status', 'updated_at'], using_db=conn)
