import pytest
from typing import Any, Dict, List, Optional

from mealsync.core.config import Settings
from mealsync.core.errors import NotFound, RemoteConflict
from mealsync.services.writer import BatchedTransactionalWriter, WriterOptions
from mealsync.stores.base import RecordStore, StagedWrite


class FakeStore(RecordStore):
    """
    In-memory RecordStore that records every call.

    commit_failures maps the n-th commit call (1-based) to the exception it raises.
    rollback_error, when set, is raised by every rollback call.
    """

    def __init__(self):
        self.records: Dict[tuple, Dict[str, Any]] = {}
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.commit_failures: Dict[int, Exception] = {}
        self.stage_error: Optional[Exception] = None
        self.rollback_error: Optional[Exception] = None
        self._commits = 0

    def seed(self, collection: str, record_id: str, data: Optional[Dict[str, Any]] = None):
        self.records[(collection, record_id)] = dict(data or {})

    def calls_named(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def get_by_id(self, collection, record_id):
        self.calls.append(("get", collection, record_id))
        return self.records.get((collection, record_id))

    async def open_transaction(self, ttl):
        transaction_id = f"tx{len(self.transactions) + 1}"
        self.transactions[transaction_id] = {"status": "pending", "writes": [], "ttl": ttl}
        self.calls.append(("open", transaction_id))
        return transaction_id

    async def stage_writes(self, transaction_id, writes: List[StagedWrite]):
        self.calls.append(("stage", transaction_id, [w.record_id for w in writes]))
        if self.stage_error:
            raise self.stage_error
        self.transactions[transaction_id]["writes"].extend(writes)

    async def commit(self, transaction_id):
        self._commits += 1
        self.calls.append(("commit", transaction_id))
        if self._commits in self.commit_failures:
            raise self.commit_failures[self._commits]
        tx = self.transactions[transaction_id]
        if tx["status"] != "pending":
            raise RemoteConflict(f"Transaction {transaction_id} is already {tx['status']}")
        for write in tx["writes"]:
            key = (write.collection, write.record_id)
            if write.action == "create":
                if key in self.records:
                    raise RemoteConflict(f"{write.record_id} exists")
                self.records[key] = dict(write.data)
            else:
                if key not in self.records:
                    raise NotFound(f"{write.record_id} missing")
                self.records[key].update(write.data)
        tx["status"] = "committed"

    async def rollback(self, transaction_id):
        self.calls.append(("rollback", transaction_id))
        if self.rollback_error:
            raise self.rollback_error
        tx = self.transactions[transaction_id]
        if tx["status"] != "pending":
            raise RemoteConflict(f"Transaction {transaction_id} is already {tx['status']}")
        tx["status"] = "rolled_back"


def make_settings(**overrides) -> Settings:
    values = dict(
        store_backend="local",
        collection_main="main",
        collection_products="products",
        collection_purchases="purchases",
        rollback_retry_delay=0,
    )
    values.update(overrides)
    return Settings(**values)


def make_writer(store: RecordStore, **options) -> BatchedTransactionalWriter:
    values = dict(rollback_delay=0)
    values.update(options)
    return BatchedTransactionalWriter(store, WriterOptions(**values))


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def settings():
    return make_settings()
