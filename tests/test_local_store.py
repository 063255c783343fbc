import pytest
import pytest_asyncio
from tortoise import Tortoise

from mealsync.core.db import MODELS_MODULES
from mealsync.core.errors import NotFound, OperationLimitExceeded, RemoteConflict
from mealsync.models import StagedOperation, StoreTransaction, TransactionStatus
from mealsync.services.product_service import create_products_list
from mealsync.stores.base import StagedWrite
from mealsync.stores.local import LocalStore
from tests.conftest import make_settings, make_writer


@pytest_asyncio.fixture
async def store():
    await Tortoise.init(db_url="sqlite://:memory:", modules={"models": MODELS_MODULES})
    await Tortoise.generate_schemas()
    yield LocalStore(max_operations=3)
    await Tortoise.close_connections()


def create(record_id, collection="products", **data):
    return StagedWrite(action="create", collection=collection, record_id=record_id, data=data)


@pytest.mark.asyncio
async def test_staged_writes_are_invisible_until_commit(store):
    tx = await store.open_transaction(120)
    await store.stage_writes(tx, [create("A", qty=1), create("B", qty=2)])

    assert await store.get_by_id("products", "A") is None

    await store.commit(tx)

    record = await store.get_by_id("products", "A")
    assert record["qty"] == 1
    assert record["$id"] == "A"
    assert (await StoreTransaction.get(id=tx)).status == TransactionStatus.COMMITTED
    assert await StagedOperation.all().count() == 0


@pytest.mark.asyncio
async def test_staging_past_the_cap_is_refused(store):
    tx = await store.open_transaction(120)
    await store.stage_writes(tx, [create("A"), create("B")])

    with pytest.raises(OperationLimitExceeded):
        await store.stage_writes(tx, [create("C"), create("D")])


@pytest.mark.asyncio
async def test_commit_conflict_leaves_nothing_behind(store):
    first = await store.open_transaction(120)
    await store.stage_writes(first, [create("A")])
    await store.commit(first)

    second = await store.open_transaction(120)
    await store.stage_writes(second, [create("B"), create("A")])
    with pytest.raises(RemoteConflict):
        await store.commit(second)

    assert await store.get_by_id("products", "B") is None
    await store.rollback(second)
    assert (await StoreTransaction.get(id=second)).status == TransactionStatus.ROLLED_BACK


@pytest.mark.asyncio
async def test_terminal_transactions_reject_commit_and_rollback(store):
    tx = await store.open_transaction(120)
    await store.commit(tx)

    with pytest.raises(RemoteConflict):
        await store.commit(tx)
    with pytest.raises(RemoteConflict):
        await store.rollback(tx)
    with pytest.raises(NotFound):
        await store.rollback("unknown")


@pytest.mark.asyncio
async def test_expired_transaction_refuses_writes(store):
    tx = await store.open_transaction(120)
    await StoreTransaction.filter(id=tx).update(expires_at=0)

    with pytest.raises(RemoteConflict):
        await store.stage_writes(tx, [create("A")])


@pytest.mark.asyncio
async def test_update_merges_fields(store):
    tx = await store.open_transaction(120)
    await store.stage_writes(tx, [create("A", name="Carotte", store=None)])
    await store.commit(tx)

    tx = await store.open_transaction(120)
    await store.stage_writes(tx, [StagedWrite(action="update", collection="products", record_id="A",
                                              data={"store": "Marché"})])
    await store.commit(tx)

    record = await store.get_by_id("products", "A")
    assert record["name"] == "Carotte"
    assert record["store"] == "Marché"


@pytest.mark.asyncio
async def test_writer_end_to_end(store):
    writer = make_writer(store, max_operations=3)
    payload = {
        "eventId": "E1",
        "eventData": {"name": "Week-end", "ingredients": [{"ingredientHugoUuid": f"I{i}"} for i in range(5)]},
        "contentHash": "h",
        "userId": "U",
    }

    response = await create_products_list(writer, make_settings(), payload)

    # Parent transaction plus ceil(5 / 3) batches
    assert len(response.transaction_ids) == 3
    event = await store.get_by_id("main", "E1")
    assert event["name"] == "Week-end"
    assert event["$permissions"] == ['read("user:U")', 'update("user:U")', 'delete("user:U")']
    assert (await store.get_by_id("products", "I4_E1"))["mainId"] == "E1"


@pytest.mark.asyncio
async def test_writer_failure_discards_the_parent(store):
    """A later batch conflicting leaves earlier committed batches but no event record."""
    writer = make_writer(store, max_operations=3)
    ingredients = [{"ingredientHugoUuid": name} for name in ("A", "B", "C", "A")]
    payload = {"eventId": "E1", "eventData": {"ingredients": ingredients}, "contentHash": "h", "userId": "U"}

    with pytest.raises(RemoteConflict) as excinfo:
        await create_products_list(writer, make_settings(), payload)

    assert excinfo.value.rolled_back is True
    assert await store.get_by_id("main", "E1") is None
    assert await store.get_by_id("products", "A_E1") is not None
