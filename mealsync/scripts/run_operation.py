# mealsync/scripts/run_operation.py
"""
Runs one write sequence outside the HTTP server, against the store named by
the environment:

    python -m mealsync.scripts.run_operation event.json
    python -m mealsync.scripts.run_operation update.json --operation batchUpdateProducts
"""
import argparse
import asyncio
import json
import logging

from mealsync.core.config import LOG_FORMAT, get_settings
from mealsync.core.db import init_db, close_db
from mealsync.core.errors import MealSyncError
from mealsync.main import build_store
from mealsync.services.product_service import (
    batch_update_products,
    create_group_purchase_with_sync,
    create_products_list,
)
from mealsync.services.writer import BatchedTransactionalWriter, WriterOptions

OPERATIONS = {
    "createProductsList": create_products_list,
    "batchUpdateProducts": batch_update_products,
    "createGroupPurchaseWithSync": create_group_purchase_with_sync,
}


async def run(path: str, operation: str) -> int:
    settings = get_settings()
    if settings.store_backend == "local":
        await init_db(settings.database_url)
    store = build_store(settings)
    writer = BatchedTransactionalWriter(store, WriterOptions.from_settings(settings))

    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        result = await OPERATIONS[operation](writer, settings, data)
        print(json.dumps(result.model_dump(by_alias=True), indent=2, ensure_ascii=False))
        return 0
    except MealSyncError as e:
        print(json.dumps({"error": e.message, "code": e.code, "rolledBack": e.rolled_back}, indent=2))
        return 1
    finally:
        await store.close()
        if settings.store_backend == "local":
            await close_db()


def main():
    parser = argparse.ArgumentParser(description="Run one MealSync write operation from a JSON file.")
    parser.add_argument("path", help="JSON file holding the operation data")
    parser.add_argument("--operation", choices=sorted(OPERATIONS), default="createProductsList")
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level.upper(), format=LOG_FORMAT)
    raise SystemExit(asyncio.run(run(args.path, args.operation)))


if __name__ == "__main__":
    main()
