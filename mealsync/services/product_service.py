import logging
import uuid
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel, ValidationError

from mealsync.core.config import Settings
from mealsync.core.errors import NotFound, ValidationFailed
from mealsync.schemas.event import CreateProductsListRequest
from mealsync.schemas.operations import BatchUpdateProductsRequest, GroupPurchaseRequest
from mealsync.schemas.response import BatchUpdateResponse, GroupPurchaseResponse, ProductsListResponse
from mealsync.services.payloads import (
    build_event_write,
    build_product_write,
    build_purchase_write,
    build_update_write,
)
from mealsync.services.writer import BatchedTransactionalWriter

log = logging.getLogger(__name__)

REQUIRED_EVENT_FIELDS = ("eventId", "eventData", "contentHash", "userId")

M = TypeVar("M", bound=BaseModel)


def parse_input(model: Type[M], data: Dict[str, Any]) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationFailed(f"Invalid input data: {details}")


def is_missing(name: str, value: Any) -> bool:
    # An empty eventData object is an event with no ingredients
    if name == "eventData":
        return value is None or value == ""
    return not value


async def create_products_list(writer: BatchedTransactionalWriter, settings: Settings,
                               payload: Dict[str, Any]) -> ProductsListResponse:
    """
    Creates the event record and one product row per ingredient.
    Rejects the submission when the event already exists.
    """
    # Checked before anything touches the store
    missing = [name for name in REQUIRED_EVENT_FIELDS if is_missing(name, payload.get(name))]
    if missing:
        log.error(f"Missing data: {missing}")
        raise ValidationFailed(
            f"Missing data: eventId, eventData, contentHash, userId are required (missing: {', '.join(missing)})"
        )
    request = parse_input(CreateProductsListRequest, payload)
    event_data = request.event_data.model_dump(by_alias=True)

    log.info(f"Creating products list for event {request.event_id} by {request.user_id}")

    parent = build_event_write(
        settings.collection_main, request.event_id, event_data, request.content_hash, request.user_id
    )
    children = [
        build_product_write(settings.collection_products, request.event_id, ingredient, request.user_id)
        for ingredient in request.event_data.ingredients
    ]

    result = await writer.write(parent, children)
    log.info(f"Event {request.event_id} created with {result.child_count} products")

    return ProductsListResponse(
        event_id=request.event_id,
        transaction_id=result.transaction_ids[0] if result.transaction_ids else None,
        transaction_ids=result.transaction_ids,
        events_created=result.parent_count,
        products_created=result.child_count,
        message="Products list created successfully",
    )


async def batch_update_products(writer: BatchedTransactionalWriter, settings: Settings,
                                data: Dict[str, Any]) -> BatchUpdateResponse:
    """Applies the same update, or one update per product, across many product rows."""
    request = parse_input(BatchUpdateProductsRequest, data)

    if request.products:
        writes = []
        for product in request.products:
            record_id = product.get("$id") or product.get("id") or product.get("productId")
            if not record_id:
                raise ValidationFailed("Every entry in products needs an $id, id or productId")
            writes.append(build_update_write(settings.collection_products, str(record_id), product))
    else:
        writes = [
            build_update_write(settings.collection_products, record_id, request.update_data)
            for record_id in request.product_ids
        ]

    log.info(f"Batch update '{request.update_type}' on {len(writes)} products")
    result = await writer.write(None, writes)

    return BatchUpdateResponse(
        update_type=request.update_type,
        updated=result.child_count,
        transaction_ids=result.transaction_ids,
        message=f"{result.child_count} products updated",
    )


async def create_group_purchase_with_sync(writer: BatchedTransactionalWriter, settings: Settings,
                                          data: Dict[str, Any]) -> GroupPurchaseResponse:
    """
    Records a purchase for an event and stamps every purchased product with
    the purchase id, in the same write sequence.
    """
    request = parse_input(GroupPurchaseRequest, data)

    product_ids = []
    for item in request.batch_data:
        if not item.get("productId"):
            raise ValidationFailed("Every entry in batchData needs a productId")
        product_ids.append(str(item["productId"]))

    if await writer.store.get_by_id(settings.collection_main, request.main_id) is None:
        raise NotFound(f"Event {request.main_id} not found")

    invoice = request.invoice_data
    purchase_id = str(invoice.get("$id") or invoice.get("id") or uuid.uuid4().hex)

    parent = build_purchase_write(
        settings.collection_purchases, purchase_id, request.main_id, invoice, product_ids
    )
    children = [
        build_update_write(settings.collection_products, product_id, dict(item, purchaseId=purchase_id))
        for product_id, item in zip(product_ids, request.batch_data)
    ]

    log.info(f"Group purchase {purchase_id} for event {request.main_id}: syncing {len(children)} products")
    result = await writer.write(parent, children)

    return GroupPurchaseResponse(
        main_id=request.main_id,
        purchase_id=purchase_id,
        transaction_ids=result.transaction_ids,
        products_synced=result.child_count,
        message="Group purchase created and products synced",
    )
