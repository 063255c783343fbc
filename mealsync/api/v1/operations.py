import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from mealsync.api.deps import get_app_settings, get_writer, read_payload
from mealsync.core.config import Settings
from mealsync.schemas.operations import OperationEnvelope
from mealsync.services.product_service import (
    parse_input,
    batch_update_products,
    create_group_purchase_with_sync,
)
from mealsync.services.writer import BatchedTransactionalWriter

router = APIRouter()
log = logging.getLogger(__name__)

HANDLERS = {
    "batchUpdateProducts": batch_update_products,
    "createGroupPurchaseWithSync": create_group_purchase_with_sync,
}


@router.post("")
async def dispatch_operation_endpoint(
    payload: Dict[str, Any] = Depends(read_payload),
    writer: BatchedTransactionalWriter = Depends(get_writer),
    settings: Settings = Depends(get_app_settings),
):
    """Runs the sub-operation named by the `{operation, data}` envelope."""
    envelope = parse_input(OperationEnvelope, payload)
    log.info(f"Dispatching operation {envelope.operation}")
    result = await HANDLERS[envelope.operation](writer, settings, envelope.data)
    return result.model_dump(by_alias=True)
