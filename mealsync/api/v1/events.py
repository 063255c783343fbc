import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from mealsync.api.deps import get_app_settings, get_writer, read_payload
from mealsync.core.config import Settings
from mealsync.schemas.response import ProductsListResponse
from mealsync.services.product_service import create_products_list
from mealsync.services.writer import BatchedTransactionalWriter

router = APIRouter()
log = logging.getLogger(__name__)


@router.post(
    "/products-list",
    status_code=status.HTTP_200_OK,
    response_model=ProductsListResponse,
    response_model_by_alias=True,
)
async def create_products_list_endpoint(
    payload: Dict[str, Any] = Depends(read_payload),
    writer: BatchedTransactionalWriter = Depends(get_writer),
    settings: Settings = Depends(get_app_settings),
):
    """
    Creates an event and all of its product rows.
    409 when the event exists already, 429 when the store refuses the operation count.
    """
    return await create_products_list(writer, settings, payload)
