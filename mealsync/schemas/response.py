from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ProductsListResponse(_CamelModel):
    """Response for a committed event and its products."""
    success: bool = True
    event_id: str = Field(..., alias="eventId")
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    transaction_ids: List[str] = Field(default_factory=list, alias="transactionIds")
    events_created: int = Field(0, alias="eventsCreated")
    products_created: int = Field(0, alias="productsCreated")
    message: str


class BatchUpdateResponse(_CamelModel):
    success: bool = True
    update_type: str = Field(..., alias="updateType")
    updated: int
    transaction_ids: List[str] = Field(default_factory=list, alias="transactionIds")
    message: str


class GroupPurchaseResponse(_CamelModel):
    success: bool = True
    main_id: str = Field(..., alias="mainId")
    purchase_id: str = Field(..., alias="purchaseId")
    transaction_ids: List[str] = Field(default_factory=list, alias="transactionIds")
    products_synced: int = Field(0, alias="productsSynced")
    message: str


class ErrorResponse(_CamelModel):
    """Failure body. `rolledBack` only appears once a rollback was attempted."""
    error: str
    code: Optional[str] = None
    rolled_back: Optional[bool] = Field(None, alias="rolledBack")
