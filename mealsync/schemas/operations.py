from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, List, Literal, Optional


class OperationEnvelope(BaseModel):
    """`{operation, data}` body selecting one sub-operation."""
    operation: Literal["batchUpdateProducts", "createGroupPurchaseWithSync"]
    data: Dict[str, Any] = Field(default_factory=dict)


class BatchUpdateProductsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    update_type: str = Field(..., alias="updateType", min_length=1)
    product_ids: Optional[List[str]] = Field(None, alias="productIds")
    update_data: Optional[Dict[str, Any]] = Field(None, alias="updateData")
    products: Optional[List[Dict[str, Any]]] = None

    @model_validator(mode="after")
    def check_targets(self) -> "BatchUpdateProductsRequest":
        if self.products:
            return self
        if not self.product_ids:
            raise ValueError("productIds or products is required")
        if not self.update_data:
            raise ValueError("updateData is required with productIds")
        return self


class GroupPurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    main_id: str = Field(..., alias="mainId", min_length=1)
    batch_data: List[Dict[str, Any]] = Field(..., alias="batchData")
    invoice_data: Dict[str, Any] = Field(..., alias="invoiceData")
