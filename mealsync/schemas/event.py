from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class EventData(BaseModel):
    """The planning occasion and its consolidated ingredients."""
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    all_dates: List[Any] = Field(default_factory=list, alias="allDates")
    ingredients: List[Dict[str, Any]] = Field(default_factory=list)


class CreateProductsListRequest(BaseModel):
    """Schema for the products-list creation body."""
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(..., alias="eventId", min_length=1)
    event_data: EventData = Field(..., alias="eventData")
    content_hash: str = Field(..., alias="contentHash", min_length=1)
    user_id: str = Field(..., alias="userId", min_length=1)
