import json
import uuid
from typing import Any, Dict, List

from mealsync.stores.base import StagedWrite


def user_permissions(user_id: str) -> List[str]:
    """Owner-only read/update/delete permissions."""
    return [
        f'read("user:{user_id}")',
        f'update("user:{user_id}")',
        f'delete("user:{user_id}")',
    ]


def product_id(ingredient_uuid: str, event_id: str) -> str:
    return f"{ingredient_uuid}_{event_id}"


def _blob(value: Any) -> str:
    # Nested structures are stored as opaque text
    return json.dumps(value if value else [], ensure_ascii=False)


def build_event_write(collection: str, event_id: str, event_data: Dict[str, Any],
                      content_hash: str, user_id: str) -> StagedWrite:
    return StagedWrite(
        action="create",
        collection=collection,
        record_id=event_id,
        data={
            "name": event_data.get("name") or f"Événement {event_id}",
            "originalDataHash": content_hash,
            "isActive": True,
            "createdBy": user_id,
            "status": "active",
            "error": None,
            "allDates": event_data.get("allDates") or [],
        },
        permissions=user_permissions(user_id),
    )


def build_product_write(collection: str, event_id: str, ingredient: Dict[str, Any],
                        user_id: str) -> StagedWrite:
    """
    One product row per ingredient. The row key is derived from the
    ingredient identifier and the event so it is stable across submissions.
    """
    ingredient_uuid = ingredient.get("ingredientHugoUuid") or uuid.uuid4().hex
    return StagedWrite(
        action="create",
        collection=collection,
        record_id=product_id(ingredient_uuid, event_id),
        data={
            "productHugoUuid": ingredient_uuid,
            "productName": ingredient.get("ingredientName") or "",
            "productType": ingredient.get("ingType") or "",
            "mainId": event_id,
            "totalNeededConsolidated": _blob(ingredient.get("totalNeededConsolidated")),
            "totalNeededRaw": _blob(ingredient.get("totalNeededRaw")),
            "neededConsolidatedByDate": _blob(ingredient.get("neededConsolidatedByDate")),
            "recipesOccurrences": _blob(ingredient.get("recipesOccurrences")),
            "pFrais": bool(ingredient.get("pFrais", False)),
            "pSurgel": bool(ingredient.get("pSurgel", False)),
            "nbRecipes": ingredient.get("nbRecipes") or 0,
            "totalAssiettes": ingredient.get("totalAssiettes") or 0,
            "conversionRules": ingredient.get("conversionRules"),
        },
        permissions=user_permissions(user_id),
    )


def build_update_write(collection: str, record_id: str, fields: Dict[str, Any]) -> StagedWrite:
    # Identity keys never travel inside the update data
    data = {k: v for k, v in fields.items() if k not in ("$id", "id", "productId")}
    return StagedWrite(action="update", collection=collection, record_id=record_id, data=data)


def build_purchase_write(collection: str, purchase_id: str, main_id: str,
                         invoice_data: Dict[str, Any], product_ids: List[str]) -> StagedWrite:
    data = {k: v for k, v in invoice_data.items() if k not in ("$id", "id")}
    data["mainId"] = main_id
    data["productIds"] = json.dumps(product_ids)
    created_by = invoice_data.get("createdBy")
    return StagedWrite(
        action="create",
        collection=collection,
        record_id=purchase_id,
        data=data,
        permissions=user_permissions(created_by) if created_by else [],
    )
