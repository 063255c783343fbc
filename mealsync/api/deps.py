import json
from typing import Any, Dict

from fastapi import Request

from mealsync.core.config import Settings
from mealsync.core.errors import ValidationFailed
from mealsync.services.writer import BatchedTransactionalWriter


def get_writer(request: Request) -> BatchedTransactionalWriter:
    return request.app.state.writer


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def unwrap_payload(body: Any) -> Dict[str, Any]:
    """
    Accepts the data directly, or wrapped in a `payload` / `body` key whose
    value is either an object or a JSON-encoded string.
    """
    for _ in range(3):
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except ValueError:
                raise ValidationFailed("Request body is not valid JSON")
            continue
        if isinstance(body, dict):
            for key in ("payload", "body"):
                if key in body and len(body) == 1:
                    body = body[key]
                    break
            else:
                return body
            continue
        break
    if not isinstance(body, dict) or not body:
        raise ValidationFailed("No data received in the request")
    return body


async def read_payload(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        raise ValidationFailed("No data received in the request")
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationFailed("Request body is not valid UTF-8")
    return unwrap_payload(text)
