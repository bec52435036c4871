from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Request

from health_api.core.config import get_settings
from health_api.repositories.kv_store import KVStore

from ._common import error, read_json, service

router = APIRouter(prefix="/cache", tags=["cache"])
logger = logging.getLogger(__name__)


def _kv(request: Request) -> KVStore:
    return service(request, "kv_store")


def _encode(value: Any) -> str:
    """Strings are stored as-is; other JSON values as their JSON text."""
    return value if isinstance(value, str) else json.dumps(value)


def _decode(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@router.get("/item")
def get_item(request: Request):
    try:
        raw = _kv(request).get(get_settings().cache_item_key)
    except Exception:
        logger.exception("cache read failed")
        return error("Failed to fetch data", 500)
    return {"result": _decode(raw)}


@router.post("/item")
async def save_item(request: Request):
    payload = await read_json(request)
    key = payload.get("key")
    value = payload.get("value")
    try:
        if not key or value is None:
            raise ValueError("key and value are required")
        _kv(request).set(str(key), _encode(value))
    except Exception:
        logger.exception("cache write failed")
        return error("Failed to save data", 500)
    return {"message": "Data saved successfully"}
