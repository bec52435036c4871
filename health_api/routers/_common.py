from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


def error(message: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


async def read_json(request: Request) -> dict:
    """Request body as a dict; malformed or non-object bodies read as empty."""
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def service(request: Request, name: str):
    svc = getattr(getattr(request.app, "state", None), name, None)
    if svc is None:
        raise RuntimeError(f"Service {name!r} is not configured")
    return svc
