from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from sqlalchemy.exc import IntegrityError

from health_api.core.config import get_settings
from health_api.core.rate_limiter import rate_limit_ip
from health_api.services.password_reset_service import (
    CredentialResetService,
    InvalidCredentials,
    InvalidInput,
    InvalidOrExpiredCode,
    UnknownAccount,
    UpdateFailed,
)
from health_api.services.user_directory import UserDirectory

from ._common import error, read_json, service

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


def _resets(request: Request) -> CredentialResetService:
    return service(request, "reset_service")


def _directory(request: Request) -> UserDirectory:
    return service(request, "user_directory")


def _public_user(user) -> dict:
    return {"id": user.id, "username": user.username, "email": user.email}


@router.post("/reset-password")
async def reset_password(request: Request):
    rate_limit_ip(request, "auth:reset", limit=10, window_seconds=300)
    payload = await read_json(request)
    try:
        _resets(request).reset_password(
            str(payload.get("userId") or ""),
            str(payload.get("code") or ""),
            str(payload.get("newPassword") or ""),
        )
    except InvalidInput as exc:
        return error(exc.message, 400)
    except InvalidOrExpiredCode:
        return error("Invalid or expired verification code", 401)
    except UpdateFailed:
        return error("Failed to update password", 500)
    except Exception:
        logger.exception("reset-password failed")
        return error(INTERNAL_ERROR, 500)
    return {"success": True, "message": "Password updated successfully"}


@router.get("/verify")
def verify_user(request: Request, userId: str = ""):
    user_id = (userId or "").strip()
    if not user_id:
        return error("User ID is required", 400)
    try:
        user = _directory(request).lookup_by_id(user_id)
    except Exception:
        logger.exception("user existence check failed")
        return error(INTERNAL_ERROR, 500, exists=False)
    return {"exists": user is not None}


@router.post("/forgot-password")
async def forgot_password(request: Request):
    rate_limit_ip(request, "auth:forgot", limit=5, window_seconds=300)
    payload = await read_json(request)
    method = str(payload.get("method") or "")
    try:
        issued = _resets(request).request_code(
            method,
            email=str(payload.get("email") or ""),
            phone=str(payload.get("phone") or ""),
        )
    except InvalidInput as exc:
        return error(exc.message, 400)
    except UnknownAccount as exc:
        return error(exc.message, 404)
    except Exception:
        logger.exception("forgot-password failed")
        return error(INTERNAL_ERROR, 500)
    channel = "email" if method == "email" else "phone"
    body = {
        "success": True,
        "userId": issued.user_id,
        "message": f"Verification code sent to your {channel}",
    }
    # Code delivery is external; outside production the code is echoed back.
    if get_settings().app_env != "prod":
        body["code"] = issued.code
    return body


@router.post("/change-password")
async def change_password(request: Request):
    payload = await read_json(request)
    try:
        _resets(request).change_password(
            str(payload.get("userId") or ""),
            str(payload.get("currentPassword") or ""),
            str(payload.get("newPassword") or ""),
        )
    except InvalidInput as exc:
        return error(exc.message, 400)
    except UnknownAccount as exc:
        return error(exc.message, 404)
    except InvalidCredentials as exc:
        return error(exc.message, 401)
    except UpdateFailed as exc:
        return error(exc.message, 500)
    except Exception:
        logger.exception("change-password failed")
        return error(INTERNAL_ERROR, 500)
    return {"success": True}


@router.post("/signup")
async def signup(request: Request):
    payload = await read_json(request)
    username = str(payload.get("username") or "").strip()
    email = str(payload.get("email") or "").strip()
    password = str(payload.get("password") or "")
    if not username or not email or not password:
        return error("Username, email, and password are required", 400)
    directory = _directory(request)
    try:
        if directory.lookup_by_email(email):
            return error("Email already exists", 409)
        user = directory.create_user(username, email, password)
    except IntegrityError:
        return error("Email already exists", 409)
    except Exception:
        logger.exception("signup failed")
        return error(INTERNAL_ERROR, 500)
    return {"success": True, "user": _public_user(user)}


@router.post("/login")
async def login(request: Request):
    payload = await read_json(request)
    email = str(payload.get("email") or "").strip()
    password = str(payload.get("password") or "")
    if not email or not password:
        return error("Email and password are required", 400)
    directory = _directory(request)
    try:
        user = directory.lookup_by_email(email)
        valid = bool(user) and directory.check_credential(user, password)
    except Exception:
        logger.exception("login failed")
        return error(INTERNAL_ERROR, 500)
    if not valid:
        return error("Invalid email or password", 401)
    return {"success": True, "user": _public_user(user)}
