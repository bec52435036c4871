from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from health_api.services.profile_service import calculate_profile_completion

from ._common import error, service

router = APIRouter(prefix="/profile", tags=["profile"])
logger = logging.getLogger(__name__)


@router.get("/completion")
def profile_completion(request: Request, userId: str = ""):
    user_id = (userId or "").strip()
    if not user_id:
        return error("User ID is required", 400)
    try:
        profile = service(request, "user_directory").get_profile(user_id)
    except Exception:
        logger.exception("profile completion lookup failed")
        return error("Internal server error", 500)
    if profile is None:
        return error("Profile not found", 404)
    return {"userId": user_id, "completion": calculate_profile_completion(profile)}
