"""Profile completion scoring."""

from __future__ import annotations

from typing import Any, Mapping

_CONTACT_FIELDS = ("name", "relationship", "phone")
_PROFILE_FIELDS = ("name", "email", "phone", "age", "gender", "height", "weight", "bloodType")


def _filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def calculate_profile_completion(profile: Mapping[str, Any] | None) -> int:
    """Percentage (0-100) of the twelve checklist fields that are filled."""
    profile = profile or {}
    contact = profile.get("emergencyContact") or {}
    checklist = [profile.get(name) for name in _PROFILE_FIELDS]
    checklist.append(profile.get("allergies") or [])
    checklist.extend(contact.get(name) for name in _CONTACT_FIELDS)
    filled = sum(1 for value in checklist if _filled(value))
    return round(filled / len(checklist) * 100)
