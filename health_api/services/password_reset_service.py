"""
Credential recovery use cases: request a code, redeem it for a new password,
and change a password with the current one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from health_api.services.user_directory import UserDirectory
from health_api.services.verification_service import CodePurpose, VerificationCodeStore

logger = logging.getLogger(__name__)


class ResetState(str, Enum):
    START = "start"
    CODE_CHECKED = "code_checked"
    CREDENTIAL_UPDATED = "credential_updated"
    DONE = "done"


class ResetError(Exception):
    """Base class for credential recovery failures."""

    def __init__(self, message: str, state: ResetState = ResetState.START):
        super().__init__(message)
        self.message = message
        self.state = state


class InvalidInput(ResetError):
    pass


class InvalidOrExpiredCode(ResetError):
    pass


class UpdateFailed(ResetError):
    pass


class UnknownAccount(ResetError):
    pass


class InvalidCredentials(ResetError):
    pass


@dataclass
class ResetResult:
    user_id: str
    state: ResetState


@dataclass
class CodeRequest:
    user_id: str
    code: str
    method: str


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


class CredentialResetService:
    """Orchestrates code verification and credential updates."""

    def __init__(self, codes: VerificationCodeStore, directory: UserDirectory) -> None:
        self.codes = codes
        self.directory = directory

    def request_code(self, method: str, email: str = "", phone: str = "") -> CodeRequest:
        if method == "email":
            if _blank(email):
                raise InvalidInput("Email is required")
            user = self.directory.lookup_by_email(email.strip())
            if not user:
                raise UnknownAccount("No account found with this email")
        elif method == "phone":
            if _blank(phone):
                raise InvalidInput("Phone number is required")
            user = self.directory.lookup_by_phone(phone.strip())
            if not user:
                raise UnknownAccount("No account found with this phone number")
        else:
            raise InvalidInput("Invalid method")
        code = self.codes.issue(user.id, CodePurpose.PASSWORD_RESET)
        return CodeRequest(user_id=user.id, code=code, method=method)

    def reset_password(self, user_id: str, code: str, new_password: str) -> ResetResult:
        if _blank(user_id) or _blank(code) or _blank(new_password):
            raise InvalidInput("User ID, code, and new password are required")

        if not self.codes.verify(user_id, code, CodePurpose.PASSWORD_RESET):
            raise InvalidOrExpiredCode("Invalid or expired verification code", ResetState.START)
        state = ResetState.CODE_CHECKED

        if not self.directory.update_credential(user_id, new_password):
            logger.error("Password reset for user %s passed verification but the update failed", user_id)
            raise UpdateFailed("Failed to update password", state)

        logger.info("Password reset completed for user %s", user_id)
        return ResetResult(user_id=user_id, state=ResetState.DONE)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        if _blank(user_id) or not current_password or _blank(new_password):
            raise InvalidInput("User ID, current password, and new password are required")
        user = self.directory.lookup_by_id(user_id)
        if not user:
            raise UnknownAccount("User not found")
        if not self.directory.check_credential(user, current_password):
            raise InvalidCredentials("Current password is incorrect")
        if not self.directory.update_credential(user_id, new_password):
            raise UpdateFailed("Failed to update password")
