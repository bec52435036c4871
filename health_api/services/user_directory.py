"""Account lookups and credential updates."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from health_api.core.security import hash_password, verify_password
from health_api.db.models import User
from health_api.repositories.kv_store import StoreUnavailable
from health_api.repositories.sql_repository import SQLRepository

logger = logging.getLogger(__name__)


class UserDirectory:
    """Owns user records; the only place that mutates stored credentials."""

    def __init__(self, repository: SQLRepository | None = None) -> None:
        self.repository = repository or SQLRepository()

    def lookup_by_id(self, user_id: str) -> Optional[User]:
        try:
            return self.repository.get_user(user_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("user lookup failed") from exc

    def lookup_by_email(self, email: str) -> Optional[User]:
        try:
            return self.repository.get_user_by_email(email)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("user lookup by email failed") from exc

    def lookup_by_phone(self, phone: str) -> Optional[User]:
        try:
            return self.repository.get_user_by_phone(phone)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("user lookup by phone failed") from exc

    def get_profile(self, user_id: str) -> Optional[dict]:
        try:
            return self.repository.get_profile(user_id)
        except SQLAlchemyError as exc:
            raise StoreUnavailable("profile lookup failed") from exc

    def create_user(self, name: str, email: str, password: str) -> User:
        user_id = str(uuid.uuid4())
        user = self.repository.create_user(
            user_id, email, hash_password(password), name=name, profile={"name": name, "email": email}
        )
        logger.info("Created user %s", user_id)
        return user

    def check_credential(self, user: User, password: str) -> bool:
        return verify_password(password, user.password_hash)

    def update_credential(self, user_id: str, new_credential: str) -> bool:
        try:
            if not self.repository.get_user(user_id):
                return False
            changed = self.repository.update_user_password(user_id, hash_password(new_credential))
        except SQLAlchemyError:
            logger.exception("update_credential failed for user %s", user_id)
            return False
        return changed == 1
