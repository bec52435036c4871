"""
One-time verification codes stored in the key-value store.

Each (user, purpose) pair holds at most one live code. Issuing overwrites the
previous record; a successful verification consumes it with the store's
atomic compare-and-delete, so a code can be redeemed once.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from health_api.repositories.kv_store import KVStore

logger = logging.getLogger(__name__)


class CodePurpose(str, Enum):
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class VerificationCode:
    user_id: str
    purpose: CodePurpose
    code: str
    expires_at: datetime

    @property
    def key(self) -> str:
        return code_key(self.user_id, self.purpose)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def accepts(self, code: str, now: datetime) -> bool:
        if self.is_expired(now):
            return False
        return secrets.compare_digest(self.code.encode(), code.encode())

    def to_json(self) -> str:
        return json.dumps(
            {
                "userId": self.user_id,
                "purpose": self.purpose.value,
                "code": self.code,
                "expiresAt": self.expires_at.isoformat(),
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "VerificationCode":
        data = json.loads(raw)
        expires_at = datetime.fromisoformat(data["expiresAt"])
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return cls(
            user_id=str(data["userId"]),
            purpose=CodePurpose(data["purpose"]),
            code=str(data["code"]),
            expires_at=expires_at,
        )


def code_key(user_id: str, purpose: CodePurpose | str) -> str:
    return f"verification:{CodePurpose(purpose).value}:{user_id}"


def generate_code() -> str:
    """Six digit numeric code in the 100000-999999 range."""
    return str(100000 + secrets.randbelow(900000))


class VerificationCodeStore:
    """Issues and redeems verification codes against a KVStore."""

    def __init__(self, kv: KVStore, *, ttl_seconds: int = 900, clock: Callable[[], float] = time.time) -> None:
        self.kv = kv
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def issue(
        self,
        user_id: str,
        purpose: CodePurpose | str,
        *,
        code: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> str:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        record = VerificationCode(
            user_id=user_id,
            purpose=CodePurpose(purpose),
            code=code or generate_code(),
            expires_at=self._now() + timedelta(seconds=ttl),
        )
        self.kv.set(record.key, record.to_json(), ttl_seconds=ttl)
        logger.info("Issued %s code for user %s", record.purpose.value, user_id)
        return record.code

    def verify(self, user_id: str, code: str, purpose: CodePurpose | str) -> bool:
        code = (code or "").strip()
        if not code or not user_id:
            return False
        key = code_key(user_id, purpose)
        raw = self.kv.get(key)
        if raw is None:
            return False
        try:
            record = VerificationCode.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable verification record %s", key)
            self.kv.pop_if_equals(key, raw)
            return False
        now = self._now()
        if record.is_expired(now):
            self.kv.pop_if_equals(key, raw)
            return False
        if not record.accepts(code, now):
            return False
        # Another verifier may have consumed or replaced the record since the read.
        return self.kv.pop_if_equals(key, raw)
