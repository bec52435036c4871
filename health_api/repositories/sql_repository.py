"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update

from health_api.db.models import Profile, User
from health_api.db.session import get_session


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- users --------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).where(User.email == email)
            return session.execute(stmt).scalar_one_or_none()

    def get_user_by_phone(self, phone: str) -> Optional[User]:
        with get_session() as session:
            stmt = select(User).join(Profile, Profile.user_id == User.id).where(Profile.phone == phone).limit(1)
            return session.execute(stmt).scalars().first()

    def create_user(
        self,
        user_id: str,
        email: str,
        password_hash: str,
        name: str | None = None,
        profile: dict | None = None,
    ) -> User:
        """Insert the user, and its profile when given, in a single commit."""
        now = datetime.now(timezone.utc)
        entity = User(
            id=user_id,
            email=email,
            name=name,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        with get_session() as session:
            session.add(entity)
            if profile is not None:
                payload = dict(profile)
                phone = (payload.get("phone") or "").strip() or None
                session.add(Profile(user_id=user_id, phone=phone, data=payload, updated_at=now))
            session.commit()
            session.refresh(entity)
            return entity

    def update_user_password(self, user_id: str, password_hash: str) -> int:
        """Return the number of rows changed (0 when the user is unknown)."""
        with get_session() as session:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount or 0

    # -------------------------- profiles --------------------------
    def get_profile(self, user_id: str) -> Optional[dict]:
        with get_session() as session:
            entity = session.get(Profile, user_id)
            if not entity:
                return None
            return dict(entity.data or {})

    def upsert_profile(self, user_id: str, data: dict) -> None:
        payload = dict(data or {})
        phone = (payload.get("phone") or "").strip() or None
        now = datetime.now(timezone.utc)
        with get_session() as session:
            entity = session.get(Profile, user_id)
            if not entity:
                session.add(Profile(user_id=user_id, phone=phone, data=payload, updated_at=now))
            else:
                entity.phone = phone
                entity.data = payload
                entity.updated_at = now
            session.commit()
