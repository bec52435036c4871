"""Create the account and profile tables; run with `python -m health_api.db.create_tables`."""
from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from .session import Base, get_engine
from . import models  # noqa: F401  # registers users/profiles on Base.metadata


def create_all() -> None:
    """Create missing tables; existing ones are left untouched."""
    Base.metadata.create_all(bind=get_engine())


if __name__ == "__main__":
    try:
        create_all()
        print("users and profiles tables are ready.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Could not create the health schema: {exc}") from exc
