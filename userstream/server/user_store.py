"""
CRUD helpers for the `users` table.

Every helper logs the failure with its traceback and re-raises it unchanged;
turning it into something user-facing is the route's job.
"""
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from userstream.server.database import User
from userstream.shared.models import UserCreate, UserUpdate


def list_users(session: Session) -> list[User]:
    try:
        return list(session.scalars(select(User).order_by(User.name)))
    except Exception:
        logger.exception("Failed to fetch users")
        raise


def get_user_by_id(session: Session, user_id: int) -> User | None:
    try:
        return session.get(User, user_id)
    except Exception:
        logger.exception(f"Failed to fetch user {user_id}")
        raise


def create_user(session: Session, data: UserCreate) -> User:
    try:
        user = User(**data.model_dump())
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    except Exception:
        session.rollback()
        logger.exception("Failed to create user")
        raise


def update_user(session: Session, user_id: int, data: UserUpdate) -> User | None:
    try:
        user = session.get(User, user_id)
        if user is None:
            return None
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)
        session.commit()
        session.refresh(user)
        return user
    except Exception:
        session.rollback()
        logger.exception(f"Failed to update user {user_id}")
        raise


def delete_user(session: Session, user_id: int) -> None:
    try:
        session.execute(delete(User).where(User.id == user_id))
        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"Failed to delete user {user_id}")
        raise
