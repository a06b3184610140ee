from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from .auth_models import User, utcnow
from .auth_security import hash_password, verify_password
from .db import db_session
from .validation import validate_credentials


def create_user(username: str, password: str, factory: sessionmaker | None = None) -> str:
    result = validate_credentials(username, password)
    if not result.is_valid:
        raise ValueError(result.username_error or result.password_error)

    username = username.strip().lower()
    with db_session(factory) as s:
        exists = s.execute(select(User).where(User.username == username)).scalar_one_or_none()
        if exists:
            raise ValueError("Username già registrato.")

        u = User(username=username, password_hash=hash_password(password), is_active=True)
        s.add(u)
        s.flush()
        return u.id


def authenticate(username: str, password: str, factory: sessionmaker | None = None) -> User | None:
    username = username.strip().lower()
    with db_session(factory) as s:
        u = s.execute(select(User).where(User.username == username)).scalar_one_or_none()
        if not u or not u.is_active:
            return None
        if not verify_password(password, u.password_hash):
            return None
        u.last_login_at = utcnow()
        return u


def get_user_by_id(user_id: str, factory: sessionmaker | None = None) -> User | None:
    with db_session(factory) as s:
        return s.get(User, user_id)
