from __future__ import annotations
from typing import Optional

from sqlalchemy import select, update, delete, func

from storefront.extensions import db
from storefront.models import User, BlogPost
from storefront.models._helpers import utcnow


def get_user(user_id) -> Optional[User]:
    if user_id is None:
        return None
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def get_user_by_email(email: str) -> Optional[User]:
    return db.session.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    ).scalar_one_or_none()


def get_user_by_username(username: str) -> Optional[User]:
    return db.session.execute(select(User).where(User.username == username)).scalar_one_or_none()


def get_user_by_external_id(external_id: str) -> Optional[User]:
    if not external_id:
        return None
    return db.session.execute(select(User).where(User.external_id == external_id)).scalar_one_or_none()


def list_users() -> list[User]:
    return list(db.session.execute(select(User).order_by(User.created_at.desc(), User.id.desc())).scalars())


def insert_user(username: str, email: str, password_hash: str, role: str = "user", external_id: Optional[str] = None) -> User:
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role,
        external_id=external_id,
    )
    db.session.add(user)
    db.session.commit()
    return user


def update_user(user_id: int, **fields) -> bool:
    """Apply a partial update in one statement. False when the user does not exist."""
    if not fields:
        return get_user(user_id) is not None
    result = db.session.execute(update(User).where(User.id == user_id).values(**fields))
    db.session.commit()
    return result.rowcount > 0


def touch_last_login(user_id: int) -> bool:
    return update_user(user_id, last_login=utcnow())


def delete_user(user_id: int) -> bool:
    result = db.session.execute(delete(User).where(User.id == user_id))
    db.session.commit()
    return result.rowcount > 0


def count_posts_by_author(user_id: int) -> int:
    return db.session.execute(
        select(func.count()).select_from(BlogPost).where(BlogPost.author_id == user_id)
    ).scalar_one()
