from __future__ import annotations
from collections import defaultdict
from typing import Iterable, Optional

from sqlalchemy import select, update, delete, or_, case

from storefront.extensions import db
from storefront.models import BlogPost, BlogPostCategory, Category
from storefront.models._helpers import utcnow


def get_post(post_id) -> Optional[BlogPost]:
    if post_id is None:
        return None
    return db.session.get(BlogPost, post_id)


def get_post_by_slug(slug: str) -> Optional[BlogPost]:
    return db.session.execute(select(BlogPost).where(BlogPost.slug == slug)).scalar_one_or_none()


def insert_post(**fields) -> BlogPost:
    post = BlogPost(**fields)
    db.session.add(post)
    db.session.commit()
    return post


def update_post(post_id: int, **fields) -> bool:
    fields["updated_at"] = utcnow()
    result = db.session.execute(update(BlogPost).where(BlogPost.id == post_id).values(**fields))
    db.session.commit()
    return result.rowcount > 0


def delete_post(post_id: int) -> bool:
    db.session.execute(delete(BlogPostCategory).where(BlogPostCategory.blog_post_id == post_id))
    result = db.session.execute(delete(BlogPost).where(BlogPost.id == post_id))
    db.session.commit()
    return result.rowcount > 0


def set_featured(post_id: int) -> bool:
    """Make ``post_id`` the only featured post.

    One UPDATE clears the previous holder and flags the target, so concurrent
    callers can never leave two posts featured.
    """
    if get_post(post_id) is None:
        return False
    db.session.execute(
        update(BlogPost)
        .where(or_(BlogPost.featured.is_(True), BlogPost.id == post_id))
        .values(
            featured=(BlogPost.id == post_id),
            updated_at=case((BlogPost.id == post_id, utcnow()), else_=BlogPost.updated_at),
        )
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return True


def get_featured_post(published_only: bool = True) -> Optional[BlogPost]:
    stmt = select(BlogPost).where(BlogPost.featured.is_(True))
    if published_only:
        stmt = stmt.where(BlogPost.published.is_(True))
    return db.session.execute(stmt.order_by(BlogPost.id).limit(1)).scalar_one_or_none()


def backfill_published_dates() -> int:
    """Copy ``created_at`` into ``published_at`` for published posts lacking it."""
    result = db.session.execute(
        update(BlogPost)
        .where(BlogPost.published.is_(True), BlogPost.published_at.is_(None))
        .values(published_at=BlogPost.created_at)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount


# ─────────────────────────────────────────────────────────────────────────────
# Category membership
# ─────────────────────────────────────────────────────────────────────────────
def category_ids_for_post(post_id: int) -> set[int]:
    return set(
        db.session.execute(
            select(BlogPostCategory.category_id).where(BlogPostCategory.blog_post_id == post_id)
        ).scalars()
    )


def categories_for_posts(post_ids: Iterable[int]) -> dict[int, list[Category]]:
    ids = list(post_ids)
    grouped: dict[int, list[Category]] = defaultdict(list)
    if not ids:
        return grouped
    rows = db.session.execute(
        select(BlogPostCategory.blog_post_id, Category)
        .join(Category, Category.id == BlogPostCategory.category_id)
        .where(BlogPostCategory.blog_post_id.in_(ids))
        .order_by(Category.name)
    )
    for post_id, category in rows:
        grouped[post_id].append(category)
    return grouped


def post_ids_in_category(category_id: int) -> list[int]:
    return list(
        db.session.execute(
            select(BlogPostCategory.blog_post_id).where(BlogPostCategory.category_id == category_id)
        ).scalars()
    )


def add_post_categories(post_id: int, category_ids: Iterable[int]) -> int:
    """Add memberships; pairs that already exist are left untouched."""
    existing = category_ids_for_post(post_id)
    added = 0
    for category_id in set(category_ids) - existing:
        db.session.add(BlogPostCategory(blog_post_id=post_id, category_id=category_id))
        added += 1
    db.session.commit()
    return added


def remove_post_categories(post_id: int, category_ids: Iterable[int]) -> int:
    ids = list(category_ids)
    if not ids:
        return 0
    result = db.session.execute(
        delete(BlogPostCategory).where(
            BlogPostCategory.blog_post_id == post_id,
            BlogPostCategory.category_id.in_(ids),
        )
    )
    db.session.commit()
    return result.rowcount
