"""Blog operations: listing, retrieval, featured post, related posts, mutation."""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func, or_

from storefront.extensions import db
from storefront.models import BlogPost, BlogPostCategory, User
from storefront.models._helpers import utcnow
from storefront.core import validators
from storefront.core.exceptions import ConflictError
from storefront.core.storage import blog as store
from storefront.core.storage import catalog as catalog_store

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

# Publish date when known, creation date otherwise
_post_timestamp = func.coalesce(BlogPost.published_at, BlogPost.created_at)


@dataclass
class PostQuery:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE
    category_id: Optional[int] = None
    # None: published and drafts alike
    published: Optional[bool] = True
    search: Optional[str] = None
    ascending: bool = False

    @classmethod
    def from_args(cls, args, allow_unpublished: bool = False, default_published: Optional[bool] = True) -> "PostQuery":
        """Build from request query args.

        ``published`` can only be chosen by callers acting as editors;
        everyone else always gets published posts.
        """
        published: Optional[bool] = True
        if allow_unpublished:
            raw = args.get("published")
            if raw is None:
                published = default_published
            elif raw in ("", "all"):
                published = None
            else:
                published = validators.coerce_bool(raw, "published")

        order = (args.get("sort") or "newest").lower()
        if order not in {"newest", "oldest", "desc", "asc"}:
            raise ValueError("sort must be 'newest' or 'oldest'")

        return cls(
            page=validators.parse_page(args.get("page")),
            limit=validators.parse_limit(args.get("limit"), DEFAULT_PAGE_SIZE),
            category_id=validators.parse_optional_int(args.get("category"), "category"),
            published=published,
            search=(args.get("search") or "").strip() or None,
            ascending=order in {"oldest", "asc"},
        )


def enrich_posts(posts: list[BlogPost]) -> list[dict]:
    """Attach author and categories to each post."""
    if not posts:
        return []
    author_ids = {post.author_id for post in posts}
    authors = {
        user.id: user
        for user in db.session.execute(select(User).where(User.id.in_(author_ids))).scalars()
    }
    categories = store.categories_for_posts(post.id for post in posts)
    return [post.to_dict(authors.get(post.author_id), categories.get(post.id, [])) for post in posts]


def _enrich_one(post: Optional[BlogPost]) -> Optional[dict]:
    if post is None:
        return None
    return enrich_posts([post])[0]


def list_posts(query: PostQuery) -> tuple[list[dict], int]:
    conditions = []

    if query.category_id is not None:
        post_ids = store.post_ids_in_category(query.category_id)
        if not post_ids:
            return [], 0
        conditions.append(BlogPost.id.in_(post_ids))

    if query.published is not None:
        conditions.append(BlogPost.published.is_(query.published))

    if query.search:
        conditions.append(or_(
            BlogPost.title.icontains(query.search, autoescape=True),
            BlogPost.content.icontains(query.search, autoescape=True),
            BlogPost.excerpt.icontains(query.search, autoescape=True),
        ))

    total = db.session.execute(
        select(func.count()).select_from(BlogPost).where(*conditions)
    ).scalar_one()

    ordering = (_post_timestamp.asc(), BlogPost.id.asc()) if query.ascending else (_post_timestamp.desc(), BlogPost.id.desc())
    rows = db.session.execute(
        select(BlogPost)
        .where(*conditions)
        .order_by(*ordering)
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    ).scalars().all()

    return enrich_posts(list(rows)), total


def page_payload(posts: list[dict], total: int, query: PostQuery) -> dict:
    return {
        "posts": posts,
        "total": total,
        "currentPage": query.page,
        "totalPages": math.ceil(total / query.limit) if total else 0,
    }


def get_post(post_id: int) -> Optional[dict]:
    return _enrich_one(store.get_post(post_id))


def get_post_by_slug(slug: str, published_only: bool = True) -> Optional[dict]:
    post = store.get_post_by_slug(slug)
    if post is None or (published_only and not post.published):
        return None
    return _enrich_one(post)


def featured_post() -> Optional[dict]:
    """The featured published post, or the most recent published post."""
    post = store.get_featured_post()
    if post is None:
        post = db.session.execute(
            select(BlogPost)
            .where(BlogPost.published.is_(True))
            .order_by(_post_timestamp.desc(), BlogPost.id.desc())
            .limit(1)
        ).scalar_one_or_none()
    return _enrich_one(post)


def set_featured(post_id: int) -> Optional[dict]:
    """Make a published post the featured one; drafts are refused."""
    post = store.get_post(post_id)
    if post is None:
        return None
    if not post.published:
        raise ValueError("Only published posts can be featured")
    store.set_featured(post_id)
    logger.info("Post %s is now the featured post", post_id)
    return get_post(post_id)


def related_posts(slug: str, limit: int = 3, published_only: bool = True) -> Optional[list[dict]]:
    """Published posts ranked by how many categories they share with ``slug``.

    Falls back to the most recent published posts when nothing is shared.
    Returns None when the source post does not exist, or is a draft and
    ``published_only`` is set.
    """
    post = store.get_post_by_slug(slug)
    if post is None or (published_only and not post.published):
        return None

    rows = []
    category_ids = store.category_ids_for_post(post.id)
    if category_ids:
        shared = func.count(BlogPostCategory.category_id).label("shared")
        rows = [
            related for related, _ in db.session.execute(
                select(BlogPost, shared)
                .join(BlogPostCategory, BlogPostCategory.blog_post_id == BlogPost.id)
                .where(
                    BlogPostCategory.category_id.in_(category_ids),
                    BlogPost.id != post.id,
                    BlogPost.published.is_(True),
                )
                .group_by(BlogPost.id)
                .order_by(shared.desc(), _post_timestamp.desc(), BlogPost.id.desc())
                .limit(limit)
            )
        ]

    if not rows:
        rows = db.session.execute(
            select(BlogPost)
            .where(BlogPost.published.is_(True))
            .order_by(_post_timestamp.desc(), BlogPost.id.desc())
            .limit(limit)
        ).scalars().all()

    return enrich_posts(list(rows))


def _parse_category_ids(value) -> set[int]:
    if value is None:
        return set()
    if not isinstance(value, (list, tuple)):
        raise ValueError("categories must be a list of category ids")
    ids = set()
    for item in value:
        # Accept either bare ids or category objects as returned by the API
        raw = item.get("id") if isinstance(item, dict) else item
        category_id = validators.parse_optional_int(raw, "categories")
        if category_id is not None:
            ids.add(category_id)
    known = catalog_store.get_categories(ids)
    unknown = ids - set(known)
    if unknown:
        raise ValueError(f"Unknown category ids: {', '.join(str(i) for i in sorted(unknown))}")
    return ids


def _check_slug_free(slug: str, post_id: Optional[int] = None) -> None:
    existing = store.get_post_by_slug(slug)
    if existing is not None and existing.id != post_id:
        raise ConflictError(f"A post with slug '{slug}' already exists")


def create_post(data: dict, author_id: int) -> dict:
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")

    title = validators.require_text(data.get("title"), "title", 255)
    fields = {
        "title": title,
        "slug": validators.normalize_slug(data.get("slug"), title),
        "content": validators.require_text(data.get("content"), "content"),
        "excerpt": validators.require_text(data.get("excerpt"), "excerpt"),
        "author_id": author_id,
        "published": validators.coerce_bool(data.get("published", False), "published"),
    }
    image = validators.optional_text(data.get("featuredImage"), "featuredImage", 500)
    if image:
        fields["featured_image"] = image
    if fields["published"]:
        fields["published_at"] = utcnow()
    category_ids = _parse_category_ids(data.get("categories"))
    featured = validators.coerce_bool(data.get("featured", False), "featured")
    if featured and not fields["published"]:
        raise ValueError("Only published posts can be featured")

    _check_slug_free(fields["slug"])
    post = store.insert_post(**fields)
    if category_ids:
        store.add_post_categories(post.id, category_ids)
    if featured:
        store.set_featured(post.id)
    logger.info("Created post %s (%s)", post.id, fields["slug"])
    return get_post(post.id)


def update_post(post_id: int, data: dict) -> Optional[dict]:
    """Partial update; categories are reconciled only when the key is present."""
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    post = store.get_post(post_id)
    if post is None:
        return None

    fields = {}
    if "title" in data:
        fields["title"] = validators.require_text(data["title"], "title", 255)
    if "slug" in data:
        fields["slug"] = validators.normalize_slug(data["slug"], fields.get("title", post.title))
        _check_slug_free(fields["slug"], post_id)
    if "content" in data:
        fields["content"] = validators.require_text(data["content"], "content")
    if "excerpt" in data:
        fields["excerpt"] = validators.require_text(data["excerpt"], "excerpt")
    if "featuredImage" in data:
        image = validators.optional_text(data["featuredImage"], "featuredImage", 500)
        if image:
            fields["featured_image"] = image
    if "published" in data:
        fields["published"] = validators.coerce_bool(data["published"], "published")
        if fields["published"] and post.published_at is None:
            fields["published_at"] = utcnow()
    featured = validators.coerce_bool(data["featured"], "featured") if "featured" in data else None
    published = fields.get("published", post.published)
    if featured and not published:
        raise ValueError("Only published posts can be featured")
    if not published and post.featured:
        # An unpublished post cannot keep the featured slot
        fields["featured"] = False
    category_ids = _parse_category_ids(data["categories"]) if "categories" in data else None

    store.update_post(post_id, **fields)

    if category_ids is not None:
        current = store.category_ids_for_post(post_id)
        store.remove_post_categories(post_id, current - category_ids)
        store.add_post_categories(post_id, category_ids - current)

    if featured is True:
        store.set_featured(post_id)
    elif featured is False:
        store.update_post(post_id, featured=False)

    logger.info("Updated post %s (%s)", post_id, ", ".join(sorted(data)) or "no fields")
    return get_post(post_id)


def delete_post(post_id: int) -> bool:
    deleted = store.delete_post(post_id)
    if deleted:
        logger.info("Deleted post %s", post_id)
    return deleted


def fix_published_dates() -> int:
    updated = store.backfill_published_dates()
    logger.info("Backfilled publishedAt on %d post(s)", updated)
    return updated
