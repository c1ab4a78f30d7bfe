"""Blog routes: posts, featured post, related posts and blog categories."""
import logging

from flask import Blueprint, request, jsonify

from storefront.core import catalog_service, content_service
from storefront.core import validators
from storefront.core.rbac import role_satisfies
from storefront.core.storage import catalog as catalog_store
from storefront.api.decorators import current_user, require_role, json_body
from storefront.api.errors import ApiError

logger = logging.getLogger(__name__)

bp = Blueprint("blog", __name__, url_prefix="/api/blog")


def _is_editor() -> bool:
    user = current_user()
    return user is not None and role_satisfies(user.role, "editor")


@bp.route("/posts", methods=["GET"])
def list_posts():
    query = content_service.PostQuery.from_args(request.args, allow_unpublished=_is_editor())
    posts, total = content_service.list_posts(query)
    return jsonify(content_service.page_payload(posts, total, query))


@bp.route("/admin", methods=["GET"])
@require_role("editor")
def admin_list_posts():
    query = content_service.PostQuery.from_args(request.args, allow_unpublished=True, default_published=None)
    posts, total = content_service.list_posts(query)
    return jsonify(content_service.page_payload(posts, total, query))


@bp.route("/posts/<slug>", methods=["GET"])
def get_post(slug: str):
    post = content_service.get_post_by_slug(slug, published_only=not _is_editor())
    if post is None:
        raise ApiError(404, "Post not found")
    return jsonify(post)


@bp.route("/featured", methods=["GET"])
def featured_post():
    post = content_service.featured_post()
    if post is None:
        raise ApiError(404, "No published posts")
    return jsonify(post)


@bp.route("/related/<slug>", methods=["GET"])
def related_posts(slug: str):
    limit = validators.parse_limit(request.args.get("limit"), 3, maximum=12)
    posts = content_service.related_posts(slug, limit, published_only=not _is_editor())
    if posts is None:
        raise ApiError(404, "Post not found")
    return jsonify(posts)


@bp.route("/category/<int:category_id>/posts", methods=["GET"])
def category_posts(category_id: int):
    category = catalog_store.get_category(category_id)
    if category is None:
        raise ApiError(404, "Category not found")
    query = content_service.PostQuery.from_args(request.args)
    query.category_id = category_id
    posts, total = content_service.list_posts(query)
    payload = content_service.page_payload(posts, total, query)
    payload["category"] = category.to_dict()
    return jsonify(payload)


@bp.route("/posts", methods=["POST"])
@require_role("editor")
def create_post():
    post = content_service.create_post(json_body(), author_id=current_user().id)
    return jsonify(post), 201


@bp.route("/posts/<int:post_id>", methods=["PUT", "PATCH"])
@require_role("editor")
def update_post(post_id: int):
    post = content_service.update_post(post_id, json_body())
    if post is None:
        raise ApiError(404, "Post not found")
    return jsonify(post)


@bp.route("/posts/<int:post_id>", methods=["DELETE"])
@require_role("editor")
def delete_post(post_id: int):
    if not content_service.delete_post(post_id):
        raise ApiError(404, "Post not found")
    return jsonify({"message": "Post deleted"})


@bp.route("/posts/<int:post_id>/set-featured", methods=["POST"])
@require_role("editor")
def set_featured(post_id: int):
    post = content_service.set_featured(post_id)
    if post is None:
        raise ApiError(404, "Post not found")
    return jsonify(post)


@bp.route("/fix-published-dates", methods=["POST"])
@require_role("admin")
def fix_published_dates():
    return jsonify({"updated": content_service.fix_published_dates()})


# ─────────────────────────────────────────────────────────────────────────────
# Blog categories (same table as product categories)
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/categories", methods=["GET"])
def list_categories():
    return jsonify(catalog_service.list_categories())


@bp.route("/categories", methods=["POST"])
@require_role("editor")
def create_category():
    return jsonify(catalog_service.create_category(json_body())), 201


@bp.route("/categories/<int:category_id>", methods=["PUT"])
@require_role("editor")
def update_category(category_id: int):
    category = catalog_service.update_category(category_id, json_body())
    if category is None:
        raise ApiError(404, "Category not found")
    return jsonify(category)


@bp.route("/categories/<int:category_id>", methods=["DELETE"])
@require_role("editor")
def delete_category(category_id: int):
    if not catalog_service.delete_category(category_id):
        raise ApiError(404, "Category not found")
    return jsonify({"message": "Category deleted"})
