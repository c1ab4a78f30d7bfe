"""Route guards and request helpers.

Every request passes through the principal resolver in ``create_app``.
Routes in ``PUBLIC_ROUTES`` may be called anonymously; any other route
needs a resolved user, and ``require_role`` narrows it further.
"""
import logging
from functools import wraps

from flask import abort, g, request

from storefront.core.rbac import role_satisfies

logger = logging.getLogger(__name__)

# (method, url rule) pairs reachable without a principal
PUBLIC_ROUTES = frozenset({
    ("GET", "/health"),
    ("GET", "/ready"),
    ("POST", "/api/auth/register"),
    ("POST", "/api/auth/login"),
    ("POST", "/api/auth/federated"),
    ("POST", "/api/auth/logout"),
    ("GET", "/api/auth/check-email"),
    ("GET", "/api/products"),
    ("GET", "/api/products/featured"),
    ("GET", "/api/products/<int:product_id>"),
    ("GET", "/api/products/<int:product_id>/vendors"),
    ("GET", "/api/products/related/<int:product_id>"),
    ("GET", "/api/categories"),
    ("GET", "/api/blog/posts"),
    ("GET", "/api/blog/posts/<slug>"),
    ("GET", "/api/blog/featured"),
    ("GET", "/api/blog/related/<slug>"),
    ("GET", "/api/blog/categories"),
    ("GET", "/api/blog/category/<int:category_id>/posts"),
})


def is_public(method: str, rule: str) -> bool:
    if method == "HEAD":
        method = "GET"
    return (method, rule) in PUBLIC_ROUTES


def current_user():
    """The resolved principal for this request, or None."""
    return g.get("current_user")


def require_role(role: str):
    """Require an authenticated user whose role satisfies ``role``.

    Example:
        @bp.route("/api/users")
        @require_role("admin")
        def list_users():
            ...
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                abort(401)
            if not role_satisfies(user.role, role):
                logger.warning("User %s (%s) denied %s %s (requires %s)", user.id, user.role, request.method, request.path, role)
                abort(403, description=f"Required role: {role}")
            return fn(*args, **kwargs)

        return wrapper
    return decorator


def json_body() -> dict:
    """Parsed JSON object body; 400 when missing or not an object."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object")
    return data
