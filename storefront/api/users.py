"""User management routes (admin only)."""
import logging

from flask import Blueprint, current_app, jsonify

from storefront.core import validators
from storefront.core.exceptions import ConflictError
from storefront.core.identity import IdentityProviderError
from storefront.core.storage import users as user_store
from storefront.api.decorators import current_user, require_role, json_body
from storefront.api.errors import ApiError

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__, url_prefix="/api/users")


@bp.route("", methods=["GET"])
@require_role("admin")
def list_users():
    return jsonify({"users": [user.to_dict() for user in user_store.list_users()]})


@bp.route("/<int:user_id>/role", methods=["PATCH"])
@require_role("admin")
def update_role(user_id: int):
    role = validators.validate_role(json_body().get("role"))
    acting = current_user()
    if user_id == acting.id and role != "admin":
        raise ApiError(403, "You cannot remove your own admin role")

    if not user_store.update_user(user_id, role=role):
        raise ApiError(404, "User not found")
    logger.info("User %s set role of user %s to %s", acting.id, user_id, role)
    return jsonify({"user": user_store.get_user(user_id).to_dict()})


@bp.route("/<int:user_id>", methods=["DELETE"])
@require_role("admin")
def delete_user(user_id: int):
    """Delete the external identity first, then the local account."""
    acting = current_user()
    if user_id == acting.id:
        raise ApiError(400, "You cannot delete your own account")

    user = user_store.get_user(user_id)
    if user is None:
        raise ApiError(404, "User not found")
    if user_store.count_posts_by_author(user_id):
        raise ConflictError("User has authored blog posts; reassign or delete them first")

    if user.external_id:
        provider = current_app.extensions["identity_provider"]
        if not provider.enabled:
            logger.warning("Identity provider not configured; keeping external identity of user %s", user_id)
        else:
            try:
                # False means the identity was already gone
                provider.delete_user(user.external_id)
            except IdentityProviderError as exc:
                logger.error("Failed to delete external identity of user %s: %s", user_id, exc)
                raise ApiError(500, "Identity provider request failed; user was not deleted")

    user_store.delete_user(user_id)
    logger.info("User %s deleted user %s", acting.id, user_id)
    return jsonify({"message": "User deleted"})
