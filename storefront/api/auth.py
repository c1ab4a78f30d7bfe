"""Authentication routes: local accounts, federated login, profile."""
from __future__ import annotations
import logging
import secrets

from flask import Blueprint, session, request, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash, check_password_hash

from storefront.extensions import db
from storefront.core import validators
from storefront.core.exceptions import ConflictError
from storefront.core.identity import IdentityProviderError
from storefront.core.rbac import SESSION_USER_KEY, bearer_token, token_fingerprint
from storefront.core.storage import users as user_store
from storefront.api.decorators import current_user, require_role, json_body
from storefront.api.errors import ApiError

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _identity_provider():
    return current_app.extensions["identity_provider"]


def _start_session(user) -> None:
    session.clear()
    session[SESSION_USER_KEY] = user.id
    session.permanent = True
    _touch_last_login(user.id)


def _touch_last_login(user_id: int) -> None:
    """Best effort: a failure here never fails the login."""
    try:
        user_store.touch_last_login(user_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.warning("Could not record last login for user %s: %s", user_id, exc)


def _ensure_available(username: str | None = None, email: str | None = None, user_id: int | None = None) -> None:
    if username is not None:
        existing = user_store.get_user_by_username(username)
        if existing is not None and existing.id != user_id:
            raise ConflictError("Username is already taken")
    if email is not None:
        existing = user_store.get_user_by_email(email)
        if existing is not None and existing.id != user_id:
            raise ConflictError("Email is already registered")


def _unique_username(seed: str) -> str:
    """Derive a free username from an email local part or display name."""
    try:
        base = validators.normalize_username(seed)
    except ValueError:
        base = "user"
    candidate = base
    while user_store.get_user_by_username(candidate) is not None:
        candidate = f"{base[:57]}-{secrets.token_hex(3)}"
    return candidate


@bp.route("/register", methods=["POST"])
def register():
    data = json_body()
    username = validators.normalize_username(data.get("username"))
    email = validators.validate_email(data.get("email"))
    password = validators.validate_password(data.get("password"))
    _ensure_available(username=username, email=email)

    user = user_store.insert_user(username, email, generate_password_hash(password))
    logger.info("Registered user %s (%s)", user.id, username)
    _start_session(user)
    return jsonify({"user": user.to_dict()}), 201


@bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    email = data.get("email")
    password = data.get("password")
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise ApiError(400, "Email and password are required")

    user = user_store.get_user_by_email(email)
    if user is None or not check_password_hash(user.password_hash, password):
        logger.info("Failed local login for %s", email.strip().lower())
        raise ApiError(401, "Invalid email or password")

    _start_session(user)
    return jsonify({"user": user_store.get_user(user.id).to_dict()})


@bp.route("/federated", methods=["POST"])
def federated_login():
    """Exchange an identity provider token for a session.

    The account is found by external id, then by verified email (and
    linked), and created otherwise.
    """
    data = request.get_json(silent=True) or {}
    token = bearer_token(request) or data.get("idToken")
    if not token:
        raise ApiError(401, "Identity token required")

    provider = _identity_provider()
    try:
        identity = provider.verify_token(token)
    except IdentityProviderError as exc:
        logger.warning("Federated login rejected token %s: %s", token_fingerprint(token), exc)
        raise ApiError(401, "Invalid or expired identity token")

    user = user_store.get_user_by_external_id(identity.uid)
    if user is None:
        if not identity.email:
            raise ApiError(400, "Identity token carries no email address")
        user = user_store.get_user_by_email(identity.email)
        if user is not None:
            if not identity.email_verified:
                logger.warning("Refused to link user %s to an unverified email claim", user.id)
                raise ApiError(403, "Email address must be verified before linking an existing account")
            if user.external_id and user.external_id != identity.uid:
                raise ConflictError("Email is already linked to another identity")
            user_store.update_user(user.id, external_id=identity.uid)
            logger.info("Linked user %s to external identity", user.id)
        else:
            seed = data.get("username") or identity.username or identity.email.split("@", 1)[0]
            user = user_store.insert_user(
                _unique_username(seed),
                identity.email,
                # Federated accounts never log in locally
                generate_password_hash(secrets.token_urlsafe(32)),
                external_id=identity.uid,
            )
            logger.info("Created user %s from federated login", user.id)

    _start_session(user)
    return jsonify({"user": user_store.get_user(user.id).to_dict()})


@bp.route("/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify({"message": "Logged out"})


@bp.route("/check-email", methods=["GET"])
def check_email():
    email = validators.validate_email(request.args.get("email", ""))
    return jsonify({"exists": user_store.get_user_by_email(email) is not None})


@bp.route("/me", methods=["GET"])
@require_role("user")
def me():
    return jsonify({"user": current_user().to_dict()})


@bp.route("/profile", methods=["POST"])
@require_role("user")
def update_profile():
    """Change username/email, or the password when the current one is given."""
    user = current_user()
    data = json_body()
    fields = {}

    if "username" in data and data["username"] != user.username:
        fields["username"] = validators.normalize_username(data["username"])
    if "email" in data and data["email"] != user.email:
        fields["email"] = validators.validate_email(data["email"])
    _ensure_available(fields.get("username"), fields.get("email"), user_id=user.id)

    if data.get("newPassword"):
        current = data.get("currentPassword")
        if not isinstance(current, str) or not check_password_hash(user.password_hash, current):
            raise ApiError(403, "Current password is incorrect")
        fields["password_hash"] = generate_password_hash(validators.validate_password(data["newPassword"]))

    user_store.update_user(user.id, **fields)
    if fields:
        logger.info("User %s updated profile (%s)", user.id, ", ".join(sorted(fields)))
    return jsonify({"user": user_store.get_user(user.id).to_dict()})


@bp.route("/cleanup-identity", methods=["POST"])
@require_role("admin")
def cleanup_identity():
    """Remove an identity provider account by email, optionally the local one too."""
    data = json_body()
    email = validators.validate_email(data.get("email"))
    delete_local = validators.coerce_bool(data.get("deleteLocal", False), "deleteLocal")

    try:
        identity_deleted = _identity_provider().delete_user_by_email(email)
    except IdentityProviderError as exc:
        logger.error("Identity cleanup failed for %s: %s", email, exc)
        raise ApiError(500, "Identity provider request failed")

    local_deleted = False
    if delete_local:
        user = user_store.get_user_by_email(email)
        if user is not None:
            if user.id == current_user().id:
                raise ApiError(400, "You cannot delete your own account")
            if user_store.count_posts_by_author(user.id):
                raise ConflictError("User has authored blog posts")
            local_deleted = user_store.delete_user(user.id)

    logger.info("Identity cleanup for %s: identity=%s local=%s", email, identity_deleted, local_deleted)
    return jsonify({"identityDeleted": identity_deleted, "localDeleted": local_deleted})
