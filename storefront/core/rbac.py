"""Role-based access control and principal resolution.

The acting user is found by trying an ordered chain of named strategies;
the first one that yields a stored user wins. Development-only strategies
are left out of the chain entirely unless development auth is enabled.
"""
from __future__ import annotations
import hashlib
import logging
from typing import Callable, Optional

from flask import session, current_app

from storefront.models import User
from storefront.core.identity import IdentityProviderError
from storefront.core.storage import users as user_store

logger = logging.getLogger(__name__)

ROLE_RANKS = {"user": 0, "editor": 1, "admin": 2}

SESSION_USER_KEY = "user_id"
DEV_OVERRIDE_HEADER = "X-Dev-User-ID"
TEST_TOKEN_PREFIX = "test-"

Strategy = Callable[[object], Optional[User]]


def role_satisfies(role: Optional[str], required: str) -> bool:
    """``admin`` routes need exactly admin; lower requirements accept any higher rank."""
    if required == "admin":
        return role == "admin"
    return ROLE_RANKS.get(role or "", -1) >= ROLE_RANKS[required]


def token_fingerprint(token: str) -> str:
    """Short, non-reversible tag for logging a credential."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


def bearer_token(req) -> Optional[str]:
    header = req.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


# ─────────────────────────────────────────────────────────────────────────────
# Strategies
# ─────────────────────────────────────────────────────────────────────────────
def session_strategy(req) -> Optional[User]:
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    user = user_store.get_user(user_id)
    if user is None:
        # Account removed since login
        session.pop(SESSION_USER_KEY, None)
    return user


def dev_override_header_strategy(req) -> Optional[User]:
    raw = req.headers.get(DEV_OVERRIDE_HEADER)
    if not raw:
        return None
    user = user_store.get_user(raw.strip())
    if user is None:
        logger.warning("Development override header named unknown user %r", raw)
    return user


def dev_test_token_strategy(req) -> Optional[User]:
    token = bearer_token(req)
    if not token or not token.startswith(TEST_TOKEN_PREFIX):
        return None
    return user_store.get_user(token[len(TEST_TOKEN_PREFIX):])


def identity_provider_token_strategy(req) -> Optional[User]:
    token = bearer_token(req)
    if not token:
        return None
    provider = current_app.extensions.get("identity_provider")
    if provider is None or not provider.enabled:
        return None
    try:
        identity = provider.verify_token(token)
    except IdentityProviderError as exc:
        logger.warning("Bearer token %s rejected: %s", token_fingerprint(token), exc)
        return None
    user = user_store.get_user_by_external_id(identity.uid)
    if user is None:
        logger.info("Verified token %s has no linked account", token_fingerprint(token))
    return user


def build_strategy_chain(dev_auth_enabled: bool) -> list[tuple[str, Strategy]]:
    chain: list[tuple[str, Strategy]] = [("session", session_strategy)]
    if dev_auth_enabled:
        chain.append(("dev_override_header", dev_override_header_strategy))
        chain.append(("dev_test_token", dev_test_token_strategy))
    chain.append(("identity_provider_token", identity_provider_token_strategy))
    return chain


def resolve_principal(chain: list[tuple[str, Strategy]], req) -> tuple[Optional[str], Optional[User]]:
    """Run the chain; returns (strategy name, user) or (None, None).

    A principal found by anything but the session is written into the
    session so the next request takes the cheaper path.
    """
    for name, strategy in chain:
        user = strategy(req)
        if user is None:
            continue
        if name != "session":
            session[SESSION_USER_KEY] = user.id
            logger.info("Resolved user %s via %s", user.id, name)
        return name, user
    return None, None
