"""Pytest shared fixtures."""
import os
import pathlib
import sys
import json
import time
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("DEV_MODE", "true")
os.environ.setdefault("DEV_AUTH_ENABLED", "true")
os.environ.setdefault("FLASK_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SESSION_BACKEND", "memory")
os.environ.setdefault("KEYCLOAK_URL", "http://keycloak.test")
os.environ.setdefault("KEYCLOAK_REALM", "storefront")
os.environ.setdefault("KEYCLOAK_ISSUER", "http://keycloak.test/realms/storefront")
os.environ.setdefault("IDENTITY_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.backends import default_backend
from authlib.jose import jwt as authlib_jwt
from werkzeug.security import generate_password_hash

from storefront.extensions import db
from storefront.flask_app import create_app
from storefront.core.storage import users as user_store
from storefront.core.storage import catalog as catalog_store
from storefront.core.storage import blog as blog_store

ISSUER = "http://keycloak.test/realms/storefront"
TEST_PASSWORD = "correct-horse-battery"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    def __init__(self, payload, status_code: int = 200, url: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.text = json.dumps(payload)
        self.url = url

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Unit tests never reach the identity provider; tests opt in with their own stubs."""

    def _stub_post(url, *args, **kwargs):
        if url.endswith("/protocol/openid-connect/token"):
            return StubResponse({"access_token": "service-token", "expires_in": 300}, url=url)
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    def _stub_get(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP GET in unit test: {url}")

    def _stub_delete(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP DELETE in unit test: {url}")

    monkeypatch.setattr(requests, "post", _stub_post)
    monkeypatch.setattr(requests, "get", _stub_get)
    monkeypatch.setattr(requests, "delete", _stub_delete)


# ─────────────────────────────────────────────────────────────────────────────
# Flask App / Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app():
    """Fresh application bound to its own in-memory database."""
    flask_app = create_app()
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    """Stateless API client: every request identifies itself through headers."""
    return app.test_client(use_cookies=False)


@pytest.fixture()
def browser(app):
    """Client that keeps the session cookie between requests."""
    return app.test_client()


# ─────────────────────────────────────────────────────────────────────────────
# Data Helpers
# ─────────────────────────────────────────────────────────────────────────────
def make_user(username: str = "alice", role: str = "user", email: Optional[str] = None,
              password: str = TEST_PASSWORD, external_id: Optional[str] = None):
    return user_store.insert_user(
        username,
        email or f"{username}@example.com",
        # Cheap hash keeps the suite fast
        generate_password_hash(password, method="pbkdf2:sha256:1000"),
        role=role,
        external_id=external_id,
    )


def make_category(name: str = "Skincare", slug: Optional[str] = None):
    return catalog_store.insert_category(name, slug or name.lower().replace(" ", "-"))


def make_product(name: str = "Lip Balm", category=None, **overrides):
    fields = dict(
        name=name,
        description=f"{name} description",
        price=Decimal("9.99"),
        image=f"/img/{name.lower().replace(' ', '-')}.jpg",
        why_recommend="Clean ingredients",
        ingredients=["beeswax", "shea butter"],
        category_id=category.id if category is not None else None,
    )
    fields.update(overrides)
    return catalog_store.insert_product(**fields)


def make_post(author, title: str = "Hello World", published: bool = True, categories=(), **overrides):
    fields = dict(
        title=title,
        slug=title.lower().replace(" ", "-"),
        content=f"{title} content",
        excerpt=f"{title} excerpt",
        author_id=author.id,
        published=published,
    )
    fields.update(overrides)
    post = blog_store.insert_post(**fields)
    if categories:
        blog_store.add_post_categories(post.id, [category.id for category in categories])
    return post


def auth_headers(user) -> dict:
    """Development test token resolving directly to ``user``."""
    return {"Authorization": f"Bearer test-{user.id}"}


@pytest.fixture()
def admin(app):
    return make_user("admin", role="admin")


@pytest.fixture()
def editor(app):
    return make_user("editor", role="editor")


@pytest.fixture()
def regular_user(app):
    return make_user("regular", role="user")


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair / JWT Helpers
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
        backend=default_backend()
    )
    return {"private_key": private_key, "public_key": private_key.public_key()}


@pytest.fixture()
def fake_jwks_client(rsa_key_pair):
    """Stands in for PyJWKClient: always hands out the test public key."""

    class _FakeJWKSClient:
        def __init__(self):
            self.calls = 0

        def get_signing_key_from_jwt(self, token):
            self.calls += 1
            return SimpleNamespace(key=rsa_key_pair["public_key"])

    return _FakeJWKSClient()


def create_valid_jwt(
    rsa_key_pair: dict,
    issuer: str = ISSUER,
    sub: str = "kc-user-123",
    email: Optional[str] = "fed@example.com",
    username: str = "feduser",
    exp_offset: int = 3600,
    audience: Optional[str] = None,
    email_verified: bool = True,
) -> str:
    """Create an RS256-signed JWT for testing."""
    now = int(time.time())
    header = {"alg": "RS256", "typ": "JWT", "kid": "default-key-id"}
    payload = {
        "iss": issuer,
        "sub": sub,
        "exp": now + exp_offset,
        "iat": now,
        "preferred_username": username,
        "email_verified": email_verified,
    }
    if email is not None:
        payload["email"] = email
    if audience is not None:
        payload["aud"] = audience
    token = authlib_jwt.encode(header, payload, rsa_key_pair["private_key"])
    return token.decode("utf-8") if isinstance(token, bytes) else token


@pytest.fixture()
def provider_tokens(app, fake_jwks_client, rsa_key_pair):
    """Route the app's token verification through the test key pair."""
    app.extensions["identity_provider"].verifier._jwks_client = fake_jwks_client

    def _mint(**claims):
        return create_valid_jwt(rsa_key_pair, **claims)

    return _mint
