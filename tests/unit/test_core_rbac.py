from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from flask import request, session

from storefront.core import rbac
from storefront.core.identity import TokenValidationError
from tests.conftest import make_user


@pytest.mark.parametrize(
    "role,required,expected",
    [
        ("user", "user", True),
        ("editor", "user", True),
        ("admin", "user", True),
        ("user", "editor", False),
        ("editor", "editor", True),
        ("admin", "editor", True),
        ("user", "admin", False),
        ("editor", "admin", False),
        ("admin", "admin", True),
        (None, "user", False),
        ("superuser", "user", False),
    ],
)
def test_role_satisfies(role, required, expected):
    assert rbac.role_satisfies(role, required) is expected


def test_chain_order_with_dev_auth():
    names = [name for name, _ in rbac.build_strategy_chain(dev_auth_enabled=True)]
    assert names == ["session", "dev_override_header", "dev_test_token", "identity_provider_token"]


def test_chain_excludes_dev_strategies_when_disabled():
    names = [name for name, _ in rbac.build_strategy_chain(dev_auth_enabled=False)]
    assert names == ["session", "identity_provider_token"]


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc.def", "abc.def"),
        ("bearer   tok ", "tok"),
        ("Basic dXNlcjpwYXNz", None),
        ("Bearer ", None),
        ("", None),
    ],
)
def test_bearer_token_parsing(header, expected):
    req = SimpleNamespace(headers={"Authorization": header})
    assert rbac.bearer_token(req) == expected


def test_token_fingerprint_does_not_leak_token():
    fingerprint = rbac.token_fingerprint("secret-token-value")
    assert len(fingerprint) == 12
    assert "secret" not in fingerprint


def test_session_strategy_wins(app):
    alice = make_user("alice")
    bob = make_user("bob")
    chain = rbac.build_strategy_chain(dev_auth_enabled=True)
    with app.test_request_context(headers={rbac.DEV_OVERRIDE_HEADER: str(bob.id)}):
        session[rbac.SESSION_USER_KEY] = alice.id
        name, user = rbac.resolve_principal(chain, request)
        assert name == "session"
        assert user.id == alice.id


def test_dev_override_header_persists_into_session(app):
    alice = make_user("alice")
    chain = rbac.build_strategy_chain(dev_auth_enabled=True)
    with app.test_request_context(headers={rbac.DEV_OVERRIDE_HEADER: str(alice.id)}) as ctx:
        name, user = rbac.resolve_principal(chain, ctx.request)
        assert name == "dev_override_header"
        assert user.id == alice.id
        assert session[rbac.SESSION_USER_KEY] == alice.id


def test_dev_test_token_resolves_user(app):
    alice = make_user("alice")
    chain = rbac.build_strategy_chain(dev_auth_enabled=True)
    with app.test_request_context(headers={"Authorization": f"Bearer test-{alice.id}"}) as ctx:
        name, user = rbac.resolve_principal(chain, ctx.request)
        assert name == "dev_test_token"
        assert user.id == alice.id


def test_dev_strategies_unreachable_when_disabled(app):
    alice = make_user("alice")
    app.extensions["identity_provider"] = MagicMock(enabled=True)
    app.extensions["identity_provider"].verify_token.side_effect = TokenValidationError("bad token")
    chain = rbac.build_strategy_chain(dev_auth_enabled=False)
    headers = {rbac.DEV_OVERRIDE_HEADER: str(alice.id), "Authorization": f"Bearer test-{alice.id}"}
    with app.test_request_context(headers=headers) as ctx:
        assert rbac.resolve_principal(chain, ctx.request) == (None, None)
        assert rbac.SESSION_USER_KEY not in session


def test_stale_session_user_is_dropped(app):
    chain = rbac.build_strategy_chain(dev_auth_enabled=False)
    with app.test_request_context() as ctx:
        session[rbac.SESSION_USER_KEY] = 999
        assert rbac.resolve_principal(chain, ctx.request) == (None, None)
        assert rbac.SESSION_USER_KEY not in session


def test_identity_provider_token_resolves_linked_user(app):
    alice = make_user("alice", external_id="kc-alice")
    provider = MagicMock(enabled=True)
    provider.verify_token.return_value = SimpleNamespace(uid="kc-alice", email="alice@example.com")
    app.extensions["identity_provider"] = provider
    chain = rbac.build_strategy_chain(dev_auth_enabled=True)
    with app.test_request_context(headers={"Authorization": "Bearer real.jwt.token"}) as ctx:
        name, user = rbac.resolve_principal(chain, ctx.request)
        assert name == "identity_provider_token"
        assert user.id == alice.id
        assert session[rbac.SESSION_USER_KEY] == alice.id
    provider.verify_token.assert_called_once_with("real.jwt.token")


def test_identity_provider_failure_falls_through_to_anonymous(app, caplog):
    provider = MagicMock(enabled=True)
    provider.verify_token.side_effect = TokenValidationError("Token expired (exp claim)")
    app.extensions["identity_provider"] = provider
    chain = rbac.build_strategy_chain(dev_auth_enabled=False)
    with app.test_request_context(headers={"Authorization": "Bearer expired.jwt.token"}) as ctx:
        assert rbac.resolve_principal(chain, ctx.request) == (None, None)
    assert "expired.jwt.token" not in caplog.text


def test_verified_token_without_linked_account_is_anonymous(app):
    provider = MagicMock(enabled=True)
    provider.verify_token.return_value = SimpleNamespace(uid="kc-unknown", email="x@example.com")
    app.extensions["identity_provider"] = provider
    chain = rbac.build_strategy_chain(dev_auth_enabled=False)
    with app.test_request_context(headers={"Authorization": "Bearer some.jwt.token"}) as ctx:
        assert rbac.resolve_principal(chain, ctx.request) == (None, None)
