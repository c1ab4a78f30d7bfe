"""Identity provider adapter (Keycloak).

Architecture:
- client.py: admin REST client with service-account authentication
- tokens.py: bearer token verification (JWKS)
- users.py: user lookup and deletion
- exceptions.py: typed exceptions

"User not found" is a normal negative result (None / False); every other
provider failure propagates as IdentityProviderError.

Usage:
    provider = IdentityProvider.from_config(cfg)
    identity = provider.verify_token(bearer_token)
    provider.delete_user(identity.uid)
"""
from __future__ import annotations
from typing import Optional

from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import (
    IdentityProviderError,
    IdentityAPIError,
    TokenValidationError,
    IdentityProviderNotConfigured,
)
from .tokens import TokenVerifier, VerifiedIdentity
from .users import UserService


class IdentityProvider:
    """Facade used by the authorization resolver and account handlers."""

    def __init__(self, verifier: Optional[TokenVerifier], client: Optional[KeycloakClient], realm: str, client_id: str = "", client_secret: str = ""):
        self.verifier = verifier
        self.client = client
        self.realm = realm
        self._client_id = client_id
        self._client_secret = client_secret
        self._users: Optional[UserService] = None

    @classmethod
    def from_config(cls, cfg) -> "IdentityProvider":
        if not cfg.identity_provider_enabled:
            return cls(None, None, cfg.keycloak_realm)
        verifier = TokenVerifier(cfg.jwks_url, cfg.keycloak_issuer, cfg.keycloak_audience)
        client = KeycloakClient(cfg.keycloak_url)
        return cls(verifier, client, cfg.keycloak_realm, cfg.identity_client_id, cfg.identity_client_secret)

    @property
    def enabled(self) -> bool:
        return self.verifier is not None

    @property
    def users(self) -> UserService:
        if self.client is None:
            raise IdentityProviderNotConfigured("KEYCLOAK_URL is not configured")
        # Service account token is fetched lazily, on first admin call
        if not self.client.authenticated:
            self.client.authenticate_service_account(self.realm, self._client_id, self._client_secret)
        if self._users is None:
            self._users = UserService(self.client, self.realm)
        return self._users

    def verify_token(self, token: str) -> VerifiedIdentity:
        if self.verifier is None:
            raise IdentityProviderNotConfigured("KEYCLOAK_URL is not configured")
        return self.verifier.verify(token)

    def get_user(self, user_id: str) -> Optional[dict]:
        return self.users.get_user(user_id)

    def find_user_by_email(self, email: str) -> Optional[dict]:
        return self.users.find_user_by_email(email)

    def delete_user(self, user_id: str) -> bool:
        return self.users.delete_user(user_id)

    def delete_user_by_email(self, email: str) -> bool:
        return self.users.delete_user_by_email(email)


__all__ = [
    "IdentityProvider",
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "TokenVerifier",
    "VerifiedIdentity",
    "UserService",
    "IdentityProviderError",
    "IdentityAPIError",
    "TokenValidationError",
    "IdentityProviderNotConfigured",
]
