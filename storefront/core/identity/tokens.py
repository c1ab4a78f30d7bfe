"""Bearer token verification against the realm's JWKS.

- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration, issuer and (optional) audience validation (RFC 7519)
- Signing keys cached by PyJWKClient (1-hour refresh)
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    PyJWKClientError,
    InvalidTokenError,
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidAudienceError,
    InvalidSignatureError,
    DecodeError,
)

from .exceptions import TokenValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    """Claims of a verified token that the application relies on."""
    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    name: Optional[str] = None
    username: Optional[str] = None


class TokenVerifier:
    """Verify RS256 access tokens issued by the identity provider."""

    def __init__(self, jwks_url: str, issuer: str, audience: str = "", jwks_client: Optional[PyJWKClient] = None):
        self.jwks_url = jwks_url
        self.issuer = issuer
        self.audience = audience
        self._jwks_client = jwks_client

    @property
    def jwks_client(self) -> PyJWKClient:
        if self._jwks_client is None:
            logger.info("Initializing JWKS client for: %s", self.jwks_url)
            self._jwks_client = PyJWKClient(
                self.jwks_url,
                cache_keys=True,
                max_cached_keys=16,
                lifespan=3600,
                headers={"User-Agent": "storefront-backend/1.0"},
            )
        return self._jwks_client

    def verify(self, token: str) -> VerifiedIdentity:
        """Validate the token and return the identity it carries.

        Raises:
            TokenValidationError: If any validation fails
        """
        if not token:
            raise TokenValidationError("Empty token")

        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                issuer=self.issuer or None,
                audience=self.audience or None,
                options={
                    "verify_iss": bool(self.issuer),
                    "verify_aud": bool(self.audience),
                    "require": ["exp", "iat", "sub"],
                },
                leeway=5,
            )
        except ExpiredSignatureError:
            raise TokenValidationError("Token expired (exp claim)")
        except InvalidIssuerError as e:
            raise TokenValidationError(f"Invalid issuer: {e}")
        except InvalidAudienceError as e:
            raise TokenValidationError(f"Invalid audience: {e}")
        except InvalidSignatureError:
            raise TokenValidationError("Invalid signature")
        except DecodeError as e:
            raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
        except (InvalidTokenError, PyJWKClientError) as e:
            raise TokenValidationError(f"Token validation failed: {e}")

        email = claims.get("email")
        return VerifiedIdentity(
            uid=str(claims["sub"]),
            email=email.lower() if isinstance(email, str) else None,
            email_verified=bool(claims.get("email_verified", False)),
            name=claims.get("name"),
            username=claims.get("preferred_username"),
        )
