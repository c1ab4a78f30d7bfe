"""Low-level HTTP client for the Keycloak admin REST API.

Authenticates with a service account (client credentials grant) and
refreshes the access token before it expires.
"""
from __future__ import annotations
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

import requests

from .exceptions import IdentityAPIError

REQUEST_TIMEOUT = 5


class KeycloakClient:
    """HTTP client for the Keycloak admin API with automatic token management.

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate_service_account("storefront", "storefront-backend", "secret")
        response = client.get("/admin/realms/storefront/users")
    """

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_params: Dict[str, Any] = {}

    def authenticate_service_account(self, auth_realm: str, client_id: str, client_secret: str) -> str:
        """Authenticate as service account and store credentials for auto-refresh."""
        self._auth_params = {
            "auth_realm": auth_realm,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        self._refresh()
        return self._token

    @property
    def authenticated(self) -> bool:
        return bool(self._auth_params)

    def _refresh(self) -> None:
        payload = self._get_service_account_token(
            self._auth_params["auth_realm"],
            self._auth_params["client_id"],
            self._auth_params["client_secret"],
        )
        self._token = payload["access_token"]
        # Keycloak reports expires_in; fall back to a conservative 60 seconds
        lifetime = int(payload.get("expires_in") or 60)
        self._token_expires_at = datetime.now() + timedelta(seconds=lifetime)

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._auth_params:
            raise IdentityAPIError(401, "Not authenticated - call authenticate_service_account first", "")

        # Refresh if token expired or expiring soon (within 10 seconds)
        if not self._token or not self._token_expires_at or datetime.now() >= self._token_expires_at - timedelta(seconds=10):
            self._refresh()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"

        try:
            resp = getattr(requests, method)(url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            raise IdentityAPIError(503, str(exc), url) from exc
        self._handle_error(resp)
        return resp

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            IdentityAPIError: On HTTP error
        """
        return self._request("get", path, params=params, **kwargs)

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication.

        Raises:
            IdentityAPIError: On HTTP error
        """
        return self._request("delete", path, **kwargs)

    def _get_service_account_token(self, auth_realm: str, client_id: str, client_secret: str) -> dict:
        """Fetch a service account token using client credentials flow."""
        url = f"{self.base_url}/realms/{auth_realm}/protocol/openid-connect/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        try:
            resp = requests.post(url, data=data, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise IdentityAPIError(503, str(exc), url) from exc
        if resp.status_code != 200:
            raise IdentityAPIError(resp.status_code, resp.text, url)
        return resp.json()

    def _handle_error(self, resp: requests.Response) -> None:
        """Raise IdentityAPIError when the response status indicates an error."""
        if resp.status_code >= 400:
            raise IdentityAPIError(resp.status_code, resp.text, resp.url)
