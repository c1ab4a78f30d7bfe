"""Identity provider user lookups and deletion."""
from __future__ import annotations
import logging
from typing import Optional

from .client import KeycloakClient
from .exceptions import IdentityAPIError

logger = logging.getLogger(__name__)


class UserService:
    """Service for reading and removing users in the realm."""

    def __init__(self, client: KeycloakClient, realm: str):
        self.client = client
        self.realm = realm

    def get_user(self, user_id: str) -> Optional[dict]:
        """Return the user representation, or None if the realm has no such user."""
        try:
            resp = self.client.get(f"/admin/realms/{self.realm}/users/{user_id}")
        except IdentityAPIError as exc:
            if exc.status_code == 404:
                return None
            raise
        return resp.json()

    def find_user_by_email(self, email: str) -> Optional[dict]:
        """Return the user whose email matches exactly (case-insensitive)."""
        resp = self.client.get(
            f"/admin/realms/{self.realm}/users",
            params={"email": email, "exact": "true"},
        )
        wanted = email.strip().lower()
        for user in resp.json():
            if (user.get("email") or "").lower() == wanted:
                return user
        return None

    def delete_user(self, user_id: str) -> bool:
        """Delete a user. Returns False when the user does not exist."""
        try:
            self.client.delete(f"/admin/realms/{self.realm}/users/{user_id}")
        except IdentityAPIError as exc:
            if exc.status_code == 404:
                logger.info("Identity %s already absent from realm %s", user_id, self.realm)
                return False
            raise
        logger.info("Deleted identity %s from realm %s", user_id, self.realm)
        return True

    def delete_user_by_email(self, email: str) -> bool:
        user = self.find_user_by_email(email)
        if not user:
            return False
        return self.delete_user(user["id"])
