"""Input validation helpers for users, catalog and blog payloads."""
from __future__ import annotations
import json
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from slugify import slugify

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}
# Numeric(10, 2) columns hold at most eight integer digits
MAX_PRICE = Decimal("100000000")


def normalize_username(raw: str) -> str:
    """Normalize and validate username.

    Args:
        raw: Raw username input

    Returns:
        Normalized username

    Raises:
        ValueError: If username is invalid
    """
    if not isinstance(raw, str):
        raise ValueError("Username is required")
    normalized = "".join(char for char in raw.lower().strip() if char.isalnum() or char in {".", "-", "_"})

    if len(normalized) < 3:
        raise ValueError("Username must be at least 3 characters")
    if len(normalized) > 64:
        raise ValueError("Username must not exceed 64 characters")
    if normalized[0] in {".", "-", "_"} or normalized[-1] in {".", "-", "_"}:
        raise ValueError("Username cannot start or end with special characters")

    return normalized


def validate_email(email: str) -> str:
    """Validate email address.

    Returns:
        Normalized (lower-cased) email address

    Raises:
        ValueError: If email is invalid
    """
    if not isinstance(email, str):
        raise ValueError("Invalid email format")
    email = email.strip().lower()
    if not email or "@" not in email:
        raise ValueError("Invalid email format")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain:
        raise ValueError("Invalid email format")
    if len(email) > 254:
        raise ValueError("Email exceeds maximum length")

    return email


def validate_password(password) -> str:
    if not isinstance(password, str) or len(password) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(password) > 256:
        raise ValueError("Password exceeds maximum length")
    return password


def require_text(value, field: str, max_length: int | None = None) -> str:
    """Return a stripped, non-empty string or raise ValueError naming the field."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} is required")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValueError(f"{field} exceeds maximum length")
    return value


def optional_text(value, field: str, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    value = value.strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValueError(f"{field} exceeds maximum length")
    return value


def coerce_bool(value, field: str = "value") -> bool:
    """Coerce JSON booleans, 0/1 and the usual strings to a real bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    if value is None:
        return False
    raise ValueError(f"{field} must be a boolean")


def parse_price(value, field: str = "price") -> Decimal:
    """Parse a non-negative price and quantize it to two decimal places."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field} is required")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be a number")
    if not price.is_finite() or price < 0:
        raise ValueError(f"{field} must be a non-negative number")
    if price >= MAX_PRICE:
        raise ValueError(f"{field} must be less than {MAX_PRICE}")
    try:
        return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"{field} has too many digits")


def parse_optional_int(value, field: str) -> int | None:
    """Accept an integer (or integer string) or null; anything else is invalid."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")


def parse_page(value, default: int = 1) -> int:
    try:
        page = int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        raise ValueError("page must be an integer")
    if page < 1:
        raise ValueError("page must be at least 1")
    return page


def parse_limit(value, default: int, maximum: int = 100) -> int:
    try:
        limit = int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        raise ValueError("limit must be an integer")
    if limit < 1:
        raise ValueError("limit must be at least 1")
    return min(limit, maximum)


def normalize_slug(value, fallback: str | None = None) -> str:
    """Slugify the supplied slug, or derive one from ``fallback`` (a title or name)."""
    source = value if isinstance(value, str) and value.strip() else fallback
    slug = slugify(source or "", max_length=255)
    if not slug:
        raise ValueError("slug is required")
    return slug


def normalize_ingredients(value) -> list[str]:
    """Return ingredients as a list of non-empty strings.

    Accepts a list/tuple, a JSON-encoded list, or a comma/newline separated
    string. Normalizing an already normalized list returns an equal list.
    """
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except ValueError:
                decoded = None
            if isinstance(decoded, list):
                return normalize_ingredients(decoded)
        parts = text.replace("\r", "\n").replace("\n", ",").split(",")
        return [part.strip() for part in parts if part.strip()]
    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if item is None:
                continue
            text = str(item).strip()
            if text:
                items.append(text)
        return items
    raise ValueError("ingredients must be a list of strings")


def validate_role(role) -> str:
    from storefront.models import ROLES

    if role not in ROLES:
        raise ValueError(f"role must be one of: {', '.join(ROLES)}")
    return role
