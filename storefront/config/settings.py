"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _env_flag(var_name: str, default: str = "false") -> bool:
    return os.environ.get(var_name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    dev_mode: bool
    dev_auth_enabled: bool

    # Flask
    secret_key: str
    database_url: str

    # Session store
    session_backend: str = "filesystem"
    session_dir: str = ""
    session_lifetime_seconds: int = 7 * 24 * 3600
    session_threshold: int = 5000
    session_cookie_secure: bool = True

    # Frontends allowed to call the API with credentials
    cors_origins: list[str] = field(default_factory=list)

    # Identity provider (Keycloak realm)
    keycloak_url: str = ""
    keycloak_realm: str = "storefront"
    keycloak_issuer: str = ""
    keycloak_audience: str = ""

    # Service account used for the admin REST API
    identity_client_id: str = "storefront-backend"
    identity_client_secret: str = ""

    log_level: str = "INFO"

    @property
    def identity_provider_enabled(self) -> bool:
        """True when an identity provider base URL is configured."""
        return bool(self.keycloak_url)

    @property
    def jwks_url(self) -> str:
        """JWKS endpoint of the realm (public signing keys)."""
        return f"{self.keycloak_url.rstrip('/')}/realms/{self.keycloak_realm}/protocol/openid-connect/certs"


def _enforce_dev_auth_consistency(dev_mode: bool, dev_auth_requested: bool) -> bool:
    """Development principal overrides are only reachable in development mode."""
    if dev_auth_requested and not dev_mode:
        print("[settings] WARNING: DEV_AUTH_ENABLED=true ignored because DEV_MODE is false (runtime guard)")
        return False
    return dev_auth_requested


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    dev_mode = _env_flag("DEV_MODE")
    dev_auth_enabled = _enforce_dev_auth_consistency(
        dev_mode,
        _env_flag("DEV_AUTH_ENABLED", str(dev_mode)),
    )

    # Database connection string is mandatory in every mode
    database_url = _load_secret_from_file("database_url", "DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    # Hosted Postgres providers still hand out the legacy scheme
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if not dev_mode:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")
        secret_key = secrets.token_urlsafe(48)
        os.environ["FLASK_SECRET_KEY"] = secret_key
        print("[dev-mode] Generated temporary FLASK_SECRET_KEY")

    session_backend = os.environ.get("SESSION_BACKEND", "filesystem").strip().lower()
    if session_backend not in {"filesystem", "memory"}:
        raise RuntimeError(f"Unsupported SESSION_BACKEND '{session_backend}' (expected filesystem or memory)")

    session_cookie_secure = _env_flag("SESSION_COOKIE_SECURE", "false" if dev_mode else "true")

    cors_origins = [
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "http://localhost:5173" if dev_mode else "").split(",")
        if origin.strip()
    ]

    # Identity provider
    keycloak_url = os.environ.get("KEYCLOAK_URL", "").strip().rstrip("/")
    keycloak_realm = os.environ.get("KEYCLOAK_REALM", "storefront")
    keycloak_issuer = os.environ.get(
        "KEYCLOAK_ISSUER",
        f"{keycloak_url}/realms/{keycloak_realm}" if keycloak_url else "",
    )
    identity_client_id = os.environ.get("IDENTITY_CLIENT_ID", "storefront-backend")
    identity_client_secret = _load_secret_from_file("identity_client_secret", "IDENTITY_CLIENT_SECRET") or ""
    if keycloak_url and not identity_client_secret and not dev_mode:
        raise RuntimeError("IDENTITY_CLIENT_SECRET is required when KEYCLOAK_URL is set in production mode.")

    mode_label = "DEV" if dev_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; realm={keycloak_realm}; identity_provider={'on' if keycloak_url else 'off'}")

    if dev_auth_enabled:
        print("[settings] WARNING: Development principal overrides enabled. Never deploy with DEV_AUTH_ENABLED.")

    return AppConfig(
        dev_mode=dev_mode,
        dev_auth_enabled=dev_auth_enabled,
        secret_key=secret_key,
        database_url=database_url,
        session_backend=session_backend,
        session_dir=os.environ.get("SESSION_DIR", ""),
        session_lifetime_seconds=int(os.environ.get("SESSION_LIFETIME_SECONDS", str(7 * 24 * 3600))),
        session_threshold=int(os.environ.get("SESSION_THRESHOLD", "5000")),
        session_cookie_secure=session_cookie_secure,
        cors_origins=cors_origins,
        keycloak_url=keycloak_url,
        keycloak_realm=keycloak_realm,
        keycloak_issuer=keycloak_issuer,
        keycloak_audience=os.environ.get("KEYCLOAK_AUDIENCE", ""),
        identity_client_id=identity_client_id,
        identity_client_secret=identity_client_secret,
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
