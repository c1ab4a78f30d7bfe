"""Gunicorn configuration.

Run with: gunicorn -c gunicorn.conf.py storefront.flask_app:app
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
accesslog = "-"


def post_fork(server, worker):
    """Called just after a worker has been forked.

    Development principal overrides must never be reachable outside
    development mode; settings.py enforces the same guard at load time.
    """
    dev_mode = os.environ.get("DEV_MODE", "false").lower() in {"1", "true", "yes", "on"}
    if not dev_mode and os.environ.get("DEV_AUTH_ENABLED", "false").lower() in {"1", "true", "yes", "on"}:
        worker.log.warning("DEV_AUTH_ENABLED=true without DEV_MODE (runtime guard)")
        os.environ["DEV_AUTH_ENABLED"] = "false"

    from pathlib import Path
    secrets_dir = Path("/run/secrets")
    if secrets_dir.is_dir():
        secret_files = [path for path in secrets_dir.glob("*") if path.is_file()]
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets")
