"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, extensions, and configuration.
"""
from __future__ import annotations
import logging
import os
from datetime import timedelta
from tempfile import gettempdir

from cachelib import FileSystemCache, SimpleCache
from flask import Flask, request, g, abort
from werkzeug.middleware.proxy_fix import ProxyFix

from storefront.config import load_settings
from storefront.extensions import db, server_session, cors


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> Flask:
    """Create and configure Flask application."""
    # Load configuration
    cfg = load_settings()

    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # Create Flask app
    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg

    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["SQLALCHEMY_DATABASE_URI"] = cfg.database_url
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {"pool_pre_ping": True}

    # Server-side sessions: time-bounded entries, pruned once the threshold is hit
    app.config["SESSION_TYPE"] = "cachelib"
    app.config["SESSION_CACHELIB"] = _session_cache(cfg)
    app.config["SESSION_PERMANENT"] = True
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(seconds=cfg.session_lifetime_seconds)
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = cfg.session_cookie_secure

    db.init_app(app)
    server_session.init_app(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": cfg.cors_origins}},
        supports_credentials=True,
    )

    # Trust X-Forwarded-* headers from the reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    from storefront.core.identity import IdentityProvider
    app.extensions["identity_provider"] = IdentityProvider.from_config(cfg)

    # Register blueprints
    from storefront.api import auth, blog, errors, health, products, users

    app.register_blueprint(health.bp)
    app.register_blueprint(auth.bp)
    app.register_blueprint(products.bp)
    app.register_blueprint(blog.bp)
    app.register_blueprint(users.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    # Register middleware/before_request handlers
    _register_middleware(app, cfg)

    # Log startup info
    mode_label = "DEV" if cfg.dev_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}; session store={cfg.session_backend}")

    if cfg.dev_auth_enabled:
        print("[flask_app] WARNING: Development auth strategies active - do not deploy this configuration")

    return app


def _session_cache(cfg):
    if cfg.session_backend == "memory":
        return SimpleCache(threshold=cfg.session_threshold, default_timeout=cfg.session_lifetime_seconds)
    session_dir = cfg.session_dir or os.path.join(gettempdir(), "storefront_flask_session")
    os.makedirs(session_dir, exist_ok=True)
    return FileSystemCache(
        session_dir,
        threshold=cfg.session_threshold,
        default_timeout=cfg.session_lifetime_seconds,
    )


def _register_middleware(app: Flask, cfg):
    """Register before_request middleware."""
    from storefront.core import rbac
    from storefront.api.decorators import is_public

    chain = rbac.build_strategy_chain(cfg.dev_auth_enabled)
    app.config["AUTH_STRATEGIES"] = [name for name, _ in chain]

    @app.before_request
    def resolve_current_user() -> None:
        """Attach the principal to ``g``; reject anonymous calls to guarded routes."""
        # CORS preflight carries no credentials
        if request.method == "OPTIONS":
            return

        _, user = rbac.resolve_principal(chain, request)
        g.current_user = user
        if user is not None:
            return

        # Unknown URL or method: let routing answer 404 / 405
        if request.url_rule is None:
            return

        if not is_public(request.method, request.url_rule.rule):
            abort(401)


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
