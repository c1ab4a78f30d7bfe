"""Health check endpoints."""
from flask import Blueprint
from sqlalchemy import text

from storefront.extensions import db

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check: the database answers a trivial query."""
    db.session.execute(text("SELECT 1"))
    return ("ready", 200, {"Content-Type": "text/plain"})
