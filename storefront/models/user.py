from sqlalchemy import CheckConstraint

from storefront.extensions import db
from ._helpers import utcnow, isoformat

ROLES = ("user", "editor", "admin")


class User(db.Model):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'editor', 'admin')", name="ck_users_role"),
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, unique=True)
    email = db.Column(db.String(254), nullable=False, unique=True)
    # Salted hash (werkzeug.security), never the plaintext credential
    password_hash = db.Column(db.String(255), nullable=False)
    external_id = db.Column(db.String(255), nullable=True, unique=True)

    role = db.Column(db.String(20), nullable=False, default="user", server_default="user")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_login = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "externalId": self.external_id,
            "role": self.role,
            "createdAt": isoformat(self.created_at),
            "lastLogin": isoformat(self.last_login),
        }

    def to_author_dict(self):
        """Public subset attached to blog posts."""
        return {"id": self.id, "username": self.username}

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
