from __future__ import annotations

from ..extensions import db
from minierp.time_utils import to_utc_z, utcnow

ROLES = ("admin", "manager", "staff", "viewer")
PRIVILEGED_ROLES = ("admin", "manager")


class User(db.Model):
    """
    User accounts for authentication and order attribution.

    Email is the login identifier and is unique regardless of case: it is
    normalized to lower case before it reaches this table.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hashed password, never serialized
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default="staff")
    department = db.Column(db.String(120), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "department": self.department,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
        }

    def to_ref(self) -> dict:
        """Short form embedded in orders (creator display)."""
        return {"id": self.id, "name": self.name, "email": self.email}
