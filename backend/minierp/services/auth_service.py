# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Registration and login.

Passwords are hashed with bcrypt (cost from BCRYPT_ROUNDS) and only ever
compared through bcrypt.checkpw. Emails are the login identifier and are
matched case-insensitively by normalizing to lower case on the way in.

Login failures for an unknown email and a wrong password share one message.
A deactivated account is reported separately (AccountDisabledError) before
the password is checked, so staff know to contact an administrator.
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, ROLES
from ..validation import ValidationError, ConflictError
from . import token_service
from .token_service import Identity


MIN_PASSWORD_LENGTH = 6
# bcrypt only reads the first 72 bytes
MAX_PASSWORD_BYTES = 72


class AuthenticationError(Exception):
    """Raised when credentials do not match an account (401)."""


class AccountDisabledError(Exception):
    """Raised when the account exists but is deactivated (403)."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for length before hashing.
    """
    validate_password(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, email=user.email, role=user.role)


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = "staff",
    department: str | None = None,
) -> User:
    """
    Create an active user with a bcrypt password hash.

    Raises:
        ValidationError: missing fields, short password, unknown role
        ConflictError: email already registered
    """
    if not all(isinstance(v, str) and v.strip() for v in (name, email, password)):
        raise ValidationError("Name, email, and password are required")
    name = name.strip()
    email = normalize_email(email)
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    password_hash = hash_password(password)

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        department=department.strip() or None if isinstance(department, str) else None,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        db.session.rollback()
        raise ConflictError("Email already registered")
    return user


def register(
    name: str,
    email: str,
    password: str,
    role: str | None = None,
    department: str | None = None,
) -> tuple[User, str]:
    """Create the account and sign its first token."""
    user = create_user(name, email, password, role=role or "staff", department=department)
    current_app.logger.info("Registered user id=%s role=%s", user.id, user.role)
    return user, token_service.issue(identity_for(user))


def login(email: str, password: str) -> tuple[User, str]:
    """
    Authenticate by email and password.

    Raises:
        ValidationError: email or password missing
        AuthenticationError: unknown email or wrong password
        AccountDisabledError: the account is deactivated
    """
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise ValidationError("Email and password are required")

    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        raise AuthenticationError("Invalid credentials")

    if not user.is_active:
        raise AccountDisabledError("Account is deactivated. Contact administrator.")

    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    return user, token_service.issue(identity_for(user))


def get_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def set_active(email: str, active: bool) -> User:
    """Activate or deactivate an account (CLI administration)."""
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user:
        raise ValueError(f"User {email} not found")
    user.is_active = active
    db.session.commit()
    return user
