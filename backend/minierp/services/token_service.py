# Overview: Service-layer operations for bearer tokens; signs and verifies identity assertions.

"""
Stateless bearer tokens (JWT, HS256).

A token embeds the user id, email and role and is valid for seven days from
issuance. There is no refresh and no server-side revocation: expiry forces a
new login. Verification never raises; every failure (missing, malformed,
tampered, expired) collapses to None so callers only see "unauthenticated".
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt
from flask import current_app

from minierp.time_utils import utcnow


TOKEN_LIFETIME = timedelta(days=7)
ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    """Verified caller, passed explicitly into every workflow that needs one."""
    user_id: int
    email: str
    role: str


def _secret(secret: str | None) -> str:
    return secret if secret is not None else current_app.config["JWT_SECRET_KEY"]


def issue(identity: Identity, *, secret: str | None = None, now: datetime | None = None) -> str:
    """Sign a token for identity, valid for TOKEN_LIFETIME from now."""
    issued_at = now or utcnow()
    claims = {
        "sub": str(identity.user_id),
        "email": identity.email,
        "role": identity.role,
        "iat": issued_at,
        "exp": issued_at + TOKEN_LIFETIME,
    }
    return jwt.encode(claims, _secret(secret), algorithm=ALGORITHM)


def verify(token: str | None, *, secret: str | None = None) -> Identity | None:
    """Return the embedded Identity, or None if the token is unusable."""
    if not token:
        return None
    try:
        claims = jwt.decode(
            token,
            _secret(secret),
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp", "iat"]},
        )
        return Identity(
            user_id=int(claims["sub"]),
            email=str(claims["email"]),
            role=str(claims["role"]),
        )
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        return None


def token_from_header(auth_header: str | None) -> str | None:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def authenticate(request, *, secret: str | None = None) -> Identity | None:
    """Resolve the caller of an HTTP request from its Authorization header."""
    token = token_from_header(request.headers.get("Authorization"))
    if token is None:
        return None
    return verify(token, secret=secret)
