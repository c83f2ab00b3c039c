# Overview: Service-layer role checks shared by the catalog and order services.

"""
Role-based access rules.

Roles are a fixed ladder stored on the user and carried in the token:
- admin: everything, including deleting products
- manager: catalog and order maintenance
- staff: place orders, read everything
- viewer: read-only in practice; may still place orders since order
  creation only requires an authenticated caller
"""

from flask import current_app

from ..models import PRIVILEGED_ROLES
from .token_service import Identity


ADMIN_ONLY = ("admin",)


class PermissionDeniedError(Exception):
    """Raised when user lacks required role (403)."""


def require_role(identity: Identity, allowed: tuple[str, ...] = PRIVILEGED_ROLES) -> None:
    """Raise PermissionDeniedError unless identity.role is in allowed."""
    if identity.role not in allowed:
        current_app.logger.warning(
            "Permission denied user=%s role=%s required=%s",
            identity.user_id, identity.role, ",".join(allowed),
        )
        raise PermissionDeniedError("Forbidden. Insufficient permissions.")
