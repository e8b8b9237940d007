"""
Permission decorators for role-based access control.
Extends require_login with role checks.
"""

from functools import wraps
from flask import g
from app.models import StaffRole
from app.services.auth_service import require_actor


def require_role(*allowed_roles):
    """
    Decorator to restrict access to specific roles.

    Usage:
        @require_role('MANAGER', 'ADMIN')

    Raises UnauthorizedError without a signed-in actor and ForbiddenError
    when the actor's role is not listed.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            require_actor(g.get('actor'), *allowed_roles)
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def manager_or_admin(f):
    """
    Shortcut decorator for MANAGER or ADMIN access.

    Usage:
        @manager_or_admin
        def adjust_stock():
            ...
    """
    return require_role(StaffRole.MANAGER.value, StaffRole.ADMIN.value)(f)
