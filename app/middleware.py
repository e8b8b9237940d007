"""Middleware for staff authentication context."""
from functools import wraps
from flask import session, g, current_app
from sqlalchemy.exc import SQLAlchemyError
from app.database import get_session
from app.exceptions import UnauthorizedError
from app.services.auth_service import get_actor


def load_current_actor():
    """
    Load the signed-in staff member into g (Flask's per-request global).

    Sets g.actor (an Actor or None). The user id is put in the session by the
    external identity provider's callback.
    """
    g.actor = None

    user_id = session.get(current_app.config.get('SESSION_USER_KEY', 'user_id'))
    if not user_id:
        return

    try:
        g.actor = get_actor(get_session(), user_id)
    except SQLAlchemyError as e:
        # Treat as anonymous; the route decides whether that is acceptable
        current_app.logger.error(f"Error loading staff user {user_id}: {e}")


def require_login(f):
    """
    Decorator: Require a signed-in staff member.

    Responds 401 through the PosError handler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('actor') is None:
            raise UnauthorizedError()
        return f(*args, **kwargs)
    return decorated_function
