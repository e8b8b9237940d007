"""
Staff identity service.

Sign-in happens at the external identity provider; this module only turns
the user id it leaves in the session into an explicit Actor value that is
passed to every order operation.
"""
from app.models import StaffUser, StaffRole
from app.exceptions import UnauthorizedError, ForbiddenError, BusinessLogicError
from sqlalchemy.exc import IntegrityError
import logging

logger = logging.getLogger(__name__)


class Actor:
    """The staff user performing an operation."""

    __slots__ = ('user_id', 'role')

    def __init__(self, user_id, role=StaffRole.CASHIER.value):
        self.user_id = user_id
        self.role = role

    @classmethod
    def from_user(cls, user):
        return cls(user.id, user.role)

    def has_role(self, *roles):
        return self.role in roles

    def __repr__(self):
        return f"<Actor(user_id={self.user_id}, role='{self.role}')>"


def get_actor(session, user_id):
    """Resolve a session user id to an Actor, or None if unknown/inactive."""
    if not user_id:
        return None
    user = session.query(StaffUser).filter_by(id=user_id, active=True).first()
    if not user:
        logger.warning(f"Session references unknown or inactive staff user {user_id}")
        return None
    return Actor.from_user(user)


def require_actor(actor, *roles):
    """
    Ensure an authenticated actor is present (and holds one of `roles`, if given).

    Raises:
        UnauthorizedError: No actor.
        ForbiddenError: Actor lacks the role.
    """
    if actor is None or not actor.user_id:
        raise UnauthorizedError()
    if roles and not actor.has_role(*roles):
        raise ForbiddenError()
    return actor


def create_staff_user(session, email, name=None, role=StaffRole.CASHIER.value):
    """Create a staff user. Raises BusinessLogicError on invalid role or duplicate email."""
    role = (role or '').upper()
    if role not in StaffRole.__members__:
        raise BusinessLogicError(f"Invalid role: {role}")

    user = StaffUser(email=email.strip().lower(), name=name, role=role, active=True)
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f"A staff user with email {email} already exists")

    logger.info(f"Staff user created: {user.email} ({role})")
    return user
