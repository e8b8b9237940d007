"""StaffUser model - restaurant staff authenticated by the external identity provider."""
import enum
import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from app.database import Base


class StaffRole(enum.Enum):
    """Staff roles."""
    CASHIER = 'CASHIER'
    MANAGER = 'MANAGER'
    ADMIN = 'ADMIN'


class StaffUser(Base):
    """StaffUser model."""

    __tablename__ = 'staff_user'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=StaffRole.CASHIER.value)  # CASHIER, MANAGER, ADMIN
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<StaffUser(id={self.id}, email='{self.email}', role='{self.role}')>"
