"""Order model."""
import enum
import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Numeric, DateTime, Text, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class OrderStatus(enum.Enum):
    """Order status enum. PENDING -> COMPLETED only."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class Order(Base):
    """Order header."""

    __tablename__ = 'orders'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number = Column(String(32), nullable=False, unique=True, index=True)
    status = Column(Enum(OrderStatus, name='order_status'), nullable=False, default=OrderStatus.PENDING)

    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    table_number = Column(String(20), nullable=True)
    customer_name = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)

    # Visitor orders have no owner
    user_id = Column(String(36), ForeignKey('staff_user.id'), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint('subtotal >= 0 AND tax >= 0 AND total >= 0', name='ck_orders_amounts_non_negative'),
    )

    # Relationships
    user = relationship('StaffUser')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan', order_by='OrderItem.id')
    payments = relationship('Payment', back_populates='order', cascade='all, delete-orphan', order_by='Payment.id')

    @property
    def amount_paid(self):
        return sum((p.amount for p in self.payments), Decimal('0'))

    @property
    def profit(self):
        """Profit from the frozen price/cost snapshots."""
        return sum(((i.price - i.cost_price) * i.quantity for i in self.items), Decimal('0'))

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'status': self.status.value,
            'subtotal': str(self.subtotal),
            'tax': str(self.tax),
            'total': str(self.total),
            'table_number': self.table_number,
            'customer_name': self.customer_name,
            'notes': self.notes,
            'user_id': self.user_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'items': [item.to_dict() for item in self.items],
            'payments': [payment.to_dict() for payment in self.payments],
        }

    def __repr__(self):
        return f"<Order(id={self.id}, number={self.order_number}, total={self.total}, status={self.status.value})>"
