"""Payment model for split payments."""
import enum
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class PaymentMethod(enum.Enum):
    """Accepted tenders."""
    CASH = 'CASH'
    CARD = 'CARD'
    TRANSFER = 'TRANSFER'
    OTHER = 'OTHER'


def normalize_payment_method(method):
    """Return the canonical method string or None if unknown."""
    if not method:
        return None
    value = str(method).strip().upper()
    if value in PaymentMethod.__members__:
        return value
    return None


class Payment(Base):
    """
    Payment - one tender applied to an order.

    Several payments per order allow mixed methods (e.g., CASH + CARD).
    """

    __tablename__ = 'payment'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)

    method = Column(String(20), nullable=False)  # CASH, CARD, TRANSFER, OTHER
    amount = Column(Numeric(10, 2), nullable=False)
    reference = Column(String(120), nullable=True)

    # Relationships
    order = relationship('Order', back_populates='payments')

    def to_dict(self):
        return {
            'method': self.method,
            'amount': str(self.amount),
            'reference': self.reference,
        }

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, method={self.method}, amount={self.amount})>"
