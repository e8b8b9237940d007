"""Stock Movement model (append-only ledger)."""
import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class StockMovementType(enum.Enum):
    """Stock movement type enum."""
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


class StockMovementReason(enum.Enum):
    """Why the stock changed."""
    SALE = "SALE"
    RESTOCK = "RESTOCK"
    CORRECTION = "CORRECTION"
    WASTE = "WASTE"


class StockMovement(Base):
    """Stock Movement. Rows are never updated or deleted."""

    __tablename__ = 'stock_movement'

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(String(36), ForeignKey('product.id'), nullable=False, index=True)
    type = Column(Enum(StockMovementType, name='stock_movement_type'), nullable=False)
    quantity = Column(Integer, nullable=False)  # signed: negative for outgoing
    reason = Column(Enum(StockMovementReason, name='stock_movement_reason'), nullable=False)
    user_id = Column(String(36), ForeignKey('staff_user.id'), nullable=True)
    order_id = Column(String(36), ForeignKey('orders.id'), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    product = relationship('Product', back_populates='movements')
    user = relationship('StaffUser')

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'type': self.type.value,
            'quantity': self.quantity,
            'reason': self.reason.value,
            'user_id': self.user_id,
            'order_id': self.order_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<StockMovement(id={self.id}, product_id={self.product_id}, qty={self.quantity:+d}, reason={self.reason.value})>"
