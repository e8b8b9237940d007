"""Order Item model."""
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base


class OrderItem(Base):
    """
    Order line with name, price and cost frozen at sale time.

    product_id is not a foreign key so the line survives product deletion.
    """

    __tablename__ = 'order_item'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(String(36), nullable=False, index=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_order_item_quantity_positive'),
    )

    # Relationships
    order = relationship('Order', back_populates='items')

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'name': self.name,
            'price': str(self.price),
            'cost_price': str(self.cost_price),
            'quantity': self.quantity,
            'subtotal': str(self.subtotal),
        }

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, qty={self.quantity})>"
