"""Product model."""
import uuid
from sqlalchemy import Column, String, Boolean, Integer, Numeric, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


def _opening_stock(context):
    return context.get_current_parameters().get('stock') or 0


class Product(Base):
    """Product model. `stock` is the cached counter; the ledger explains it."""

    __tablename__ = 'product'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sku = Column(String, nullable=True)
    name = Column(String, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    price = Column(Numeric(10, 2), nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False, default=0, server_default='0.00')  # copied onto order lines at sale time
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    # Counter value when the product was created; the ledger explains every change since
    initial_stock = Column(Integer, nullable=False, default=_opening_stock, server_default='0')
    # Kitchen-made items are sold regardless of the counter
    track_inventory = Column(Boolean, nullable=False, default=True, server_default='1')
    low_stock_alert = Column(Integer, nullable=False, default=10, server_default='10')

    # Digital menu
    show_on_menu = Column(Boolean, nullable=False, default=False, server_default='0')
    menu_category = Column(String(100), nullable=True)
    menu_order = Column(Integer, nullable=False, default=0, server_default='0')

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    movements = relationship('StockMovement', back_populates='product', order_by='StockMovement.id')

    @property
    def is_low_stock(self):
        return self.track_inventory and self.stock <= (self.low_stock_alert or 0)

    def to_dict(self):
        return {
            'id': self.id,
            'sku': self.sku,
            'name': self.name,
            'active': self.active,
            'price': str(self.price),
            'cost_price': str(self.cost_price),
            'stock': self.stock,
            'initial_stock': self.initial_stock,
            'low_stock_alert': self.low_stock_alert,
            'track_inventory': self.track_inventory,
            'is_low_stock': self.is_low_stock,
            'show_on_menu': self.show_on_menu,
            'menu_category': self.menu_category,
            'menu_order': self.menu_order,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
