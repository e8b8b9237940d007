"""Models package - exports all SQLAlchemy models."""
from app.models.staff_user import StaffUser, StaffRole
from app.models.product import Product
from app.models.order import Order, OrderStatus
from app.models.order_item import OrderItem
from app.models.payment import Payment, PaymentMethod, normalize_payment_method
from app.models.stock_movement import StockMovement, StockMovementType, StockMovementReason

__all__ = [
    'StaffUser', 'StaffRole',
    'Product',
    'Order', 'OrderStatus', 'OrderItem',
    'Payment', 'PaymentMethod', 'normalize_payment_method',
    'StockMovement', 'StockMovementType', 'StockMovementReason',
]
