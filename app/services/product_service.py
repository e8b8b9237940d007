"""
Product catalog management for managers.

Menu settings only change how a product is shown on the digital menu; the
price and cost frozen on past order lines are never touched from here.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from app.models import Product
from app.exceptions import PosError, BusinessLogicError, NotFoundError, TransactionAbortedError

logger = logging.getLogger(__name__)

MAX_CATEGORY_LENGTH = 100


def _amount(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise BusinessLogicError(f'{field} must be a number')
    if not amount.is_finite() or amount < 0:
        raise BusinessLogicError(f'{field} must be zero or more')
    return amount.quantize(Decimal('0.01'))


def _save(session, product: Product, action: str) -> Product:
    try:
        session.commit()
        session.refresh(product)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"{action} failed for {product.id}: {e}")
        raise TransactionAbortedError() from e
    logger.info(f"{action}: {product.name} ({product.id})")
    return product


def _get(session, product_id: str) -> Product:
    product = session.get(Product, product_id)
    if not product:
        raise NotFoundError('Product not found')
    return product


def create_product(
    session,
    name: str,
    price,
    cost_price=0,
    stock: int = 0,
    track_inventory: bool = True,
    low_stock_alert: int = 10,
    sku: Optional[str] = None
) -> Product:
    """
    Add a product to the catalog.

    The opening stock becomes initial_stock; every later change goes through
    the ledger. Untracked (kitchen-made) products always open at zero.
    """
    name = (name or '').strip()
    if not name:
        raise BusinessLogicError('Product name is required')
    for field, value in (('Stock', stock), ('Low stock alert', low_stock_alert)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise BusinessLogicError(f'{field} must be a whole number, zero or more')

    opening = stock if track_inventory else 0
    product = Product(
        name=name,
        sku=(sku or '').strip() or None,
        price=_amount(price, 'Price'),
        cost_price=_amount(cost_price, 'Cost price'),
        stock=opening,
        initial_stock=opening,
        track_inventory=bool(track_inventory),
        low_stock_alert=low_stock_alert,
    )
    session.add(product)
    return _save(session, product, 'Product created')


def set_menu_visibility(session, product_id: str, show: bool) -> Product:
    """Show or hide a product on the public menu."""
    if not isinstance(show, bool):
        raise BusinessLogicError('show_on_menu must be true or false')
    try:
        product = _get(session, product_id)
        product.show_on_menu = show
    except PosError:
        session.rollback()
        raise
    return _save(session, product, 'Menu visibility ' + ('on' if show else 'off'))


def update_menu_details(
    session,
    product_id: str,
    menu_category: Optional[str] = None,
    menu_order: Optional[int] = None
) -> Product:
    """
    Change where a product sits on the menu.

    An empty category clears it, so the product falls back to the default group.
    Arguments left as None are not changed.
    """
    try:
        product = _get(session, product_id)
        if menu_category is not None:
            category = str(menu_category).strip()
            if len(category) > MAX_CATEGORY_LENGTH:
                raise BusinessLogicError(f'Menu category is limited to {MAX_CATEGORY_LENGTH} characters')
            product.menu_category = category or None
        if menu_order is not None:
            if isinstance(menu_order, bool) or not isinstance(menu_order, int):
                raise BusinessLogicError('menu_order must be a whole number')
            product.menu_order = menu_order
    except PosError:
        session.rollback()
        raise
    return _save(session, product, 'Menu details updated')
