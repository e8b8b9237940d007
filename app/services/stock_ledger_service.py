"""
Stock ledger service.

StockMovement rows are append-only: nothing here updates or deletes them.
Product.stock is a cached counter kept in step with the ledger by changing
both inside the same transaction.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import update, or_, func
from sqlalchemy.exc import SQLAlchemyError

from app.models import Product, StockMovement, StockMovementType, StockMovementReason
from app.exceptions import PosError, BusinessLogicError, NotFoundError, InsufficientStockError, TransactionAbortedError

logger = logging.getLogger(__name__)

ADJUST_MODES = ('ADD', 'SET')


def append_movement(
    session,
    product_id: str,
    quantity: int,
    reason: StockMovementReason,
    user_id: Optional[str] = None,
    order_id: Optional[str] = None,
    movement_type: Optional[StockMovementType] = None
) -> StockMovement:
    """Append one ledger entry. `quantity` is signed (negative = outgoing)."""
    if movement_type is None:
        movement_type = StockMovementType.IN if quantity > 0 else StockMovementType.OUT

    movement = StockMovement(
        product_id=product_id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
        user_id=user_id,
        order_id=order_id
    )
    session.add(movement)
    return movement


def lock_products(session, product_ids: List[str]) -> Dict[str, Product]:
    """
    Load products FOR UPDATE and return them by id.

    Rows are locked in id order so concurrent carts cannot deadlock.
    NOTE: SQLite ignores FOR UPDATE; the guarded decrement still holds there.
    """
    unique_ids = list(dict.fromkeys(product_ids))
    if not unique_ids:
        return {}
    products = session.query(Product).filter(
        Product.id.in_(unique_ids)
    ).order_by(Product.id).with_for_update().populate_existing().all()
    return {p.id: p for p in products}


def check_availability(products: Dict[str, Product], required: Dict[str, int], allow_negative: bool = False) -> None:
    """
    Validate that every required quantity is on hand.

    Raises:
        NotFoundError: A product no longer exists.
        InsufficientStockError: Listing every short product.
    """
    missing = [pid for pid in required if pid not in products]
    if missing:
        raise NotFoundError(f"Product not found: {', '.join(missing)}", payload={'product_ids': missing})

    if allow_negative:
        return

    shortages = []
    for pid, qty in required.items():
        product = products[pid]
        if product.track_inventory and product.stock < qty:
            shortages.append({
                'product_id': pid,
                'name': product.name,
                'required': qty,
                'available': product.stock,
            })
    if shortages:
        raise InsufficientStockError(shortages)


def decrement_stock(session, product: Product, quantity: int, allow_negative: bool = False) -> None:
    """
    Atomically subtract `quantity` from product.stock.

    The UPDATE carries its own `stock >= quantity` guard so two transactions
    that both passed check_availability cannot drive the counter negative.
    """
    stmt = update(Product).where(Product.id == product.id)
    if not allow_negative:
        stmt = stmt.where(or_(Product.track_inventory.is_(False), Product.stock >= quantity))
    stmt = stmt.values(stock=Product.stock - quantity).execution_options(synchronize_session=False)

    result = session.execute(stmt)
    if result.rowcount != 1:
        session.refresh(product, ['stock'])
        raise InsufficientStockError([{
            'product_id': product.id,
            'name': product.name,
            'required': quantity,
            'available': product.stock,
        }])
    session.expire(product, ['stock'])


def adjust_stock(
    session,
    product_id: str,
    quantity: int,
    mode: str,
    user_id: str,
    reason: Optional[StockMovementReason] = None
) -> Product:
    """
    Manual stock change recorded as a compensating ledger entry.

    ADD adds the (possibly negative) quantity, SET replaces the counter.
    The resulting stock may not be negative.
    """
    mode = (mode or '').upper()
    if mode not in ADJUST_MODES:
        raise BusinessLogicError(f"Invalid update type: {mode}")

    try:
        product = lock_products(session, [product_id]).get(product_id)
        if not product:
            raise NotFoundError('Product not found')

        current = product.stock
        new_stock = current + quantity if mode == 'ADD' else quantity
        if new_stock < 0:
            raise BusinessLogicError('Stock cannot be negative')

        delta = new_stock - current
        if delta != 0:
            session.execute(
                update(Product)
                .where(Product.id == product.id)
                .values(stock=Product.stock + delta)
                .execution_options(synchronize_session=False)
            )
            if reason is None:
                reason = StockMovementReason.RESTOCK if delta > 0 else StockMovementReason.CORRECTION
            append_movement(
                session,
                product_id=product.id,
                quantity=delta,
                reason=reason,
                user_id=user_id,
                movement_type=StockMovementType.ADJUSTMENT if mode == 'SET' else None
            )

        session.commit()
        session.refresh(product)
        logger.info(f"Stock {mode} on {product.name}: {current} -> {product.stock} by {user_id}")
        return product

    except PosError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Stock adjustment failed for {product_id}: {e}")
        raise TransactionAbortedError() from e


def get_movements(session, product_id: str, limit: int = 100) -> List[StockMovement]:
    """Ledger history for a product, newest first."""
    if not session.query(Product.id).filter(Product.id == product_id).first():
        raise NotFoundError('Product not found')
    return session.query(StockMovement).filter(
        StockMovement.product_id == product_id
    ).order_by(StockMovement.id.desc()).limit(limit).all()


def ledger_balance(session, product_id: str) -> int:
    """Sum of all signed movements for a product."""
    total = session.query(func.coalesce(func.sum(StockMovement.quantity), 0)).filter(
        StockMovement.product_id == product_id
    ).scalar()
    return int(total or 0)


def reconcile_product(session, product_id: str) -> Dict[str, Any]:
    """
    Check the cached counter against the ledger.

    A product is consistent when the sum of its movements equals
    stock - initial_stock.
    """
    product = session.get(Product, product_id, populate_existing=True)
    if not product:
        raise NotFoundError('Product not found')

    balance = ledger_balance(session, product_id)
    drift = (product.stock - product.initial_stock) - balance
    if drift:
        logger.warning(f"Ledger drift on {product.name}: counter {product.stock}, "
                       f"opening {product.initial_stock}, ledger {balance}")

    return {
        'product_id': product.id,
        'name': product.name,
        'initial_stock': product.initial_stock,
        'stock': product.stock,
        'ledger_balance': balance,
        'drift': drift,
        'consistent': drift == 0,
    }


def get_stock_alerts(session, limit: int = 5) -> List[Product]:
    """Tracked, active products at or below their low-stock alert, lowest first."""
    return session.query(Product).filter(
        Product.active.is_(True),
        Product.track_inventory.is_(True),
        Product.stock <= Product.low_stock_alert
    ).order_by(Product.stock.asc()).limit(limit).all()
