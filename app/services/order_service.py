"""
Order service with transactional logic.
Handles hold, visitor, finalize and direct checkout of orders, stock
decrements, ledger entries and post-commit notifications.
"""
import logging
import time
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import List, Dict, Optional, Any

from flask import current_app, has_app_context
from sqlalchemy import update, text, func, or_
from sqlalchemy.exc import SQLAlchemyError

from app.models import (
    Order, OrderItem, OrderStatus, Payment, Product,
    StockMovementType, StockMovementReason, normalize_payment_method
)
from app.exceptions import (
    PosError, BusinessLogicError, NotFoundError, AlreadyFinalizedError,
    TransactionAbortedError
)
from app.services import stock_ledger_service
from app.services.auth_service import require_actor
from app.services.cost_snapshot_service import resolve_cost_prices
from app.services.order_number import generate_order_number, STAFF_PREFIX, VISITOR_PREFIX
from app.services.notification_service import get_notifier, ORDER_CREATED, ORDER_PAID
from app.blueprints.metrics import (
    orders_committed_total, order_commit_failures_total, order_commit_duration_seconds
)

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
DEFAULT_COMMIT_TIMEOUT = 10
VISITOR_NAME = 'Visitor'


def _setting(key: str, default):
    """Read a config value when running inside the app, else the default."""
    if has_app_context():
        return current_app.config.get(key, default)
    return default


# =====================================================
# INPUT NORMALIZATION
# =====================================================

def _to_decimal(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise BusinessLogicError(f'Invalid amount for {field}: {value!r}')
    if not amount.is_finite():
        raise BusinessLogicError(f'Invalid amount for {field}: {value!r}')
    if amount < 0:
        raise BusinessLogicError(f'{field} cannot be negative')
    return amount.quantize(CENT)


def _to_quantity(value) -> int:
    if isinstance(value, bool):
        raise BusinessLogicError('Quantity must be a whole number')
    try:
        qty = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise BusinessLogicError(f'Invalid quantity: {value!r}')
    if not qty.is_finite() or qty % 1 != 0:
        raise BusinessLogicError('Quantity must be a whole number')
    if qty <= 0:
        raise BusinessLogicError('Quantity must be greater than 0')
    return int(qty)


def _first(data: dict, *keys, default=None):
    for key in keys:
        if data.get(key) not in (None, ''):
            return data[key]
    return default


def _optional_text(value, max_len: int) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value[:max_len] or None


def parse_cart(cart: dict) -> Dict[str, Any]:
    """
    Normalize a cart descriptor.

    Accepts camelCase keys from the POS client (productRef, unitPrice,
    tableNumber, customerName) as well as snake_case.
    """
    if not isinstance(cart, dict) or not cart.get('items'):
        raise BusinessLogicError('The cart is empty')
    if not isinstance(cart['items'], list):
        raise BusinessLogicError('Cart items must be a list')

    lines = []
    for raw in cart['items']:
        if not isinstance(raw, dict):
            raise BusinessLogicError('Invalid cart line')
        product_id = _first(raw, 'productRef', 'productId', 'product_id')
        if not product_id:
            raise BusinessLogicError('Every cart line needs a product reference')
        name = _optional_text(_first(raw, 'name'), 255)
        if not name:
            raise BusinessLogicError(f'Cart line for product {product_id} has no name')
        quantity = _to_quantity(_first(raw, 'quantity', 'qty'))
        price = _to_decimal(_first(raw, 'unitPrice', 'unit_price', 'price'), 'unit price')
        lines.append({
            'product_id': str(product_id),
            'name': name,
            'quantity': quantity,
            'price': price,
            'subtotal': (price * quantity).quantize(CENT),
        })

    subtotal = sum((line['subtotal'] for line in lines), Decimal('0')).quantize(CENT)
    tax = _to_decimal(_first(cart, 'tax', default=0), 'tax')

    return {
        'items': lines,
        'subtotal': subtotal,
        'tax': tax,
        'total': (subtotal + tax).quantize(CENT),
        'table_number': _optional_text(_first(cart, 'tableNumber', 'table_number'), 20),
        'customer_name': _optional_text(_first(cart, 'customerName', 'customer_name'), 200),
        'notes': _optional_text(_first(cart, 'notes'), 2000),
    }


def parse_payments(payments: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Normalize a non-empty list of {method, amount, reference?}."""
    if not payments or not isinstance(payments, list):
        raise BusinessLogicError('At least one payment is required')

    parsed = []
    for p in payments:
        if not isinstance(p, dict):
            raise BusinessLogicError('Invalid payment')
        method = normalize_payment_method(p.get('method'))
        if not method:
            raise BusinessLogicError(f"Invalid payment method: {p.get('method')}")
        parsed.append({
            'method': method,
            'amount': _to_decimal(p.get('amount'), 'payment amount'),
            'reference': _optional_text(p.get('reference'), 120),
        })
    return parsed


def _check_payment_total(total: Decimal, payments: List[Dict[str, Any]]) -> None:
    """Payments may fall short of the total unless ENFORCE_PAYMENT_TOTAL is on."""
    if not _setting('ENFORCE_PAYMENT_TOTAL', False):
        return
    paid = sum((p['amount'] for p in payments), Decimal('0'))
    if paid < total:
        raise BusinessLogicError(
            f'Payments ({paid}) do not cover the order total ({total})',
            payload={'paid': str(paid), 'total': str(total)}
        )


# =====================================================
# UNIT OF WORK
# =====================================================

@contextmanager
def _unit_of_work(session, operation: str):
    """
    All-or-nothing transaction with a wall-clock budget.

    Commits when the block finishes, rolls everything back on any error.
    Infrastructure failures surface as TransactionAbortedError.
    """
    timeout = float(_setting('ORDER_COMMIT_TIMEOUT', DEFAULT_COMMIT_TIMEOUT))
    started = time.monotonic()
    try:
        if session.get_bind().dialect.name == 'postgresql':
            session.execute(text(f"SET LOCAL statement_timeout = {max(1, int(timeout * 1000))}"))

        yield

        if time.monotonic() - started > timeout:
            raise TransactionAbortedError(f'{operation} exceeded {timeout:g}s and was rolled back')
        session.commit()
        order_commit_duration_seconds.observe(time.monotonic() - started)

    except PosError as e:
        session.rollback()
        order_commit_failures_total.labels(reason=type(e).__name__).inc()
        logger.warning(f"{operation} aborted: {e.message}")
        raise
    except SQLAlchemyError as e:
        session.rollback()
        order_commit_failures_total.labels(reason='TransactionAbortedError').inc()
        logger.error(f"{operation} rolled back by the database: {e}")
        raise TransactionAbortedError() from e
    except Exception:
        session.rollback()
        order_commit_failures_total.labels(reason='unexpected').inc()
        logger.exception(f"{operation} failed unexpectedly")
        raise


def _build_order(session, cart: Dict[str, Any], prefix: str, status: OrderStatus, user_id: Optional[str]) -> Order:
    """Persist header and items, with cost prices read in this transaction."""
    costs = resolve_cost_prices(session, [line['product_id'] for line in cart['items']])

    order = Order(
        order_number=generate_order_number(prefix),
        status=status,
        subtotal=cart['subtotal'],
        tax=cart['tax'],
        total=cart['total'],
        table_number=cart['table_number'],
        customer_name=cart['customer_name'],
        notes=cart['notes'],
        user_id=user_id,
        completed_at=func.now() if status == OrderStatus.COMPLETED else None
    )
    for line in cart['items']:
        order.items.append(OrderItem(
            product_id=line['product_id'],
            name=line['name'],
            price=line['price'],
            cost_price=costs[line['product_id']],
            quantity=line['quantity'],
            subtotal=line['subtotal']
        ))
    session.add(order)
    session.flush()
    return order


def _complete(session, order: Order, items: List[OrderItem], payments: List[Dict[str, Any]], user_id: str) -> None:
    """
    Shared completion step for checkout and finalize.

    Adds payments, decrements stock (guarded) and appends one SALE movement
    per item. Caller owns the transaction.
    """
    allow_negative = bool(_setting('ALLOW_NEGATIVE_STOCK', False))

    required: Dict[str, int] = {}
    for item in items:
        required[item.product_id] = required.get(item.product_id, 0) + item.quantity

    products = stock_ledger_service.lock_products(session, list(required))
    stock_ledger_service.check_availability(products, required, allow_negative)

    for p in payments:
        session.add(Payment(
            order_id=order.id,
            method=p['method'],
            amount=p['amount'],
            reference=p['reference']
        ))

    for item in items:
        stock_ledger_service.decrement_stock(session, products[item.product_id], item.quantity, allow_negative)
        stock_ledger_service.append_movement(
            session,
            product_id=item.product_id,
            quantity=-item.quantity,
            reason=StockMovementReason.SALE,
            user_id=user_id,
            order_id=order.id,
            movement_type=StockMovementType.OUT
        )
    session.flush()


def _after_commit(order: Order, event: str, source: str, notifier=None) -> None:
    """Metrics, log line and best-effort broadcast. Never raises."""
    try:
        orders_committed_total.labels(status=order.status.value, source=source).inc()
        logger.info(f"Order {order.order_number} committed ({order.status.value}, total {order.total})")
        (notifier or get_notifier()).publish(event, order.to_dict())
    except Exception as e:
        logger.warning(f"Post-commit hook failed for order {order.id}: {e}")


# =====================================================
# PUBLIC OPERATIONS
# =====================================================

def create_order(session, cart: dict, actor, notifier=None) -> Order:
    """
    Hold an order: PENDING, no payments, no stock effect.
    """
    require_actor(actor)
    parsed = parse_cart(cart)

    with _unit_of_work(session, 'Hold order'):
        order = _build_order(session, parsed, STAFF_PREFIX, OrderStatus.PENDING, actor.user_id)

    _after_commit(order, ORDER_CREATED, 'staff', notifier)
    return order


def _menu_cart(session, cart: dict) -> Dict[str, Any]:
    """
    Rebuild a visitor cart from the catalog.

    Only active products shown on the menu can be ordered; name and price
    always come from the product, never from the client.
    """
    if not isinstance(cart, dict) or not isinstance(cart.get('items'), list) or not cart['items']:
        raise BusinessLogicError('The cart is empty')

    refs = []
    for raw in cart['items']:
        if not isinstance(raw, dict):
            raise BusinessLogicError('Invalid cart line')
        refs.append(str(_first(raw, 'productRef', 'productId', 'product_id', default='')))

    products = {
        p.id: p for p in session.query(Product).filter(Product.id.in_(set(refs))).all()
    }
    unavailable = [
        ref for ref in dict.fromkeys(refs)
        if ref not in products or not (products[ref].active and products[ref].show_on_menu)
    ]
    if unavailable:
        raise BusinessLogicError(
            f"Not available on the menu: {', '.join(unavailable)}",
            payload={'product_ids': unavailable}
        )

    return {
        'items': [
            {
                'productRef': ref,
                'name': products[ref].name,
                'unitPrice': products[ref].price,
                'quantity': _first(raw, 'quantity', 'qty'),
            }
            for raw, ref in zip(cart['items'], refs)
        ],
        'tax': 0,
        'tableNumber': _first(cart, 'tableNumber', 'table_number'),
        'notes': _first(cart, 'notes'),
    }


def create_visitor_order(session, cart: dict, notifier=None) -> Order:
    """
    Public digital-menu order. Always PENDING, untaxed, ownerless, VIS prefix,
    customer "Visitor"; staff confirm it later through finalize_order.
    """
    with _unit_of_work(session, 'Visitor order'):
        parsed = parse_cart(_menu_cart(session, cart))
        parsed['customer_name'] = VISITOR_NAME
        order = _build_order(session, parsed, VISITOR_PREFIX, OrderStatus.PENDING, None)

    _after_commit(order, ORDER_CREATED, 'visitor', notifier)
    return order


def create_and_finalize_order(session, cart: dict, payments: List[Dict[str, Any]], actor, notifier=None) -> Order:
    """
    Direct checkout: order created COMPLETED with payments, stock and ledger
    in a single transaction.
    """
    require_actor(actor)
    parsed = parse_cart(cart)
    tenders = parse_payments(payments)
    _check_payment_total(parsed['total'], tenders)

    with _unit_of_work(session, 'Checkout'):
        order = _build_order(session, parsed, STAFF_PREFIX, OrderStatus.COMPLETED, actor.user_id)
        _complete(session, order, order.items, tenders, actor.user_id)

    _after_commit(order, ORDER_PAID, 'staff', notifier)
    return order


def finalize_order(session, order_id: str, payments: List[Dict[str, Any]], actor, notifier=None) -> Order:
    """
    PENDING -> COMPLETED with payments, stock decrement and ledger entries.

    The status change is a conditional UPDATE issued first inside the
    transaction, so of two concurrent finalize calls only one can match the
    PENDING row; the other fails and persists nothing.

    Raises:
        NotFoundError: Unknown order.
        AlreadyFinalizedError: Order is already COMPLETED.
    """
    require_actor(actor)
    tenders = parse_payments(payments)

    with _unit_of_work(session, 'Finalize order'):
        result = session.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == OrderStatus.PENDING)
            .values(
                status=OrderStatus.COMPLETED,
                completed_at=func.now(),
                # Visitor orders become owned by the staff member confirming them
                user_id=func.coalesce(Order.user_id, actor.user_id)
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            existing = session.query(Order.order_number).filter(Order.id == order_id).first()
            if existing is None:
                raise NotFoundError(f'Order {order_id} not found')
            raise AlreadyFinalizedError(existing[0])

        order = session.query(Order).filter(Order.id == order_id).populate_existing().one()
        _check_payment_total(order.total, tenders)
        _complete(session, order, list(order.items), tenders, actor.user_id)

    _after_commit(order, ORDER_PAID, 'staff', notifier)
    return order


def get_order(session, order_id: str) -> Order:
    order = session.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError(f'Order {order_id} not found')
    return order


def get_pending_orders(session, actor) -> List[Order]:
    """Held orders of the actor plus unclaimed visitor orders, newest first."""
    require_actor(actor)
    return session.query(Order).filter(
        Order.status == OrderStatus.PENDING,
        or_(Order.user_id == actor.user_id, Order.user_id.is_(None))
    ).order_by(Order.created_at.desc(), Order.order_number.desc()).all()


def delete_pending_order(session, order_id: str, actor) -> None:
    """Discard a held order. Completed orders are immutable."""
    require_actor(actor)
    try:
        order = session.query(Order).filter(Order.id == order_id).with_for_update().first()
        if not order:
            raise NotFoundError(f'Order {order_id} not found')
        if order.status != OrderStatus.PENDING:
            raise BusinessLogicError(f'Order {order.order_number} is completed and cannot be deleted', status_code=409)

        session.delete(order)
        session.commit()
        logger.info(f"Held order {order.order_number} discarded by {actor.user_id}")

    except PosError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        raise TransactionAbortedError() from e
