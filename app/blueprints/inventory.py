"""Inventory blueprint: stock adjustments, ledger history and alerts."""
from flask import Blueprint, request, jsonify, g, current_app
from app.database import get_session
from app.middleware import require_login
from app.decorators.permissions import manager_or_admin
from app.exceptions import BusinessLogicError
from app.models import StockMovementReason
from app.services import stock_ledger_service

inventory_bp = Blueprint('inventory', __name__, url_prefix='/inventory')


@inventory_bp.route('/<product_id>/stock', methods=['POST'])
@require_login
@manager_or_admin
def adjust(product_id):
    """
    Manual stock change.

    Body: {"quantity": 5, "mode": "ADD" | "SET", "reason": "RESTOCK"?}
    """
    payload = request.get_json(silent=True) or {}

    quantity = payload.get('quantity')
    if isinstance(quantity, bool):
        raise BusinessLogicError('Quantity must be a whole number')
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise BusinessLogicError('Quantity must be a whole number')

    reason = payload.get('reason')
    if reason:
        try:
            reason = StockMovementReason[str(reason).upper()]
        except KeyError:
            raise BusinessLogicError(f'Invalid reason: {reason}')

    product = stock_ledger_service.adjust_stock(
        get_session(),
        product_id,
        quantity,
        payload.get('mode', 'ADD'),
        g.actor.user_id,
        reason=reason
    )
    return jsonify(product.to_dict())


@inventory_bp.route('/<product_id>/movements', methods=['GET'])
@require_login
def movements(product_id):
    limit = request.args.get('limit', 100, type=int)
    rows = stock_ledger_service.get_movements(get_session(), product_id, limit=max(1, min(limit, 500)))
    return jsonify({'movements': [m.to_dict() for m in rows]})


@inventory_bp.route('/<product_id>/reconcile', methods=['GET'])
@require_login
def reconcile(product_id):
    """Compare the stock counter with the sum of its ledger movements."""
    return jsonify(stock_ledger_service.reconcile_product(get_session(), product_id))


@inventory_bp.route('/alerts', methods=['GET'])
@require_login
def alerts():
    limit = current_app.config.get('LOW_STOCK_ALERT_LIMIT', 5)
    products = stock_ledger_service.get_stock_alerts(get_session(), limit=limit)
    return jsonify({'products': [p.to_dict() for p in products]})
