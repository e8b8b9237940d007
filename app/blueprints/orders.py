"""Orders blueprint: hold, checkout, finalize and held-order management."""
from flask import Blueprint, request, jsonify, g
from app.database import get_session
from app.middleware import require_login
from app.services import order_service

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@orders_bp.route('', methods=['POST'])
@require_login
def hold():
    """Save the cart as a PENDING order (no payment, no stock change)."""
    order = order_service.create_order(get_session(), _json_body().get('cart'), g.actor)
    return jsonify(order.to_dict()), 201


@orders_bp.route('/checkout', methods=['POST'])
@require_login
def checkout():
    """
    Create and finalize in one step.

    Body: {"cart": {...}, "payments": [{"method": "CASH", "amount": "15.00"}]}
    """
    payload = _json_body()
    order = order_service.create_and_finalize_order(
        get_session(), payload.get('cart'), payload.get('payments'), g.actor
    )
    return jsonify(order.to_dict()), 201


@orders_bp.route('/<order_id>/finalize', methods=['POST'])
@require_login
def finalize(order_id):
    order = order_service.finalize_order(get_session(), order_id, _json_body().get('payments'), g.actor)
    return jsonify(order.to_dict()), 200


@orders_bp.route('/pending', methods=['GET'])
@require_login
def pending():
    orders = order_service.get_pending_orders(get_session(), g.actor)
    return jsonify({'orders': [o.to_dict() for o in orders]})


@orders_bp.route('/<order_id>', methods=['GET'])
@require_login
def detail(order_id):
    order = order_service.get_order(get_session(), order_id)
    data = order.to_dict()
    data['amount_paid'] = str(order.amount_paid)
    return jsonify(data)


@orders_bp.route('/<order_id>', methods=['DELETE'])
@require_login
def discard(order_id):
    order_service.delete_pending_order(get_session(), order_id, g.actor)
    return jsonify({'status': 'ok', 'message': 'Order discarded'})
