"""Public digital menu blueprint (no staff session required)."""
from flask import Blueprint, request, jsonify
from app.database import get_session
from app.services import menu_service, order_service

menu_bp = Blueprint('menu', __name__, url_prefix='/menu')


@menu_bp.route('', methods=['GET'])
def menu():
    return jsonify({'categories': menu_service.get_menu(get_session())})


@menu_bp.route('/orders', methods=['POST'])
def visitor_order():
    """
    Place an order from a customer's phone. Body: {"cart": {...}}, same shape as /orders.

    The order stays PENDING until staff finalize it at the counter, so only
    a minimal receipt is returned.
    """
    payload = request.get_json(silent=True) or {}
    order = order_service.create_visitor_order(get_session(), payload.get('cart'))
    return jsonify({
        'id': order.id,
        'order_number': order.order_number,
        'status': order.status.value,
        'total': str(order.total),
    }), 201
