"""Products blueprint: catalog and menu settings (managers only)."""
from flask import Blueprint, request, jsonify
from app.database import get_session
from app.middleware import require_login
from app.decorators.permissions import manager_or_admin
from app.services import product_service

products_bp = Blueprint('products', __name__, url_prefix='/products')


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@products_bp.route('', methods=['POST'])
@require_login
@manager_or_admin
def create():
    """
    Add a product.

    Body: {"name": "Burger", "price": "15.00", "cost_price": "12.00", "stock": 10,
           "track_inventory": true, "low_stock_alert": 10, "sku": null}
    """
    payload = _json_body()
    product = product_service.create_product(
        get_session(),
        payload.get('name'),
        payload.get('price'),
        cost_price=payload.get('cost_price', 0),
        stock=payload.get('stock', 0),
        track_inventory=payload.get('track_inventory', True),
        low_stock_alert=payload.get('low_stock_alert', 10),
        sku=payload.get('sku')
    )
    return jsonify(product.to_dict()), 201


@products_bp.route('/<product_id>/menu-visibility', methods=['POST'])
@require_login
@manager_or_admin
def menu_visibility(product_id):
    """Body: {"show_on_menu": true}"""
    product = product_service.set_menu_visibility(
        get_session(), product_id, _json_body().get('show_on_menu')
    )
    return jsonify(product.to_dict())


@products_bp.route('/<product_id>/menu', methods=['PATCH'])
@require_login
@manager_or_admin
def menu_details(product_id):
    """Body: {"menu_category": "Mains"?, "menu_order": 2?}"""
    payload = _json_body()
    product = product_service.update_menu_details(
        get_session(),
        product_id,
        menu_category=payload.get('menu_category'),
        menu_order=payload.get('menu_order')
    )
    return jsonify(product.to_dict())
