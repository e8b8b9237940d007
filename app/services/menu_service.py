"""Public digital menu."""
from collections import OrderedDict
from sqlalchemy import func
from typing import List, Dict, Any

from app.models import Product

DEFAULT_CATEGORY = 'Other'


def get_menu(session) -> List[Dict[str, Any]]:
    """
    Active menu products grouped by category.

    Ordered by category, then menu_order, then name.
    Cost price and stock are never exposed here.
    """
    products = session.query(Product).filter(
        Product.active.is_(True),
        Product.show_on_menu.is_(True)
    ).order_by(
        func.coalesce(Product.menu_category, DEFAULT_CATEGORY), Product.menu_order, Product.name
    ).all()

    groups = OrderedDict()
    for product in products:
        category = product.menu_category or DEFAULT_CATEGORY
        groups.setdefault(category, []).append({
            'id': product.id,
            'name': product.name,
            'price': str(product.price),
            'available': not product.track_inventory or product.stock > 0,
        })

    return [{'category': name, 'products': items} for name, items in groups.items()]
