"""Cost price snapshot for the products in a cart."""
from decimal import Decimal
from typing import Dict, Iterable
from app.models import Product

ZERO = Decimal('0.00')


def resolve_cost_prices(session, product_ids: Iterable[str]) -> Dict[str, Decimal]:
    """
    Map every requested product id to its current cost price.

    Duplicates are collapsed before querying. Unknown products map to 0
    instead of failing the sale. Call it with the committer's session so the
    snapshot is read inside the same transaction.
    """
    unique_ids = list(dict.fromkeys(product_ids))
    if not unique_ids:
        return {}

    rows = session.query(Product.id, Product.cost_price).filter(
        Product.id.in_(unique_ids)
    ).all()
    found = {row[0]: Decimal(str(row[1] if row[1] is not None else 0)) for row in rows}

    return {pid: found.get(pid, ZERO) for pid in unique_ids}
