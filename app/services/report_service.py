"""Profit reporting from the frozen price/cost snapshots on order lines."""
from decimal import Decimal
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from sqlalchemy import func, desc
from sqlalchemy.orm import selectinload

from app.models import Order, OrderItem, OrderStatus, Product

CENT = Decimal('0.01')


def _money(value) -> Decimal:
    return Decimal(str(value if value is not None else 0)).quantize(CENT)


def order_profit(order: Order) -> Decimal:
    """Σ (price - cost_price) × quantity for one order."""
    return _money(order.profit)


def get_profit_summary(session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Revenue, cost and profit of COMPLETED orders completed in [start, end).

    Only OrderItem snapshots are read, so later changes to a product's
    price or cost never rewrite historical profit.
    """
    revenue_expr = func.sum(OrderItem.price * OrderItem.quantity)
    cost_expr = func.sum(OrderItem.cost_price * OrderItem.quantity)

    query = (
        session.query(
            OrderItem.product_id.label('product_id'),
            OrderItem.name.label('name'),
            func.sum(OrderItem.quantity).label('quantity'),
            revenue_expr.label('revenue'),
            cost_expr.label('cost')
        )
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.status == OrderStatus.COMPLETED)
    )
    orders_query = session.query(func.count(Order.id)).filter(Order.status == OrderStatus.COMPLETED)

    if start is not None:
        query = query.filter(Order.completed_at >= start)
        orders_query = orders_query.filter(Order.completed_at >= start)
    if end is not None:
        query = query.filter(Order.completed_at < end)
        orders_query = orders_query.filter(Order.completed_at < end)

    rows = query.group_by(OrderItem.product_id, OrderItem.name).order_by(desc('revenue')).all()

    by_product = []
    revenue = cost = Decimal('0.00')
    for row in rows:
        line_revenue = _money(row.revenue)
        line_cost = _money(row.cost)
        revenue += line_revenue
        cost += line_cost
        by_product.append({
            'product_id': row.product_id,
            'name': row.name,
            'quantity': int(row.quantity or 0),
            'revenue': line_revenue,
            'cost': line_cost,
            'profit': line_revenue - line_cost,
        })
    by_product.sort(key=lambda p: p['profit'], reverse=True)

    profit = revenue - cost
    margin = (profit / revenue * 100).quantize(CENT) if revenue else Decimal('0.00')

    return {
        'start': start,
        'end': end,
        'order_count': int(orders_query.scalar() or 0),
        'revenue': revenue,
        'cost': cost,
        'profit': profit,
        'margin_pct': margin,
        'by_product': by_product,
    }


def _day_totals(session, start: datetime, end: datetime) -> Dict[str, Any]:
    orders = session.query(Order).options(selectinload(Order.items)).filter(
        Order.status == OrderStatus.COMPLETED,
        Order.completed_at >= start,
        Order.completed_at < end
    ).all()
    return {
        'revenue': sum((_money(o.total) for o in orders), Decimal('0.00')),
        'profit': sum((order_profit(o) for o in orders), Decimal('0.00')),
        'count': len(orders),
    }


def _trend(today, yesterday) -> Decimal:
    """Percent change against yesterday; 0 when there is nothing to compare with."""
    if not yesterday:
        return Decimal('0.00')
    return ((Decimal(today) - Decimal(yesterday)) / Decimal(yesterday) * 100).quantize(CENT)


def get_dashboard_stats(session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Today's sales at a glance, with trends against yesterday.

    Days start at midnight of `now` (UTC by default). Profit is read from the
    frozen cost snapshots on each order line.
    """
    now = now or datetime.utcnow()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday_start = today_start - timedelta(days=1)

    today = _day_totals(session, today_start, today_start + timedelta(days=1))
    yesterday = _day_totals(session, yesterday_start, today_start)

    low_stock_count = session.query(func.count(Product.id)).filter(
        Product.active.is_(True),
        Product.track_inventory.is_(True),
        Product.stock <= Product.low_stock_alert
    ).scalar()

    return {
        'date': today_start.date(),
        'revenue': today['revenue'],
        'profit': today['profit'],
        'sales_count': today['count'],
        'low_stock_count': int(low_stock_count or 0),
        'trends': {
            'revenue_pct': _trend(today['revenue'], yesterday['revenue']),
            'sales_pct': _trend(today['count'], yesterday['count']),
        },
    }
