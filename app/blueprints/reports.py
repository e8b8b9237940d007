"""Reports blueprint: staff dashboard and manager profit reports."""
from datetime import datetime
from flask import Blueprint, request, jsonify
from app.database import get_session
from app.middleware import require_login
from app.decorators.permissions import manager_or_admin
from app.exceptions import BusinessLogicError
from app.services.report_service import get_profit_summary, get_dashboard_stats

reports_bp = Blueprint('reports', __name__, url_prefix='/reports')


def _parse_datetime(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise BusinessLogicError(f'Invalid {name} date: {value}')


@reports_bp.route('/profit', methods=['GET'])
@require_login
@manager_or_admin
def profit():
    """Profit summary. Query args: start, end (ISO 8601, end exclusive)."""
    start = _parse_datetime('start')
    end = _parse_datetime('end')
    if start and end and end <= start:
        raise BusinessLogicError('end must be after start')

    summary = get_profit_summary(get_session(), start, end)
    summary['start'] = start.isoformat() if start else None
    summary['end'] = end.isoformat() if end else None
    for key in ('revenue', 'cost', 'profit', 'margin_pct'):
        summary[key] = str(summary[key])
    summary['by_product'] = [
        dict(row, revenue=str(row['revenue']), cost=str(row['cost']), profit=str(row['profit']))
        for row in summary['by_product']
    ]
    return jsonify(summary)


@reports_bp.route('/dashboard', methods=['GET'])
@require_login
def dashboard():
    """Today's revenue, profit and sales count with trends against yesterday."""
    stats = get_dashboard_stats(get_session())
    return jsonify({
        'date': stats['date'].isoformat(),
        'revenue': str(stats['revenue']),
        'profit': str(stats['profit']),
        'sales_count': stats['sales_count'],
        'low_stock_count': stats['low_stock_count'],
        'trends': {key: str(value) for key, value in stats['trends'].items()},
    })
