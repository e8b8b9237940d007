"""Main blueprint with health check and CSRF token endpoints."""
from flask import Blueprint, jsonify, current_app
from flask_wtf.csrf import generate_csrf
from sqlalchemy.exc import SQLAlchemyError
from app.database import ping
from app.services.notification_service import get_notifier

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        500: Unhealthy (DB error)

    Notifications are reported but never make the service unhealthy.
    """
    notifications = 'enabled' if get_notifier().enabled else 'disabled'
    try:
        if ping() == 1:
            return jsonify({
                'status': 'healthy',
                'database': 'connected',
                'notifications': notifications
            }), 200
        return jsonify({
            'status': 'unhealthy',
            'database': 'error',
            'message': 'Unexpected query result'
        }), 500

    except SQLAlchemyError as e:
        current_app.logger.error(f"Health check failed: {e}")
        return jsonify({
            'status': 'unhealthy',
            'database': 'disconnected',
            'message': 'Failed to connect to database'
        }), 500


@main_bp.route('/csrf-token')
def csrf_token():
    """Token for POS clients to send back in the X-CSRFToken header."""
    return jsonify({'csrf_token': generate_csrf()})
