"""
Health Check Endpoints
"""

from flask import Blueprint, jsonify, current_app
from datetime import datetime, timezone
import os

from orderpay.extensions import order_store
from orderpay.providers import list_available_providers

health_bp = Blueprint('health', __name__)

_REQUIRED_CREDENTIALS = {
    'mpesa': ('MPESA_CONSUMER_KEY', 'MPESA_CONSUMER_SECRET', 'MPESA_SHORTCODE', 'MPESA_PASSKEY'),
    'pesapal': ('PESAPAL_CONSUMER_KEY', 'PESAPAL_CONSUMER_SECRET'),
}


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint

    Reports which integrations are configured; makes no outbound calls.

    Returns:
        200 if the order store is configured
        503 otherwise
    """
    checks = {
        'order_store': 'configured' if order_store.configured else 'not_configured'
    }

    for provider in list_available_providers():
        keys = _REQUIRED_CREDENTIALS.get(provider, ())
        configured = all(current_app.config.get(key) for key in keys)
        checks[provider] = 'configured' if configured else 'not_configured'

    healthy = order_store.configured

    return jsonify({
        'status': 'healthy' if healthy else 'unhealthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'service': 'orderpay',
        'checks': checks
    }), 200 if healthy else 503


@health_bp.route('/health/live', methods=['GET'])
def liveness_probe():
    """
    Kubernetes liveness probe
    Returns 200 if the application is running
    """
    return jsonify({
        'status': 'alive',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'environment': os.getenv('FLASK_ENV', 'production')
    }), 200
