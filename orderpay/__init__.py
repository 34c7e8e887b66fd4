from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from orderpay.extensions import cors, order_store, request_logger
from orderpay.config import config
from orderpay.utils.logger import configure_app_logging


def create_app(config_name='development'):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])

    # Only trusted hops may rewrite remote_addr from X-Forwarded-*
    proxies = app.config.get('TRUSTED_PROXY_COUNT', 0)
    if proxies:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies, x_proto=proxies, x_host=proxies)

    # Initialize extensions
    cors.init_app(app)
    order_store.init_app(app)
    request_logger.init_app(app)
    configure_app_logging(app)

    # Register blueprints
    from orderpay.api import register_blueprints
    register_blueprints(app)

    # Error handlers
    register_error_handlers(app)

    return app


def register_error_handlers(app):
    """Register error handlers"""
    from flask import jsonify
    from orderpay.errors import AppError

    @app.errorhandler(AppError)
    def app_error(error):
        return jsonify({'success': False, 'error': error.error, 'message': error.message}), error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request', 'message': str(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'message': str(error)}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed', 'message': str(error)}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error', 'message': str(error)}), 500
