"""
Logging Configuration
Console and rotating-file logging for the order payment service
"""

import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

_MAX_BYTES = 10485760  # 10MB
_BACKUP_COUNT = 10


def _log_level():
    return getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)


def _ensure_log_dir(log_dir):
    """Create log_dir if needed; an empty value disables file logging."""
    if not log_dir:
        return False
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        return False
    return True


def _rotating_handler(log_dir, filename, level):
    handler = RotatingFileHandler(
        os.path.join(log_dir, filename),
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger writing to stdout and, when LOG_DIR is set, to orderpay.log
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    level = _log_level()
    logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    logger.addHandler(console_handler)

    log_dir = os.getenv('LOG_DIR', 'logs')
    if _ensure_log_dir(log_dir):
        logger.addHandler(_rotating_handler(log_dir, 'orderpay.log', level))

    return logger


def mask_phone(phone) -> str:
    """Keep the country prefix and last three digits of a payer number."""
    if not phone:
        return ''
    phone = str(phone)
    if len(phone) <= 6:
        return '*' * len(phone)
    return f'{phone[:3]}{"*" * (len(phone) - 6)}{phone[-3:]}'


def configure_app_logging(app):
    """
    Configure logging for the Flask application

    Errors raised anywhere in the app also land in error.log under LOG_DIR.

    Args:
        app: Flask application instance
    """
    app.logger.setLevel(_log_level())

    log_dir = app.config.get('LOG_DIR')
    if _ensure_log_dir(log_dir):
        app.logger.addHandler(_rotating_handler(log_dir, 'error.log', logging.ERROR))


class RequestLogger:
    """Middleware logging every request with its caller and duration"""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Register before/after request hooks"""

        @app.before_request
        def log_request():
            from flask import g, request
            g.request_started = time.monotonic()
            get_logger('request').info(
                f'{request.method} {request.path} - '
                f'IP: {request.remote_addr} - '
                f'User-Agent: {request.headers.get("User-Agent", "Unknown")}'
            )

        @app.after_request
        def log_response(response):
            from flask import g, request
            started = g.get('request_started')
            elapsed = f'{(time.monotonic() - started) * 1000:.1f}ms' if started else '-'
            get_logger('response').info(
                f'{request.method} {request.path} - '
                f'Status: {response.status_code} - '
                f'IP: {request.remote_addr} - {elapsed}'
            )
            return response
