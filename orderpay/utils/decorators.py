"""
Custom Decorators
Callback authentication and other decorators
"""

from functools import wraps
from flask import request, current_app
import time

from orderpay.errors import UnauthorizedCallback
from orderpay.services.callback_security import CallbackSecurity
from orderpay.services.reconcilers import get_reconciler
from orderpay.utils.logger import get_logger

logger = get_logger(__name__)


def get_remote_addr() -> str:
    """
    Caller address

    Client-supplied X-Forwarded-For is never read here; behind a proxy,
    TRUSTED_PROXY_COUNT makes ProxyFix set remote_addr from the trusted hops.
    """
    return request.remote_addr or ''


def get_callback_signature(header_names) -> str:
    for name in header_names:
        value = request.headers.get(name)
        if value:
            return value
    return ''


def callback_guard(provider):
    """
    Authenticate a provider callback before the view runs

    Checks the source-IP allowlist (403) and, when configured and a signature
    header is present, the HMAC-SHA256 body signature (401).

    Usage:
        @callback_guard('mpesa')
        def mpesa_callback():
            return "OK"
    """

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            prefix = provider.upper()
            security = CallbackSecurity.from_config(current_app.config, prefix)
            remote = get_remote_addr()

            try:
                security.check_source(remote)
                security.check_signature(
                    request.get_data(cache=True),
                    get_callback_signature(get_reconciler(provider).signature_headers)
                )
            except UnauthorizedCallback as e:
                logger.warning(f'{provider} callback rejected from {remote}: {e.message}')
                body = 'Forbidden' if e.status_code == 403 else 'Unauthorized'
                return body, e.status_code

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def log_execution_time(f):
    """
    Log execution time of a function

    Usage:
        @log_execution_time
        def my_function():
            return "Success"
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        start_time = time.time()
        result = f(*args, **kwargs)
        end_time = time.time()

        execution_time = end_time - start_time
        logger.info(f'{f.__name__} executed in {execution_time:.4f} seconds')

        return result

    return decorated_function
