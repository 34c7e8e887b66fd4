"""
Pytest Configuration and Fixtures
"""
import os

os.environ.setdefault('LOG_DIR', '')

import copy
import json
from unittest.mock import Mock, patch

import pytest

from orderpay import create_app
from orderpay.errors import OrderNotFound
from orderpay.models import TRACKING_FIELDS


class FakeOrderStore:
    """In-memory stand-in for OrderStoreClient"""

    configured = True

    def __init__(self):
        self.orders = {}
        self.calls = []
        self._next_id = 1000

    def add(self, order_id, **fields):
        self.orders[str(order_id)] = {'id': order_id, 'payment_status': None, **fields}
        return self.orders[str(order_id)]

    def get_order_by_id(self, order_id):
        self.calls.append(('get', order_id))
        order = self.orders.get(str(order_id))
        if order is None:
            raise OrderNotFound(f'Order {order_id} not found')
        return copy.deepcopy(order)

    def patch_order_by_id(self, order_id, fields):
        self.calls.append(('patch_id', order_id, dict(fields)))
        order = self.orders.get(str(order_id))
        if order is None:
            return None
        order.update(fields)
        return copy.deepcopy(order)

    def patch_order_by_tracking_id(self, tracking_field, value, fields):
        assert tracking_field in TRACKING_FIELDS
        self.calls.append(('patch_tracking', tracking_field, value, dict(fields)))
        for order in self.orders.values():
            if order.get(tracking_field) == value:
                order.update(fields)
                return copy.deepcopy(order)
        return None

    def create_order(self, fields):
        self._next_id += 1
        self.calls.append(('create', dict(fields)))
        return copy.deepcopy(self.add(self._next_id, **fields))


@pytest.fixture(scope='session')
def app():
    """Create application for testing"""
    os.environ['FLASK_ENV'] = 'testing'

    app = create_app('testing')

    # Establish application context
    ctx = app.app_context()
    ctx.push()

    yield app

    ctx.pop()


@pytest.fixture(scope='function')
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def fake_store():
    """
    In-memory order store patched into every service that uses it.
    """
    store = FakeOrderStore()

    with patch('orderpay.services.payment_service.order_store', store), \
            patch('orderpay.services.webhook_service.order_store', store):
        yield store


@pytest.fixture(scope='function')
def sample_order(fake_store):
    """Order 42 awaiting payment"""
    return fake_store.add('42', status='pending', total=500)


def mock_http_response(json_data=None, status_code=200, text=None):
    """Return a mock requests.Response whose .json() returns json_data."""
    resp = Mock()
    resp.ok = 200 <= status_code < 400
    resp.status_code = status_code
    if json_data is None:
        resp.json.side_effect = ValueError('No JSON')
        resp.text = text or ''
        resp.content = (text or '').encode()
    else:
        resp.json.return_value = json_data
        resp.text = text if text is not None else json.dumps(json_data)
        resp.content = resp.text.encode()
    return resp


@pytest.fixture
def http_response():
    return mock_http_response
