"""
Order Store Client
Reads and patches order records held by an external PostgREST (Supabase) table
"""

from typing import Any, Dict, List, Optional

import requests

from orderpay.errors import ConfigurationError, OrderNotFound, StoreError
from orderpay.models import TRACKING_FIELDS
from orderpay.utils.logger import get_logger

logger = get_logger(__name__)


class OrderStoreClient:
    """Service-role client for the orders table"""

    def __init__(self, app=None):
        self.base_url = ''
        self.service_key = ''
        self.table = 'orders'
        self.timeout = 15
        self._session = requests.Session()

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.base_url = (app.config.get('ORDER_STORE_URL') or '').rstrip('/')
        self.service_key = app.config.get('ORDER_STORE_SERVICE_KEY') or ''
        self.table = app.config.get('ORDER_STORE_TABLE', 'orders')
        self.timeout = app.config.get('HTTP_TIMEOUT', 15)

        app.extensions['order_store'] = self

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_key)

    # Store contract

    def get_order_by_id(self, order_id) -> Dict[str, Any]:
        """
        Fetch a single order

        Raises:
            OrderNotFound: If no row has the given id
        """
        rows = self._request('GET', {'id': f'eq.{order_id}'})
        if not rows:
            raise OrderNotFound(f'Order {order_id} not found')
        return rows[0]

    def patch_order_by_id(self, order_id, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Patch an order by id; returns the updated row or None if nothing matched"""
        rows = self._request('PATCH', {'id': f'eq.{order_id}'}, body=fields)
        return rows[0] if rows else None

    def patch_order_by_tracking_id(
            self,
            tracking_field: str,
            value: str,
            fields: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Patch the order whose provider-correlation column equals value

        Args:
            tracking_field: One of the provider-correlation columns
            value: Tracking id echoed back by the provider
            fields: Columns to update

        Returns:
            The updated row, or None when no order carries that tracking id
        """
        if tracking_field not in TRACKING_FIELDS:
            raise ValueError(f'Not a tracking column: {tracking_field}')

        rows = self._request('PATCH', {tracking_field: f'eq.{value}'}, body=fields)
        return rows[0] if rows else None

    def create_order(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._request('POST', None, body=fields)
        if not rows:
            raise StoreError('Order store returned no row for insert')
        return rows[0]

    # HTTP helpers

    def _headers(self) -> Dict[str, str]:
        return {
            'apikey':        self.service_key,
            'Authorization': f'Bearer {self.service_key}',
            'Content-Type':  'application/json',
            'Prefer':        'return=representation',
        }

    def _request(
            self,
            method: str,
            filters: Optional[Dict[str, str]],
            body: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        if not self.configured:
            raise ConfigurationError('Order store URL and service key are not configured')

        url = f'{self.base_url}/rest/v1/{self.table}'
        try:
            resp = self._session.request(
                method,
                url,
                params=filters,
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(f'Order store {method} failed: {exc}')
            raise StoreError(f'Order store unreachable: {exc}') from exc

        if not resp.ok:
            logger.error(f'Order store {method} {filters} HTTP {resp.status_code}: {resp.text[:300]}')
            raise StoreError(f'Order store HTTP {resp.status_code}')

        if not resp.content:
            return []

        try:
            data = resp.json()
        except ValueError as exc:
            raise StoreError('Order store returned an invalid JSON body') from exc

        if isinstance(data, dict):
            return [data]
        return data
