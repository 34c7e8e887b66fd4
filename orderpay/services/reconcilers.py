"""
Callback Reconcilers
Turn provider callback payloads into a normalized CallbackOutcome
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from orderpay.errors import MalformedCallback
from orderpay.models import (
    CallbackOutcome,
    PaymentStatus,
    MPESA_CHECKOUT_ID,
    PESAPAL_TRACKING_ID,
)


def first_present(payload: Mapping[str, Any], keys: Sequence[str]) -> Optional[Any]:
    """Return the value of the first key that is present and non-empty."""
    for key in keys:
        value = payload.get(key)
        if value not in (None, ''):
            return value
    return None


class CallbackReconciler(ABC):
    """Per-provider callback parser"""

    provider_name: str = ''
    tracking_field: str = ''
    # Request headers that may carry an HMAC signature, in priority order
    signature_headers: Tuple[str, ...] = ('X-Signature',)

    @abstractmethod
    def parse(self, payload: Mapping[str, Any]) -> CallbackOutcome:
        """
        Extract the correlation id and outcome from a callback

        Raises:
            MalformedCallback: If the payload carries no correlation id
        """
        pass

    def _outcome(self, tracking_id, status: PaymentStatus, metadata: Dict[str, Any]) -> CallbackOutcome:
        return CallbackOutcome(
            provider=self.provider_name,
            tracking_field=self.tracking_field,
            tracking_id=str(tracking_id),
            status=status,
            metadata=metadata,
        )


class MPesaCallbackReconciler(CallbackReconciler):
    """Safaricom STK Push callback (Body.stkCallback)"""

    provider_name = 'mpesa'
    tracking_field = MPESA_CHECKOUT_ID
    signature_headers = ('X-Daraja-Signature', 'X-Signature')

    def parse(self, payload: Mapping[str, Any]) -> CallbackOutcome:
        stk = self._find_stk_callback(payload)
        if not stk:
            raise MalformedCallback('Bad Request - missing stkCallback')

        checkout_id = stk.get('CheckoutRequestID')
        if not checkout_id:
            raise MalformedCallback('Bad Request - missing CheckoutRequestID')

        result_code = stk.get('ResultCode')
        status = PaymentStatus.COMPLETED if self.is_success(result_code) else PaymentStatus.FAILED

        metadata = {
            'mpesa_receipt': None,
            'mpesa_amount': None,
            'mpesa_transaction_date': None,
            'mpesa_result_code': result_code,
            'mpesa_result_desc': stk.get('ResultDesc') or '',
        }
        metadata.update(self.extract_metadata(stk))

        return self._outcome(checkout_id, status, metadata)

    @staticmethod
    def _find_stk_callback(payload: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
        if not isinstance(payload, Mapping):
            return None
        body = payload.get('Body')
        if isinstance(body, Mapping) and isinstance(body.get('stkCallback'), Mapping):
            return body['stkCallback']
        stk = payload.get('stkCallback')
        return stk if isinstance(stk, Mapping) else None

    @staticmethod
    def is_success(result_code: Any) -> bool:
        return str(result_code).strip() == '0'

    @staticmethod
    def extract_metadata(stk: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Pull receipt, amount and transaction date from CallbackMetadata.Item

        Items are matched by case-insensitive substring of their name because
        Safaricom guarantees neither order nor exact casing.

        Raises:
            MalformedCallback: If CallbackMetadata is not an object holding a
                list of Name/Value objects
        """
        found: Dict[str, Any] = {}
        callback_metadata = stk.get('CallbackMetadata') or {}
        if not isinstance(callback_metadata, Mapping):
            raise MalformedCallback('Bad Request - malformed CallbackMetadata')

        items = callback_metadata.get('Item') or []
        if not isinstance(items, list) or not all(isinstance(item, Mapping) for item in items):
            raise MalformedCallback('Bad Request - malformed CallbackMetadata.Item')

        for item in items:
            name = item.get('Name') or item.get('name')
            if not name:
                continue
            name = str(name).lower()
            value = item.get('Value', item.get('value'))

            if 'receipt' in name:
                found['mpesa_receipt'] = value
            if 'amount' in name:
                found['mpesa_amount'] = _to_number(value)
            if 'transactiondate' in name:
                found['mpesa_transaction_date'] = None if value is None else str(value)

        return found


class PesaPalCallbackReconciler(CallbackReconciler):
    """PesaPal browser redirect (GET) or IPN (POST JSON / form)"""

    provider_name = 'pesapal'
    tracking_field = PESAPAL_TRACKING_ID
    signature_headers = ('X-Pesapal-Signature', 'X-Signature', 'X-Hook-Signature')

    # Field spellings PesaPal has used over time, highest priority first
    TRACKING_ID_KEYS = (
        'order_tracking_id',
        'merchant_reference',
        'pesapal_merchant_reference',
        'orderTrackingId',
    )
    TRANSACTION_ID_KEYS = (
        'transaction_id',
        'pesapal_transaction_tracking_id',
    )
    STATUS_KEYS = ('status',)

    COMPLETED_STATUSES = frozenset({'completed', 'complete', 'paid', 'success', 'successful'})

    def parse(self, payload: Mapping[str, Any]) -> CallbackOutcome:
        tracking_id = first_present(payload, self.TRACKING_ID_KEYS)
        if not tracking_id:
            raise MalformedCallback('Bad Request - missing tracking id')

        transaction_id = first_present(payload, self.TRANSACTION_ID_KEYS)
        status = self.resolve_status(transaction_id, first_present(payload, self.STATUS_KEYS))

        return self._outcome(tracking_id, status, {'pesapal_transaction_id': transaction_id})

    @classmethod
    def resolve_status(cls, transaction_id: Any, status: Any) -> PaymentStatus:
        if transaction_id:
            return PaymentStatus.COMPLETED
        if status and str(status).strip().lower() in cls.COMPLETED_STATUSES:
            return PaymentStatus.COMPLETED
        return PaymentStatus.FAILED


def _to_number(value):
    if value is None or isinstance(value, (int, float)):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else number


RECONCILERS: Dict[str, CallbackReconciler] = {
    'mpesa': MPesaCallbackReconciler(),
    'pesapal': PesaPalCallbackReconciler(),
}


def get_reconciler(provider_name: str) -> CallbackReconciler:
    reconciler = RECONCILERS.get(provider_name.lower())
    if not reconciler:
        raise ValueError(f'Unknown provider: {provider_name}')
    return reconciler
