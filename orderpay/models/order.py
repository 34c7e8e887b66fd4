from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    STK_REQUESTED = 'stk_requested'
    PESAPAL_INITIATED = 'pesapal_initiated'
    COMPLETED = 'completed'
    FAILED = 'failed'


# Order columns that correlate an order with a provider payment attempt
MPESA_CHECKOUT_ID = 'mpesa_checkout_id'
MPESA_MERCHANT_REQUEST_ID = 'mpesa_merchant_request_id'
PESAPAL_TRACKING_ID = 'pesapal_tracking_id'

TRACKING_FIELDS = frozenset({
    MPESA_CHECKOUT_ID,
    MPESA_MERCHANT_REQUEST_ID,
    PESAPAL_TRACKING_ID,
})


@dataclass
class CallbackOutcome:
    """Provider callback normalized to a single order state transition."""
    provider: str
    tracking_field: str
    tracking_id: str
    status: PaymentStatus
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_order_fields(self) -> Dict[str, Any]:
        return {'payment_status': self.status.value, **self.metadata}

    def __repr__(self):
        return f'<CallbackOutcome {self.provider}:{self.tracking_id} - {self.status.value}>'
