from orderpay.models.order import (
    PaymentStatus,
    CallbackOutcome,
    TRACKING_FIELDS,
    MPESA_CHECKOUT_ID,
    MPESA_MERCHANT_REQUEST_ID,
    PESAPAL_TRACKING_ID,
)

__all__ = [
    'PaymentStatus',
    'CallbackOutcome',
    'TRACKING_FIELDS',
    'MPESA_CHECKOUT_ID',
    'MPESA_MERCHANT_REQUEST_ID',
    'PESAPAL_TRACKING_ID',
]
