"""
Schemas Package
Marshmallow schemas for request/response validation
"""

from orderpay.schemas.payment_schema import (
    MPesaPaymentSchema,
    PesaPalPaymentSchema,
    PesaPalCheckoutSchema,
    OrderSchema
)

__all__ = [
    'MPesaPaymentSchema',
    'PesaPalPaymentSchema',
    'PesaPalCheckoutSchema',
    'OrderSchema'
]
