"""
Utils Package
Utility functions and helpers
"""

from orderpay.utils.logger import get_logger, configure_app_logging, mask_phone, RequestLogger
from orderpay.utils.oauth1 import OAuth1Signer, SignedRequest, percent_encode

__all__ = [
    'get_logger',
    'configure_app_logging',
    'RequestLogger',
    'mask_phone',
    'OAuth1Signer',
    'SignedRequest',
    'percent_encode'
]
