"""
PesaPal Payment Provider
PesaPal API v1 "PostPesapalDirectOrderV4" (browser redirect flow).

The order is described by a PesapalDirectOrderInfo XML document that travels
as the ``pesapal_request_data`` query parameter of an OAuth 1.0a signed GET.
Nothing is sent server-to-server: the payer's browser is redirected to the
signed URL and PesaPal calls back with
``pesapal_merchant_reference`` + ``pesapal_transaction_tracking_id``.

Required config keys
--------------------
    consumer_key        – PesaPal merchant consumer key
    consumer_secret     – PesaPal merchant consumer secret

Optional config keys
--------------------
    environment         – "test" (default) | "live"
    currency            – ISO currency (default "KES")
    callback_url        – Default CallbackUrl when the caller supplies none
"""

import time
import uuid
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional

from orderpay.errors import ConfigurationError, ValidationError
from orderpay.models import PaymentStatus
from orderpay.providers.base import PaymentProvider
from orderpay.utils.logger import get_logger
from orderpay.utils.oauth1 import OAuth1Signer

logger = get_logger(__name__)

_DEMO_URL = "https://demo.pesapal.com"
_LIVE_URL = "https://www.pesapal.com"

_BASE_URLS = {
    "test":       _DEMO_URL,
    "sandbox":    _DEMO_URL,
    "demo":       _DEMO_URL,
    "live":       _LIVE_URL,
    "production": _LIVE_URL,
}

_XML_NAMESPACES = {
    "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "xmlns:xsd": "http://www.w3.org/2001/XMLSchema",
}


class PesaPalProvider(PaymentProvider):
    """PesaPal Direct Order (OAuth 1.0a signed redirect) client."""

    required_config = ("consumer_key", "consumer_secret")

    _EP_DIRECT_ORDER = "/API/PostPesapalDirectOrderV4"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)

        self.environment  = (config.get("environment") or "test").lower()
        self.currency     = config.get("currency") or "KES"
        self.callback_url = config.get("callback_url", "")

        if self.environment not in _BASE_URLS:
            raise ConfigurationError(
                f"PesaPalProvider: environment must be 'test' or 'live', got '{self.environment}'"
            )

        self.base_url = _BASE_URLS[self.environment]
        self.signer = OAuth1Signer(config["consumer_key"], config["consumer_secret"])

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self._EP_DIRECT_ORDER}"

    @staticmethod
    def generate_merchant_reference() -> str:
        """Millisecond timestamp plus a random suffix, unique across concurrent checkouts."""
        return f"PP-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"

    def check_order(self, amount: Any, callback_url: Optional[str] = None) -> str:
        """
        Validate an order before anything is persisted or signed.

        Returns:
            The CallbackUrl to embed (the override, else the configured default)

        Raises:
            ValidationError: Missing amount, or no callback URL available
        """
        if amount is None:
            raise ValidationError("PesaPalProvider: 'amount' is required")

        callback_url = callback_url or self.callback_url
        if not callback_url:
            raise ValidationError("PesaPalProvider: 'callback_url' is required")
        return callback_url

    def initialize_payment(
        self,
        order_id: str,
        amount: Any,
        customer_data: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Build the signed PesaPal redirect URL for an order.

        customer_data optional fields:
            first_name, last_name, email, phone

        metadata optional:
            reference     – Merchant reference already persisted on the order
            callback_url  – Where PesaPal sends the payer afterwards
            description   – Order description (default "Order <id>")

        Returns standard PaymentProvider dict:
            transaction_id  – Merchant reference (the order's pesapal_tracking_id)
            status          – "pesapal_initiated"
            payment_url     – Signed redirect URL
        """
        metadata = metadata or {}
        callback_url = self.check_order(amount, metadata.get("callback_url"))

        reference = metadata.get("reference") or self.generate_merchant_reference()
        description = metadata.get("description") or f"Order {order_id}"

        request_data = self.build_order_xml(
            amount=amount,
            description=description,
            reference=reference,
            payer=customer_data,
            currency=self.currency,
            callback_url=callback_url,
        )

        signed = self.signer.sign(
            "GET",
            self.endpoint,
            {"pesapal_request_data": request_data},
        )
        logger.info(f"PesaPal order signed for order {order_id} (reference {reference})")

        return {
            "transaction_id": reference,
            "status":         PaymentStatus.PESAPAL_INITIATED.value,
            "payment_url":    signed.signed_url,
            "additional_data": {
                "reference":    reference,
                "request_data": request_data,
            },
        }

    @staticmethod
    def build_order_xml(
        amount: Any,
        description: str,
        reference: str,
        payer: Dict[str, Any],
        currency: str,
        callback_url: str,
    ) -> str:
        """Serialise a PesapalDirectOrderInfo document."""
        root = ET.Element("PesapalDirectOrderInfo", _XML_NAMESPACES)

        elements = (
            ("Amount",       amount),
            ("Description",  description),
            ("Type",         "MERCHANT"),
            ("Reference",    reference),
            ("FirstName",    payer.get("first_name")),
            ("LastName",     payer.get("last_name")),
            ("EmailAddress", payer.get("email")),
            ("PhoneNumber",  payer.get("phone")),
            ("Currency",     currency),
            ("CallbackUrl",  callback_url),
        )
        for tag, value in elements:
            ET.SubElement(root, tag).text = "" if value is None else str(value)

        return ET.tostring(root, encoding="unicode", short_empty_elements=False)
