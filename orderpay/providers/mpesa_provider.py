"""
M-Pesa Payment Provider
Based on the Safaricom Daraja API.

Supported flow
--------------
STK Push (Lipa na M-Pesa Online)
    POST /mpesa/stkpush/v1/processrequest

Authentication
    GET  /oauth/v1/generate?grant_type=client_credentials  (Basic auth)
    A fresh token is fetched for every initiation; tokens are not cached.

Callback
    Safaricom POSTs Body.stkCallback JSON to CallBackURL. Parsing lives in
    orderpay.services.reconcilers.MPesaCallbackReconciler.

Required config keys
--------------------
    consumer_key        – From Safaricom Developer Portal app
    consumer_secret     – From Safaricom Developer Portal app
    shortcode           – Business shortcode (PayBill or Buy-Goods)
    passkey             – Lipa na M-Pesa Online passkey
    callback_url        – Publicly reachable STK callback endpoint

Optional config keys
--------------------
    environment         – "sandbox" (default) | "production"
    transaction_type    – "CustomerPayBillOnline" (default) | "CustomerBuyGoodsOnline"
    timeout             – Seconds per HTTP call
"""

import base64
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import requests

from orderpay.errors import (
    ConfigurationError,
    GatewayRejected,
    UpstreamAuthError,
    ValidationError,
)
from orderpay.models import PaymentStatus
from orderpay.providers.base import PaymentProvider
from orderpay.utils.logger import mask_phone

logger = logging.getLogger(__name__)

# Daraja base URLs
_BASE_URLS = {
    "sandbox":    "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}


class MPesaProvider(PaymentProvider):
    """M-Pesa (Daraja API) STK Push client."""

    required_config = ("consumer_key", "consumer_secret", "shortcode", "passkey")

    # Daraja endpoint paths
    _EP_AUTH     = "/oauth/v1/generate"
    _EP_STK_PUSH = "/mpesa/stkpush/v1/processrequest"

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)

        self.consumer_key     = config["consumer_key"]
        self.consumer_secret  = config["consumer_secret"]
        self.shortcode        = str(config["shortcode"])
        self.passkey          = config["passkey"]
        self.environment      = (config.get("environment") or "sandbox").lower()
        self.callback_url     = config.get("callback_url", "")
        self.transaction_type = config.get("transaction_type") or "CustomerPayBillOnline"

        if self.environment not in _BASE_URLS:
            raise ConfigurationError(
                f"MPesaProvider: environment must be 'sandbox' or 'production', got '{self.environment}'"
            )
        if not self.callback_url:
            raise ConfigurationError("MPesaProvider: 'callback_url' could not be resolved (set MPESA_CALLBACK_URL or BASE_URL)")

        self.base_url = _BASE_URLS[self.environment]

        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    # PaymentProvider ABC

    def initialize_payment(
        self,
        order_id: str,
        amount: Any,
        customer_data: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send an STK Push prompt to the payer's phone.

        customer_data required fields:
            phone        – Payer phone; 07XX, +2547XX and 2547XX forms accepted

        metadata optional:
            description  – Shown on the payer's phone (default "Payment for order <id>")

        Returns standard PaymentProvider dict:
            transaction_id  – CheckoutRequestID
            status          – "pending"
            payment_url     – None (M-Pesa is push-based)
            additional_data – MerchantRequestID, normalised phone, raw response
        """
        metadata = metadata or {}
        phone = self._normalise_phone(customer_data.get("phone", ""))
        if not phone:
            raise ValidationError("MPesaProvider: 'phone' is required")
        if amount is None:
            raise ValidationError("MPesaProvider: 'amount' is required")
        amount = self._whole_amount(amount)

        description = metadata.get("description") or f"Payment for order {order_id}"
        return self._stk_push(order_id, amount, phone, description)

    # Auth

    def obtain_access_token(self) -> str:
        """Exchange consumer credentials for a bearer token (client-credentials grant)."""
        url = f"{self.base_url}{self._EP_AUTH}"
        try:
            resp = requests.get(
                url,
                params={"grant_type": "client_credentials"},
                auth=(self.consumer_key, self.consumer_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamAuthError(f"MPesaProvider: token request failed – {exc}") from exc

        if not resp.ok:
            raise UpstreamAuthError(
                f"MPesaProvider: failed to obtain access token – HTTP {resp.status_code}: {resp.text[:300]}"
            )

        try:
            token = resp.json().get("access_token")
        except ValueError:
            token = None
        if not token:
            raise UpstreamAuthError("MPesaProvider: token response carried no access_token")

        logger.debug("MPesaProvider: access token obtained")
        return token

    # Private – payment flow

    def _stk_push(
        self,
        order_id: str,
        amount: Any,
        phone: str,
        transaction_desc: str,
    ) -> Dict[str, Any]:
        """Initiate a Lipa na M-Pesa Online (STK Push) payment."""
        token = self.obtain_access_token()
        timestamp, password = self._generate_password()

        payload = {
            "BusinessShortCode": self.shortcode,
            "Password":          password,
            "Timestamp":         timestamp,
            "TransactionType":   self.transaction_type,
            "Amount":            amount,
            "PartyA":            phone,
            "PartyB":            self.shortcode,
            "PhoneNumber":       phone,
            "CallBackURL":       self.callback_url,
            "AccountReference":  f"order-{order_id}",
            "TransactionDesc":   transaction_desc,
        }

        resp = self._post(self._EP_STK_PUSH, payload, token, context="stk_push")
        logger.info(
            "MPesaProvider: STK push accepted for order %s (%s, checkout %s)",
            order_id, mask_phone(phone), resp.get("CheckoutRequestID"),
        )

        return {
            "transaction_id": resp.get("CheckoutRequestID", ""),
            "status":         PaymentStatus.PENDING.value,
            "payment_url":    None,
            "additional_data": {
                "checkout_request_id":  resp.get("CheckoutRequestID"),
                "merchant_request_id":  resp.get("MerchantRequestID"),
                "phone":                phone,
                "response_description": resp.get("ResponseDescription"),
                "customer_message":     resp.get("CustomerMessage"),
                "raw_response":         resp,
            },
        }

    # Private – HTTP helpers

    def _post(
        self, endpoint: str, payload: Dict[str, Any], token: str, context: str = ""
    ) -> Dict[str, Any]:
        """Execute an authenticated POST to a Daraja endpoint."""
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type":  "application/json",
        }

        url = f"{self.base_url}{endpoint}"
        try:
            resp = self._session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise GatewayRejected(
                f"MPesaProvider [{context}]: network error – {exc}"
            ) from exc

        return self._handle_response(resp, context)

    def _handle_response(
        self, resp: requests.Response, context: str
    ) -> Dict[str, Any]:
        """Parse Daraja response, raising unless ResponseCode is "0"."""
        try:
            data: Dict[str, Any] = resp.json()
        except ValueError:
            raise GatewayRejected(
                f"MPesaProvider [{context}] HTTP {resp.status_code}: invalid JSON body {resp.text[:300]!r}"
            )

        logger.debug("MPesa [%s] HTTP %s: %s", context, resp.status_code, data)

        error_msg = (
            data.get("errorMessage")
            or data.get("error")
            or data.get("ResponseDescription")
            or "STK push failed"
        )

        # Daraja sometimes returns 200 with an error in the body
        if not resp.ok or str(data.get("ResponseCode")) != "0":
            raise GatewayRejected(
                f"MPesaProvider [{context}] HTTP {resp.status_code}: {error_msg}",
                response=data,
            )

        return data

    def _generate_password(self, timestamp: Optional[str] = None):
        """
        Generate the STK Push password and timestamp.

        Password = Base64(BusinessShortCode + Passkey + Timestamp)
        Timestamp = YYYYMMDDHHmmss on the gateway host's local clock
        """
        timestamp = timestamp or datetime.now().strftime("%Y%m%d%H%M%S")
        raw = f"{self.shortcode}{self.passkey}{timestamp}"
        password = base64.b64encode(raw.encode("utf-8")).decode("utf-8")
        return timestamp, password

    @staticmethod
    def _whole_amount(amount: Any) -> int:
        """Daraja charges whole shillings; a fractional amount is rejected, not truncated."""
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError(f"MPesaProvider: invalid amount {amount!r}")
        if not value.is_finite() or value <= 0 or value != value.to_integral_value():
            raise ValidationError(f"MPesaProvider: amount must be a positive whole number, got {amount}")
        return int(value)

    @staticmethod
    def _normalise_phone(phone: str) -> str:
        """
        Normalise a phone number to Safaricom's expected format (2547XXXXXXXX).

        Accepts: +254712345678, 0712345678, 254712345678, 712345678
        """
        if not phone:
            return ""
        phone = str(phone).strip().replace(" ", "").replace("-", "")
        if phone.startswith("+"):
            phone = phone[1:]
        if phone.startswith("0"):
            phone = "254" + phone[1:]
        if not phone.startswith("254"):
            phone = "254" + phone
        return phone
