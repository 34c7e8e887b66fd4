"""
OAuth 1.0a request signing (RFC 5849, HMAC-SHA1, consumer-only / two-legged)

Used by the PesaPal provider, whose order-submission endpoint expects every
request parameter (including the XML order document) to be part of the
signed, percent-encoded query string.

    base string  = METHOD & encode(URL) & encode(normalized params)
    signing key  = encode(consumer_secret) & encode(token_secret)
    signature    = base64(HMAC-SHA1(signing key, base string))
"""

import base64
import hashlib
import hmac
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

# RFC 3986 unreserved characters besides ALPHA / DIGIT
_UNRESERVED = "-_.~"


def percent_encode(value: Any) -> str:
    """
    Percent-encode a value per RFC 3986 section 2.1.

    Unlike form encoding, spaces become %20 and ``! ' ( ) *`` are escaped.
    """
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return quote(str(value), safe=_UNRESERVED)


def normalize_parameters(params: Mapping[str, Any]) -> str:
    """Encode, sort by byte value (name then value) and join as k=v&k=v."""
    encoded = sorted(
        (percent_encode(key), percent_encode(value))
        for key, value in params.items()
    )
    return "&".join(f"{key}={value}" for key, value in encoded)


def signature_base_string(method: str, url: str, param_string: str) -> str:
    return "&".join((
        method.upper(),
        percent_encode(url),
        percent_encode(param_string),
    ))


def signing_key(consumer_secret: str, token_secret: str = "") -> str:
    return f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"


def hmac_sha1_signature(base_string: str, key: str) -> str:
    digest = hmac.new(
        key.encode("utf-8"),
        base_string.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


@dataclass(frozen=True)
class SignedRequest:
    method: str
    url: str
    query: str
    signature: str

    @property
    def signed_url(self) -> str:
        return f"{self.url}?{self.query}"


class OAuth1Signer:
    """Signs requests with a consumer key/secret pair (no access token)."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        nonce_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        if not consumer_key or not consumer_secret:
            raise ValueError("OAuth1Signer: consumer_key and consumer_secret are required")
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self._nonce_factory = nonce_factory or (lambda: uuid.uuid4().hex)
        self._clock = clock or time.time

    def oauth_parameters(
        self, nonce: Optional[str] = None, timestamp: Optional[int] = None
    ) -> Dict[str, str]:
        return {
            "oauth_consumer_key":     self.consumer_key,
            "oauth_nonce":            nonce or self._nonce_factory(),
            "oauth_signature_method": SIGNATURE_METHOD,
            "oauth_timestamp":        str(timestamp if timestamp is not None else int(self._clock())),
            "oauth_version":          OAUTH_VERSION,
        }

    def sign(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        nonce: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> SignedRequest:
        """
        Sign a request and return the complete query string.

        Args:
            method:    HTTP method of the signed request
            url:       Base URL without query string
            params:    Request-specific parameters to include in the signature
            nonce:     Fixed nonce (tests); generated when omitted
            timestamp: Fixed Unix timestamp (tests); taken from the clock when omitted

        Returns:
            SignedRequest whose ``query`` ends with ``oauth_signature``
        """
        all_params = self.oauth_parameters(nonce=nonce, timestamp=timestamp)
        all_params.update(params or {})

        param_string = normalize_parameters(all_params)
        base_string = signature_base_string(method, url, param_string)
        signature = hmac_sha1_signature(base_string, signing_key(self.consumer_secret))

        query = f"{param_string}&oauth_signature={percent_encode(signature)}"
        return SignedRequest(
            method=method.upper(),
            url=url,
            query=query,
            signature=signature,
        )
