"""
Callback Security
Source-IP allowlist and optional HMAC-SHA256 body signature for provider callbacks.

Both checks are independent. A check that is disabled, or enabled without its
allowlist/secret, is skipped: callbacks are then accepted from anywhere. That
fail-open default is a deployment decision; set the *_CALLBACK_IPS and
*_CALLBACK_SECRET variables in production.

The source address is request.remote_addr. Proxy headers such as
X-Forwarded-For are only honoured when TRUSTED_PROXY_COUNT is set, in which
case werkzeug's ProxyFix rewrites remote_addr from the trusted hops.
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from orderpay.errors import UnauthorizedCallback


@dataclass(frozen=True)
class CallbackSecurity:
    ip_check_enabled: bool = False
    allowed_ips: Tuple[str, ...] = field(default_factory=tuple)
    signature_check_enabled: bool = False
    secret: str = ''

    @classmethod
    def from_config(cls, config: Mapping[str, Any], prefix: str) -> 'CallbackSecurity':
        """
        Build the settings for one provider

        Args:
            config: Flask config mapping
            prefix: Config key prefix, e.g. 'MPESA' or 'PESAPAL'

        Explicit *_CALLBACK_IP_CHECK / *_CALLBACK_SIGNATURE_CHECK flags win;
        when unset, a check is enabled iff its allowlist/secret is non-empty.
        """
        allowed_ips = tuple(config.get(f'{prefix}_CALLBACK_IPS') or ())
        secret = config.get(f'{prefix}_CALLBACK_SECRET') or ''

        ip_flag = config.get(f'{prefix}_CALLBACK_IP_CHECK')
        signature_flag = config.get(f'{prefix}_CALLBACK_SIGNATURE_CHECK')

        return cls(
            ip_check_enabled=bool(allowed_ips) if ip_flag is None else bool(ip_flag),
            allowed_ips=allowed_ips,
            signature_check_enabled=bool(secret) if signature_flag is None else bool(signature_flag),
            secret=secret,
        )

    def is_ip_allowed(self, remote_addr: Optional[str]) -> bool:
        if not self.ip_check_enabled or not self.allowed_ips:
            return True
        return remote_addr in self.allowed_ips

    def check_source(self, remote_addr: Optional[str]) -> None:
        if not self.is_ip_allowed(remote_addr):
            raise UnauthorizedCallback(f'Callback source {remote_addr} not allowed', status_code=403)

    def check_signature(self, raw_body: bytes, signature: Optional[str]) -> None:
        if not self.signature_check_enabled or not self.secret or not signature:
            return
        expected = compute_signature(self.secret, raw_body).encode('ascii')
        # Compare bytes: headers may carry non-ASCII text
        provided = signature.strip().lower().encode('utf-8', 'replace')
        if not hmac.compare_digest(expected, provided):
            raise UnauthorizedCallback('Callback signature mismatch')


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode('utf-8'), raw_body or b'', hashlib.sha256).hexdigest()
