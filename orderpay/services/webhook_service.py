"""
Webhook Service
Applies normalized provider callbacks to the order store
"""

from typing import Any, Dict, Mapping, Optional

from orderpay.extensions import order_store
from orderpay.models import CallbackOutcome
from orderpay.services.reconcilers import get_reconciler
from orderpay.utils.logger import get_logger

logger = get_logger(__name__)


class WebhookService:
    """Service for reconciling provider callbacks onto orders"""

    @staticmethod
    def parse_callback(provider: str, payload: Mapping[str, Any]) -> CallbackOutcome:
        """
        Normalize a callback payload

        Raises:
            MalformedCallback: If the correlation id is missing or the
                callback metadata is malformed
        """
        return get_reconciler(provider).parse(payload)

    @staticmethod
    def apply_outcome(outcome: CallbackOutcome) -> Optional[Dict[str, Any]]:
        """
        Patch the order carrying the outcome's tracking id

        Returns:
            The updated order, or None when no order matched. A missing order
            is logged and not raised: the provider still gets its 200.

        Raises:
            StoreError: If the order store is unreachable
        """
        order = order_store.patch_order_by_tracking_id(
            outcome.tracking_field,
            outcome.tracking_id,
            outcome.to_order_fields()
        )

        if order is None:
            logger.warning(
                f'{outcome.provider} callback for unknown {outcome.tracking_field}='
                f'{outcome.tracking_id} ({outcome.status.value}); no order updated'
            )
            return None

        logger.info(
            f'Order {order.get("id")} payment_status -> {outcome.status.value} '
            f'({outcome.provider} {outcome.tracking_id})'
        )
        return order

    @staticmethod
    def process_callback(provider: str, payload: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Parse a callback and apply it to the matching order

        Args:
            provider: 'mpesa' or 'pesapal'
            payload: Decoded callback body or query parameters

        Returns:
            The updated order, or None when no order matched
        """
        outcome = WebhookService.parse_callback(provider, payload)
        return WebhookService.apply_outcome(outcome)
