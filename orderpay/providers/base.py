from abc import ABC, abstractmethod
from typing import Dict, Any, Iterable, Optional

from orderpay.errors import ConfigurationError


class PaymentProvider(ABC):
    """Abstract base class for payment gateway clients"""

    # Config keys that must be non-empty before any network call is attempted
    required_config: Iterable[str] = ()

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize provider with configuration

        Args:
            config: Provider-specific configuration

        Raises:
            ConfigurationError: If a required credential is missing
        """
        self.config = config
        self.timeout = config.get('timeout') or 15

        missing = [key for key in self.required_config if not config.get(key)]
        if missing:
            raise ConfigurationError(
                f"{self.__class__.__name__}: missing credentials - {', '.join(missing)}"
            )

    @abstractmethod
    def initialize_payment(
            self,
            order_id: str,
            amount: Any,
            customer_data: Dict[str, Any],
            metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Initialize a payment for an order

        Args:
            order_id: Order the payment belongs to
            amount: Payment amount
            customer_data: Payer information (phone, email, names)
            metadata: Provider-specific options

        Returns:
            Dict containing:
                - transaction_id: Tracking id to persist on the order
                - status: Payment status to persist on the order
                - payment_url: URL for the payer to complete payment (if applicable)
                - additional_data: Any additional provider-specific data
        """
        pass
