from typing import Dict, Any, Optional

from orderpay.extensions import order_store
from orderpay.models import PaymentStatus, MPESA_CHECKOUT_ID, MPESA_MERCHANT_REQUEST_ID, PESAPAL_TRACKING_ID
from orderpay.providers import get_provider
from orderpay.utils.logger import get_logger

logger = get_logger(__name__)


class PaymentService:
    """Initiates provider payments and records their tracking ids on orders"""

    @staticmethod
    def initiate_mpesa_payment(
            order_id: str,
            phone: str,
            amount: Any,
            description: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send an STK Push for an existing order

        Args:
            order_id: Order to pay for
            phone: Payer phone number
            amount: Amount in KES
            description: Text shown on the payer's phone

        Returns:
            Provider result dict (transaction_id is the CheckoutRequestID)

        Raises:
            ConfigurationError: Missing M-Pesa credentials (before any network call)
            OrderNotFound: Unknown order id
            UpstreamAuthError / GatewayRejected: Daraja failures
            StoreError: Order store failures
        """
        provider = get_provider('mpesa')
        order_store.get_order_by_id(order_id)

        result = provider.initialize_payment(
            order_id=order_id,
            amount=amount,
            customer_data={'phone': phone},
            metadata={'description': description}
        )
        additional = result.get('additional_data', {})

        order_store.patch_order_by_id(order_id, {
            'payment_status': PaymentStatus.PENDING.value,
            MPESA_CHECKOUT_ID: additional.get('checkout_request_id'),
            MPESA_MERCHANT_REQUEST_ID: additional.get('merchant_request_id'),
            'mpesa_phone': additional.get('phone'),
        })

        logger.info(
            f'STK push sent for order {order_id}: '
            f'checkout={additional.get("checkout_request_id")}'
        )
        return result

    @staticmethod
    def initiate_pesapal_payment(
            order_id: str,
            amount: Any,
            payer: Dict[str, Any],
            description: Optional[str] = None,
            callback_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Build a PesaPal redirect for an existing order

        The order is validated first, then the merchant reference is written to
        the order before the redirect URL is handed out, so an early callback can
        always be matched and a rejected request leaves the order untouched.
        """
        provider = get_provider('pesapal')
        provider.check_order(amount, callback_url)
        order_store.get_order_by_id(order_id)

        reference = provider.generate_merchant_reference()
        order_store.patch_order_by_id(order_id, {
            PESAPAL_TRACKING_ID: reference,
            'payment_status': PaymentStatus.PESAPAL_INITIATED.value,
        })

        return provider.initialize_payment(
            order_id=order_id,
            amount=amount,
            customer_data=payer,
            metadata={
                'reference': reference,
                'description': description,
                'callback_url': callback_url,
            }
        )

    @staticmethod
    def checkout_pesapal(
            amount: Any,
            customer: Dict[str, Any],
            description: Optional[str] = None,
            callback_url: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create an order and its PesaPal redirect in one step

        Args:
            amount: Order total
            customer: name, email, phone
            description: Order description (default "Order <id>")
            callback_url: PesaPal CallbackUrl override

        Returns:
            Dict with the created order and the provider result
        """
        provider = get_provider('pesapal')
        provider.check_order(amount, callback_url)
        reference = provider.generate_merchant_reference()

        order = order_store.create_order({
            'user_name': customer.get('name'),
            'user_email': customer.get('email'),
            'user_phone': customer.get('phone'),
            'total': float(amount),
            'payment_method': 'pesapal',
            'payment_status': PaymentStatus.PESAPAL_INITIATED.value,
            PESAPAL_TRACKING_ID: reference,
        })

        first_name, _, last_name = (customer.get('name') or '').strip().partition(' ')
        result = provider.initialize_payment(
            order_id=order.get('id'),
            amount=amount,
            customer_data={
                'first_name': first_name,
                'last_name': last_name.strip(),
                'email': customer.get('email'),
                'phone': customer.get('phone'),
            },
            metadata={
                'reference': reference,
                'description': description,
                'callback_url': callback_url,
            }
        )

        return {'order': order, 'payment': result}

    @staticmethod
    def get_order(order_id: str) -> Dict[str, Any]:
        return order_store.get_order_by_id(order_id)
