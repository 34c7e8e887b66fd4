"""
Unit Tests for Payment Service
"""

import pytest
from unittest.mock import Mock, patch

from orderpay.errors import ConfigurationError, GatewayRejected, OrderNotFound, ValidationError
from orderpay.services.payment_service import PaymentService


def _stk_result(checkout_id='ws_CO_1'):
    return {
        'transaction_id': checkout_id,
        'status': 'pending',
        'payment_url': None,
        'additional_data': {
            'checkout_request_id': checkout_id,
            'merchant_request_id': 'mrq-1',
            'phone': '254712345678',
        }
    }


class TestInitiateMpesaPayment:
    """Test cases for PaymentService.initiate_mpesa_payment"""

    def test_records_checkout_id_on_order(self, fake_store, sample_order):
        with patch('orderpay.services.payment_service.get_provider') as mock_get_provider:
            mock_provider = Mock()
            mock_provider.initialize_payment.return_value = _stk_result()
            mock_get_provider.return_value = mock_provider

            result = PaymentService.initiate_mpesa_payment(
                order_id='42',
                phone='0712345678',
                amount=500,
                description='Hoodie'
            )

        assert result['transaction_id'] == 'ws_CO_1'
        mock_get_provider.assert_called_once_with('mpesa')
        mock_provider.initialize_payment.assert_called_once_with(
            order_id='42',
            amount=500,
            customer_data={'phone': '0712345678'},
            metadata={'description': 'Hoodie'}
        )

        order = fake_store.orders['42']
        assert order['payment_status'] == 'pending'
        assert order['mpesa_checkout_id'] == 'ws_CO_1'
        assert order['mpesa_merchant_request_id'] == 'mrq-1'
        assert order['mpesa_phone'] == '254712345678'

    def test_unknown_order_sends_no_stk_push(self, fake_store):
        with patch('orderpay.services.payment_service.get_provider') as mock_get_provider:
            mock_provider = Mock()
            mock_get_provider.return_value = mock_provider

            with pytest.raises(OrderNotFound):
                PaymentService.initiate_mpesa_payment(order_id='404', phone='0712345678', amount=1)

        mock_provider.initialize_payment.assert_not_called()

    def test_configuration_error_before_any_io(self, fake_store, sample_order):
        with patch('orderpay.services.payment_service.get_provider',
                   side_effect=ConfigurationError('Missing M-Pesa configuration: passkey')):
            with pytest.raises(ConfigurationError):
                PaymentService.initiate_mpesa_payment(order_id='42', phone='0712345678', amount=1)

        assert fake_store.calls == []

    def test_gateway_rejection_leaves_order_untouched(self, fake_store, sample_order):
        with patch('orderpay.services.payment_service.get_provider') as mock_get_provider:
            mock_provider = Mock()
            mock_provider.initialize_payment.side_effect = GatewayRejected('Rejected')
            mock_get_provider.return_value = mock_provider

            with pytest.raises(GatewayRejected):
                PaymentService.initiate_mpesa_payment(order_id='42', phone='0712345678', amount=1)

        assert 'mpesa_checkout_id' not in fake_store.orders['42']
        assert not [c for c in fake_store.calls if c[0] == 'patch_id']


class TestInitiatePesapalPayment:
    """Test cases for PaymentService.initiate_pesapal_payment"""

    def test_reference_persisted_before_redirect(self, fake_store, sample_order):
        with patch('orderpay.services.payment_service.get_provider') as mock_get_provider:
            mock_provider = Mock()
            mock_provider.generate_merchant_reference.return_value = 'PP-1-abc'

            def _initialize(**kwargs):
                # The order already carries the reference when the URL is built
                assert fake_store.orders['42']['pesapal_tracking_id'] == 'PP-1-abc'
                return {
                    'transaction_id': kwargs['metadata']['reference'],
                    'status': 'pesapal_initiated',
                    'payment_url': 'https://demo.pesapal.com/API/PostPesapalDirectOrderV4?x=1',
                    'additional_data': {}
                }

            mock_provider.initialize_payment.side_effect = _initialize
            mock_get_provider.return_value = mock_provider

            result = PaymentService.initiate_pesapal_payment(
                order_id='42',
                amount=1000,
                payer={'email': 'jane@example.com'},
                callback_url='https://shop.example.com/thanks'
            )

        assert result['transaction_id'] == 'PP-1-abc'
        assert fake_store.orders['42']['payment_status'] == 'pesapal_initiated'
        metadata = mock_provider.initialize_payment.call_args[1]['metadata']
        assert metadata == {
            'reference': 'PP-1-abc',
            'description': None,
            'callback_url': 'https://shop.example.com/thanks'
        }

    def test_unknown_order(self, fake_store):
        with patch('orderpay.services.payment_service.get_provider'):
            with pytest.raises(OrderNotFound):
                PaymentService.initiate_pesapal_payment(order_id='9', amount=1, payer={})

    def test_rejected_order_is_not_written(self, fake_store, sample_order):
        with patch('orderpay.services.payment_service.get_provider') as mock_get_provider:
            mock_provider = Mock()
            mock_provider.check_order.side_effect = ValidationError("PesaPalProvider: 'callback_url' is required")
            mock_get_provider.return_value = mock_provider

            with pytest.raises(ValidationError, match='callback_url'):
                PaymentService.initiate_pesapal_payment(order_id='42', amount=1000, payer={})

        assert fake_store.calls == []
        assert 'pesapal_tracking_id' not in fake_store.orders['42']
        mock_provider.generate_merchant_reference.assert_not_called()
        mock_provider.initialize_payment.assert_not_called()


class TestCheckoutPesapal:
    """Test cases for PaymentService.checkout_pesapal"""

    def test_creates_order_then_redirect(self, fake_store):
        with patch('orderpay.services.payment_service.get_provider') as mock_get_provider:
            mock_provider = Mock()
            mock_provider.generate_merchant_reference.return_value = 'PP-2-def'
            mock_provider.initialize_payment.return_value = {
                'transaction_id': 'PP-2-def',
                'status': 'pesapal_initiated',
                'payment_url': 'https://demo.pesapal.com/redirect',
                'additional_data': {}
            }
            mock_get_provider.return_value = mock_provider

            result = PaymentService.checkout_pesapal(
                amount=750,
                customer={'name': 'Jane Wanjiru Doe', 'email': 'jane@example.com', 'phone': '0712345678'}
            )

        order = result['order']
        assert order['id'] == 1001
        assert order['total'] == 750.0
        assert order['payment_method'] == 'pesapal'
        assert order['payment_status'] == 'pesapal_initiated'
        assert order['pesapal_tracking_id'] == 'PP-2-def'
        assert result['payment']['payment_url'] == 'https://demo.pesapal.com/redirect'

        kwargs = mock_provider.initialize_payment.call_args[1]
        assert kwargs['order_id'] == 1001
        assert kwargs['customer_data']['first_name'] == 'Jane'
        assert kwargs['customer_data']['last_name'] == 'Wanjiru Doe'

    def test_rejected_checkout_creates_no_order(self, fake_store):
        with patch('orderpay.services.payment_service.get_provider') as mock_get_provider:
            mock_provider = Mock()
            mock_provider.check_order.side_effect = ValidationError("PesaPalProvider: 'callback_url' is required")
            mock_get_provider.return_value = mock_provider

            with pytest.raises(ValidationError):
                PaymentService.checkout_pesapal(amount=750, customer={'name': 'Jane Doe'})

        assert fake_store.calls == []
        assert fake_store.orders == {}
        mock_provider.initialize_payment.assert_not_called()


class TestGetOrder:

    def test_get_order(self, fake_store, sample_order):
        assert PaymentService.get_order('42')['total'] == 500

    def test_get_missing_order(self, fake_store):
        with pytest.raises(OrderNotFound):
            PaymentService.get_order('nope')
