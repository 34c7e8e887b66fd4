from flask import Blueprint, request, jsonify
from marshmallow import ValidationError

from orderpay.errors import AppError, UpstreamError
from orderpay.schemas.payment_schema import (
    MPesaPaymentSchema,
    PesaPalPaymentSchema,
    PesaPalCheckoutSchema
)
from orderpay.services.payment_service import PaymentService
from orderpay.utils.logger import get_logger

payments_bp = Blueprint('payments', __name__)
logger = get_logger(__name__)

mpesa_schema = MPesaPaymentSchema()
pesapal_schema = PesaPalPaymentSchema()
checkout_schema = PesaPalCheckoutSchema()


def _error_response(error: AppError):
    """Render an AppError; upstream diagnostics stay in the logs"""
    if isinstance(error, UpstreamError):
        logger.error(f'{request.path}: {error.message}')
        return jsonify({
            'success': False,
            'error': UpstreamError.error
        }), error.status_code

    return jsonify({
        'success': False,
        'error': error.message
    }), error.status_code


@payments_bp.route('/mpesa/stk-push', methods=['POST'])
def initiate_mpesa_payment():
    """
    Initiate an M-Pesa STK Push for an order

    Body:
        {
            "order_id": "42",
            "phone": "0712345678",
            "amount": 500,
            "description": "Order 42"
        }
    """
    try:
        data = mpesa_schema.load(request.get_json(silent=True) or {})

        result = PaymentService.initiate_mpesa_payment(
            order_id=data['order_id'],
            phone=data['phone'],
            amount=data['amount'],
            description=data.get('description')
        )
        additional = result['additional_data']

        return jsonify({
            'success': True,
            'checkout_request_id': additional.get('checkout_request_id'),
            'merchant_request_id': additional.get('merchant_request_id')
        }), 200

    except ValidationError as e:
        return jsonify({
            'success': False,
            'error': 'Validation error',
            'details': e.messages
        }), 400

    except AppError as e:
        return _error_response(e)

    except Exception as e:
        logger.exception(f'STK push failed: {str(e)}')
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500


@payments_bp.route('/pesapal/orders', methods=['POST'])
def initiate_pesapal_payment():
    """
    Create a signed PesaPal redirect for an existing order

    Body:
        {
            "order_id": "42",
            "amount": 1000,
            "email": "jane@example.com",
            "phone": "0712345678",
            "first_name": "Jane",
            "last_name": "Doe",
            "description": "Order 42",
            "callback_url": "https://shop.example.com/api/v1/webhooks/pesapal"
        }
    """
    try:
        data = pesapal_schema.load(request.get_json(silent=True) or {})

        result = PaymentService.initiate_pesapal_payment(
            order_id=data['order_id'],
            amount=data['amount'],
            payer={
                'first_name': data.get('first_name'),
                'last_name': data.get('last_name'),
                'email': data.get('email'),
                'phone': data.get('phone')
            },
            description=data.get('description'),
            callback_url=data.get('callback_url')
        )

        return jsonify({
            'success': True,
            'redirect_url': result['payment_url'],
            'order_tracking_id': result['transaction_id']
        }), 200

    except ValidationError as e:
        return jsonify({
            'success': False,
            'error': 'Validation error',
            'details': e.messages
        }), 400

    except AppError as e:
        return _error_response(e)

    except Exception as e:
        logger.exception(f'PesaPal initiation failed: {str(e)}')
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500


@payments_bp.route('/pesapal/checkout', methods=['POST'])
def pesapal_checkout():
    """
    Create an order and return its PesaPal redirect

    Body:
        {
            "amount": 2750,
            "name": "Jane Doe",
            "email": "jane@example.com",
            "phone": "0712345678"
        }
    """
    try:
        data = checkout_schema.load(request.get_json(silent=True) or {})

        result = PaymentService.checkout_pesapal(
            amount=data['amount'],
            customer={
                'name': data.get('name'),
                'email': data.get('email'),
                'phone': data.get('phone')
            },
            description=data.get('description'),
            callback_url=data.get('callback_url')
        )

        return jsonify({
            'success': True,
            'order_id': result['order'].get('id'),
            'redirect_url': result['payment']['payment_url'],
            'order_tracking_id': result['payment']['transaction_id']
        }), 201

    except ValidationError as e:
        return jsonify({
            'success': False,
            'error': 'Validation error',
            'details': e.messages
        }), 400

    except AppError as e:
        return _error_response(e)

    except Exception as e:
        logger.exception(f'PesaPal checkout failed: {str(e)}')
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500
