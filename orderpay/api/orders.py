from flask import Blueprint, jsonify

from orderpay.errors import AppError, UpstreamError
from orderpay.schemas.payment_schema import OrderSchema
from orderpay.services.payment_service import PaymentService
from orderpay.utils.logger import get_logger

orders_bp = Blueprint('orders', __name__)
logger = get_logger(__name__)

order_schema = OrderSchema()


@orders_bp.route('/<order_id>', methods=['GET'])
def get_order(order_id):
    """
    Get the payment view of an order

    Path Parameters:
        - order_id: Order id in the store
    """
    try:
        order = PaymentService.get_order(order_id)

        return jsonify({
            'success': True,
            'data': order_schema.dump(order)
        }), 200

    except UpstreamError as e:
        logger.error(f'Order lookup {order_id} failed: {e.message}')
        return jsonify({
            'success': False,
            'error': UpstreamError.error
        }), e.status_code

    except AppError as e:
        return jsonify({
            'success': False,
            'error': e.message
        }), e.status_code
