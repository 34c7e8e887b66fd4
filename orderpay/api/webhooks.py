"""
Webhook API Endpoints
Handles payment callbacks from M-Pesa and PesaPal
"""

from flask import Blueprint, request
from urllib.parse import parse_qsl
import json

from orderpay.errors import AppError, MalformedCallback
from orderpay.services.webhook_service import WebhookService
from orderpay.utils.decorators import callback_guard, log_execution_time
from orderpay.utils.logger import get_logger

webhooks_bp = Blueprint('webhooks', __name__)
logger = get_logger(__name__)


def _pesapal_payload():
    """
    Decode a PesaPal callback

    GET carries query parameters; POST carries JSON or, failing that,
    a form-encoded body (with or without the matching Content-Type).
    """
    if request.method == 'GET':
        return request.args.to_dict()

    text = request.get_data(cache=True, as_text=True) or ''
    try:
        parsed = json.loads(text or '{}')
    except ValueError:
        return dict(parse_qsl(text))

    return parsed if isinstance(parsed, dict) else {}


def _process(provider, payload):
    try:
        WebhookService.process_callback(provider, payload)
    except MalformedCallback as e:
        logger.warning(f'{provider} callback rejected: {e.message}')
        return e.message, e.status_code
    except AppError as e:
        logger.error(f'{provider} callback processing failed: {e.message}')
        return e.error, 500
    except Exception as e:
        logger.exception(f'{provider} callback processing failed: {str(e)}')
        return 'Internal Server Error', 500

    return 'OK', 200


@webhooks_bp.route('/mpesa', methods=['POST'])
@callback_guard('mpesa')
@log_execution_time
def mpesa_callback():
    """
    Receive a Safaricom STK Push result

    Body:
        {"Body": {"stkCallback": {"MerchantRequestID": "...",
                                  "CheckoutRequestID": "ws_CO_...",
                                  "ResultCode": 0,
                                  "ResultDesc": "...",
                                  "CallbackMetadata": {"Item": [...]}}}}
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return 'Bad Request - missing callback body', 400

    logger.info(f'Received M-Pesa callback from {request.remote_addr}')
    return _process('mpesa', payload)


@webhooks_bp.route('/pesapal', methods=['GET', 'POST'])
@callback_guard('pesapal')
@log_execution_time
def pesapal_callback():
    """
    Receive a PesaPal redirect (GET) or IPN (POST)

    Query / body fields (any of the accepted aliases):
        pesapal_merchant_reference | order_tracking_id | merchant_reference
        pesapal_transaction_tracking_id | transaction_id
        status
    """
    payload = _pesapal_payload()

    logger.info(f'Received PesaPal {request.method} callback from {request.remote_addr}')
    return _process('pesapal', payload)
