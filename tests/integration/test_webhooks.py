"""
Integration Tests for Webhook Processing
"""

import json
from unittest.mock import patch

import pytest

from orderpay import create_app
from orderpay.config import TestingConfig
from orderpay.errors import StoreError
from orderpay.services.callback_security import compute_signature

SAFARICOM_IP = '196.201.214.200'


def _stk_payload(checkout_id='ws_CO_123456789', result_code=0):
    return {
        'Body': {
            'stkCallback': {
                'MerchantRequestID': 'merchant-123',
                'CheckoutRequestID': checkout_id,
                'ResultCode': result_code,
                'ResultDesc': 'The service request is processed successfully.',
                'CallbackMetadata': {
                    'Item': [
                        {'Name': 'Amount', 'Value': 1000},
                        {'Name': 'MpesaReceiptNumber', 'Value': 'ABC123XYZ'},
                        {'Name': 'TransactionDate', 'Value': 20240101120000},
                        {'Name': 'PhoneNumber', 'Value': 254700000000}
                    ]
                }
            }
        }
    }


@pytest.fixture
def stk_order(fake_store):
    return fake_store.add('42', payment_status='pending', mpesa_checkout_id='ws_CO_123456789')


@pytest.fixture
def pesapal_order(fake_store):
    return fake_store.add('43', payment_status='pesapal_initiated', pesapal_tracking_id='PP-1700000000000-abcdef12')


class TestMpesaWebhook:
    """Integration tests for the Safaricom STK callback"""

    def test_successful_payment(self, client, fake_store, stk_order):
        response = client.post('/api/v1/webhooks/mpesa', json=_stk_payload())

        assert response.status_code == 200
        assert response.data == b'OK'

        order = fake_store.orders['42']
        assert order['payment_status'] == 'completed'
        assert order['mpesa_receipt'] == 'ABC123XYZ'
        assert order['mpesa_amount'] == 1000
        assert order['mpesa_transaction_date'] == '20240101120000'

    def test_cancelled_payment(self, client, fake_store, stk_order):
        payload = _stk_payload(result_code=1032)
        del payload['Body']['stkCallback']['CallbackMetadata']

        response = client.post('/api/v1/webhooks/mpesa', json=payload)

        assert response.status_code == 200
        assert fake_store.orders['42']['payment_status'] == 'failed'
        assert fake_store.orders['42']['mpesa_receipt'] is None

    def test_unknown_checkout_id_still_acknowledged(self, client, fake_store, stk_order):
        response = client.post('/api/v1/webhooks/mpesa', json=_stk_payload('ws_CO_unknown'))

        assert response.status_code == 200
        assert fake_store.orders['42']['payment_status'] == 'pending'

    def test_duplicate_callback_is_idempotent(self, client, fake_store, stk_order):
        client.post('/api/v1/webhooks/mpesa', json=_stk_payload())
        first = dict(fake_store.orders['42'])

        response = client.post('/api/v1/webhooks/mpesa', json=_stk_payload())

        assert response.status_code == 200
        assert fake_store.orders['42'] == first

    def test_missing_body(self, client, fake_store):
        response = client.post('/api/v1/webhooks/mpesa', data='not json', content_type='text/plain')

        assert response.status_code == 400
        assert fake_store.calls == []

    def test_missing_stk_callback(self, client, fake_store):
        response = client.post('/api/v1/webhooks/mpesa', json={'Body': {}})

        assert response.status_code == 400
        assert b'stkCallback' in response.data

    @pytest.mark.parametrize('metadata', [
        {'Item': ['Amount']},
        {'Item': {'Name': 'Amount'}},
        ['Amount'],
    ])
    def test_malformed_metadata(self, client, fake_store, stk_order, metadata):
        payload = _stk_payload()
        payload['Body']['stkCallback']['CallbackMetadata'] = metadata

        response = client.post('/api/v1/webhooks/mpesa', json=payload)

        assert response.status_code == 400
        assert b'CallbackMetadata' in response.data
        assert b"'str' object" not in response.data
        assert fake_store.calls == []

    def test_store_failure_asks_for_retry(self, client, fake_store, stk_order):
        with patch.object(fake_store, 'patch_order_by_tracking_id', side_effect=StoreError('down')):
            response = client.post('/api/v1/webhooks/mpesa', json=_stk_payload())

        assert response.status_code == 500

    def test_unexpected_error_hides_details(self, client, fake_store, stk_order):
        with patch.object(fake_store, 'patch_order_by_tracking_id', side_effect=RuntimeError('secret detail')):
            response = client.post('/api/v1/webhooks/mpesa', json=_stk_payload())

        assert response.status_code == 500
        assert b'secret detail' not in response.data

    def test_get_not_allowed(self, client):
        response = client.get('/api/v1/webhooks/mpesa')

        assert response.status_code == 405


class TestCallbackGuard:
    """Source allowlist and body signature on the callback endpoints"""

    def test_ip_not_in_allowlist(self, app, client, fake_store, stk_order, monkeypatch):
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_IPS', [SAFARICOM_IP])

        response = client.post(
            '/api/v1/webhooks/mpesa',
            json=_stk_payload(),
            environ_base={'REMOTE_ADDR': '203.0.113.5'}
        )

        assert response.status_code == 403
        assert fake_store.orders['42']['payment_status'] == 'pending'

    def test_ip_in_allowlist(self, app, client, fake_store, stk_order, monkeypatch):
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_IPS', [SAFARICOM_IP])

        response = client.post(
            '/api/v1/webhooks/mpesa',
            json=_stk_payload(),
            environ_base={'REMOTE_ADDR': SAFARICOM_IP}
        )

        assert response.status_code == 200
        assert fake_store.orders['42']['payment_status'] == 'completed'

    def test_ip_check_disabled_by_flag(self, app, client, fake_store, stk_order, monkeypatch):
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_IPS', [SAFARICOM_IP])
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_IP_CHECK', False)

        response = client.post(
            '/api/v1/webhooks/mpesa',
            json=_stk_payload(),
            environ_base={'REMOTE_ADDR': '203.0.113.5'}
        )

        assert response.status_code == 200

    def test_forwarded_header_is_not_trusted_by_default(self, app, client, fake_store, stk_order, monkeypatch):
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_IPS', [SAFARICOM_IP])

        response = client.post(
            '/api/v1/webhooks/mpesa',
            json=_stk_payload(),
            headers={'X-Forwarded-For': SAFARICOM_IP},
            environ_base={'REMOTE_ADDR': '203.0.113.5'}
        )

        assert response.status_code == 403
        assert fake_store.calls == []

    def test_trusted_proxy_forwards_caller(self, fake_store, stk_order, monkeypatch):
        monkeypatch.setattr(TestingConfig, 'TRUSTED_PROXY_COUNT', 1)
        monkeypatch.setattr(TestingConfig, 'MPESA_CALLBACK_IPS', [SAFARICOM_IP])
        proxied = create_app('testing').test_client()

        allowed = proxied.post(
            '/api/v1/webhooks/mpesa',
            json=_stk_payload(),
            headers={'X-Forwarded-For': SAFARICOM_IP},
            environ_base={'REMOTE_ADDR': '10.0.0.1'}
        )
        # Only the last hop is trusted, so a prepended address is ignored
        spoofed = proxied.post(
            '/api/v1/webhooks/mpesa',
            json=_stk_payload(),
            headers={'X-Forwarded-For': f'{SAFARICOM_IP}, 203.0.113.5'},
            environ_base={'REMOTE_ADDR': '10.0.0.1'}
        )

        assert allowed.status_code == 200
        assert fake_store.orders['42']['payment_status'] == 'completed'
        assert spoofed.status_code == 403

    def test_valid_signature(self, app, client, fake_store, stk_order, monkeypatch):
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_SECRET', 'hook-secret')
        body = json.dumps(_stk_payload()).encode()

        response = client.post(
            '/api/v1/webhooks/mpesa',
            data=body,
            content_type='application/json',
            headers={'X-Daraja-Signature': compute_signature('hook-secret', body)}
        )

        assert response.status_code == 200
        assert fake_store.orders['42']['payment_status'] == 'completed'

    def test_invalid_signature(self, app, client, fake_store, stk_order, monkeypatch):
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_SECRET', 'hook-secret')
        body = json.dumps(_stk_payload()).encode()

        response = client.post(
            '/api/v1/webhooks/mpesa',
            data=body,
            content_type='application/json',
            headers={'X-Signature': compute_signature('wrong-secret', body)}
        )

        assert response.status_code == 401
        assert fake_store.calls == []

    def test_unsigned_request_is_accepted(self, app, client, fake_store, stk_order, monkeypatch):
        monkeypatch.setitem(app.config, 'MPESA_CALLBACK_SECRET', 'hook-secret')

        response = client.post('/api/v1/webhooks/mpesa', json=_stk_payload())

        assert response.status_code == 200

    def test_pesapal_signature_header(self, app, client, fake_store, pesapal_order, monkeypatch):
        monkeypatch.setitem(app.config, 'PESAPAL_CALLBACK_SECRET', 'pp-secret')
        body = json.dumps({'order_tracking_id': 'PP-1700000000000-abcdef12', 'status': 'COMPLETED'}).encode()

        bad = client.post(
            '/api/v1/webhooks/pesapal',
            data=body,
            content_type='application/json',
            headers={'X-Pesapal-Signature': 'deadbeef'}
        )
        good = client.post(
            '/api/v1/webhooks/pesapal',
            data=body,
            content_type='application/json',
            headers={'X-Pesapal-Signature': compute_signature('pp-secret', body)}
        )

        assert bad.status_code == 401
        assert good.status_code == 200
        assert fake_store.orders['43']['payment_status'] == 'completed'

    def test_non_ascii_signature_is_unauthorized(self, app, client, fake_store, pesapal_order, monkeypatch):
        monkeypatch.setitem(app.config, 'PESAPAL_CALLBACK_SECRET', 'pp-secret')

        response = client.post(
            '/api/v1/webhooks/pesapal',
            json={'order_tracking_id': 'PP-1700000000000-abcdef12', 'status': 'COMPLETED'},
            headers={'X-Pesapal-Signature': 'café'}
        )

        assert response.status_code == 401
        assert fake_store.calls == []
        assert fake_store.orders['43']['payment_status'] == 'pesapal_initiated'


class TestPesapalWebhook:
    """Integration tests for the PesaPal redirect and IPN"""

    REFERENCE = 'PP-1700000000000-abcdef12'

    def _expected(self, transaction_id):
        return {'payment_status': 'completed', 'pesapal_transaction_id': transaction_id}

    def test_get_redirect(self, client, fake_store, pesapal_order):
        response = client.get('/api/v1/webhooks/pesapal', query_string={
            'pesapal_merchant_reference': self.REFERENCE,
            'pesapal_transaction_tracking_id': 'tx-1'
        })

        assert response.status_code == 200
        assert fake_store.calls[-1] == (
            'patch_tracking', 'pesapal_tracking_id', self.REFERENCE, self._expected('tx-1')
        )

    def test_post_json(self, client, fake_store, pesapal_order):
        response = client.post('/api/v1/webhooks/pesapal', json={
            'order_tracking_id': self.REFERENCE,
            'transaction_id': 'tx-1'
        })

        assert response.status_code == 200
        assert fake_store.calls[-1][3] == self._expected('tx-1')

    def test_post_form(self, client, fake_store, pesapal_order):
        response = client.post(
            '/api/v1/webhooks/pesapal',
            data=f'merchant_reference={self.REFERENCE}&transaction_id=tx-1',
            content_type='application/x-www-form-urlencoded'
        )

        assert response.status_code == 200
        assert fake_store.calls[-1][3] == self._expected('tx-1')

    def test_post_form_without_content_type(self, client, fake_store, pesapal_order):
        response = client.post(
            '/api/v1/webhooks/pesapal',
            data=f'orderTrackingId={self.REFERENCE}&status=COMPLETED'
        )

        assert response.status_code == 200
        assert fake_store.orders['43']['payment_status'] == 'completed'

    def test_failed_status(self, client, fake_store, pesapal_order):
        response = client.post('/api/v1/webhooks/pesapal', json={
            'order_tracking_id': self.REFERENCE,
            'status': 'FAILED'
        })

        assert response.status_code == 200
        assert fake_store.orders['43']['payment_status'] == 'failed'

    def test_missing_tracking_id(self, client, fake_store):
        response = client.get('/api/v1/webhooks/pesapal', query_string={'transaction_id': 'tx-1'})

        assert response.status_code == 400
        assert fake_store.calls == []

    def test_store_failure_asks_for_retry(self, client, fake_store, pesapal_order):
        with patch.object(fake_store, 'patch_order_by_tracking_id', side_effect=StoreError('down')):
            response = client.get('/api/v1/webhooks/pesapal', query_string={
                'pesapal_merchant_reference': self.REFERENCE
            })

        assert response.status_code == 500
