import os
from dotenv import load_dotenv

load_dotenv()


def _csv(value):
    return [item.strip() for item in (value or '').split(',') if item.strip()]


def _flag(value):
    """Parse an optional boolean env var; None means 'not set'."""
    if value is None or value == '':
        return None
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')

    # Public base URL used to build default callback URLs
    BASE_URL = os.getenv('BASE_URL', '')

    # Applied to every outbound HTTP call (seconds)
    HTTP_TIMEOUT = int(os.getenv('HTTP_TIMEOUT', '15'))

    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Reverse proxies in front of the app; 0 ignores X-Forwarded-For entirely
    TRUSTED_PROXY_COUNT = int(os.getenv('TRUSTED_PROXY_COUNT', '0'))

    # Order store (Supabase / PostgREST)
    ORDER_STORE_URL = os.getenv('ORDER_STORE_URL', os.getenv('SUPABASE_URL', ''))
    ORDER_STORE_SERVICE_KEY = os.getenv('ORDER_STORE_SERVICE_KEY', os.getenv('SUPABASE_SERVICE_ROLE', ''))
    ORDER_STORE_TABLE = os.getenv('ORDER_STORE_TABLE', 'orders')

    # M-Pesa (Daraja) Configuration
    MPESA_ENVIRONMENT = os.getenv('MPESA_ENVIRONMENT', 'sandbox')
    MPESA_CONSUMER_KEY = os.getenv('MPESA_CONSUMER_KEY', '')
    MPESA_CONSUMER_SECRET = os.getenv('MPESA_CONSUMER_SECRET', '')
    MPESA_SHORTCODE = os.getenv('MPESA_SHORTCODE', '')
    MPESA_PASSKEY = os.getenv('MPESA_PASSKEY', '')
    MPESA_CALLBACK_URL = os.getenv('MPESA_CALLBACK_URL', '')
    MPESA_TRANSACTION_TYPE = os.getenv('MPESA_TRANSACTION_TYPE', 'CustomerPayBillOnline')
    MPESA_CALLBACK_IPS = _csv(os.getenv('MPESA_CALLBACK_IPS'))
    MPESA_CALLBACK_SECRET = os.getenv('MPESA_CALLBACK_SECRET', '')
    MPESA_CALLBACK_IP_CHECK = _flag(os.getenv('MPESA_CALLBACK_IP_CHECK'))
    MPESA_CALLBACK_SIGNATURE_CHECK = _flag(os.getenv('MPESA_CALLBACK_SIGNATURE_CHECK'))

    # PesaPal Configuration
    PESAPAL_ENVIRONMENT = os.getenv('PESAPAL_ENVIRONMENT', 'test')
    PESAPAL_CONSUMER_KEY = os.getenv('PESAPAL_CONSUMER_KEY', os.getenv('PESAPAL_KEY', ''))
    PESAPAL_CONSUMER_SECRET = os.getenv('PESAPAL_CONSUMER_SECRET', os.getenv('PESAPAL_SECRET', ''))
    PESAPAL_CURRENCY = os.getenv('PESAPAL_CURRENCY', 'KES')
    PESAPAL_CALLBACK_URL = os.getenv('PESAPAL_CALLBACK_URL', '')
    PESAPAL_CALLBACK_IPS = _csv(os.getenv('PESAPAL_CALLBACK_IPS'))
    PESAPAL_CALLBACK_SECRET = os.getenv('PESAPAL_CALLBACK_SECRET', '')
    PESAPAL_CALLBACK_IP_CHECK = _flag(os.getenv('PESAPAL_CALLBACK_IP_CHECK'))
    PESAPAL_CALLBACK_SIGNATURE_CHECK = _flag(os.getenv('PESAPAL_CALLBACK_SIGNATURE_CHECK'))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    LOG_DIR = ''
    BASE_URL = 'https://shop.example.com'

    ORDER_STORE_URL = 'https://store.example.com'
    ORDER_STORE_SERVICE_KEY = 'service-role-test-key'

    MPESA_ENVIRONMENT = 'sandbox'
    MPESA_CONSUMER_KEY = 'test_consumer_key'
    MPESA_CONSUMER_SECRET = 'test_consumer_secret'
    MPESA_SHORTCODE = '174379'
    MPESA_PASSKEY = 'test_passkey'
    MPESA_CALLBACK_URL = ''
    MPESA_CALLBACK_IPS = []
    MPESA_CALLBACK_SECRET = ''
    MPESA_CALLBACK_IP_CHECK = None
    MPESA_CALLBACK_SIGNATURE_CHECK = None

    PESAPAL_ENVIRONMENT = 'test'
    PESAPAL_CONSUMER_KEY = 'pesapal_test_key'
    PESAPAL_CONSUMER_SECRET = 'pesapal_test_secret'
    PESAPAL_CALLBACK_URL = ''
    PESAPAL_CALLBACK_IPS = []
    PESAPAL_CALLBACK_SECRET = ''
    PESAPAL_CALLBACK_IP_CHECK = None
    PESAPAL_CALLBACK_SIGNATURE_CHECK = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
