from typing import Dict, Type
from orderpay.providers.base import PaymentProvider
from orderpay.providers.mpesa_provider import MPesaProvider
from orderpay.providers.pesapal_provider import PesaPalProvider
from flask import current_app

# Provider registry
PROVIDERS: Dict[str, Type[PaymentProvider]] = {
    'mpesa':   MPesaProvider,
    'pesapal': PesaPalProvider,
}


def get_provider(provider_name: str) -> PaymentProvider:
    """
    Get provider instance by name.

    Args:
        provider_name: Name of the provider ('mpesa' or 'pesapal')

    Returns:
        Initialized provider instance

    Raises:
        ValueError: If provider not found
        ConfigurationError: If the provider's credentials are missing
    """
    provider_class = PROVIDERS.get(provider_name.lower())

    if not provider_class:
        raise ValueError(f'Unknown provider: {provider_name}')

    config = _get_provider_config(provider_name.lower())
    return provider_class(config)


def _default_callback_url(provider_name: str) -> str:
    base_url = (current_app.config.get('BASE_URL') or '').rstrip('/')
    if not base_url:
        return ''
    return f'{base_url}/api/v1/webhooks/{provider_name}'


def _get_provider_config(provider_name: str) -> dict:
    """Get provider configuration from Flask app config."""
    timeout = current_app.config.get('HTTP_TIMEOUT', 15)

    if provider_name == 'mpesa':
        return {
            # Required
            'consumer_key':     current_app.config.get('MPESA_CONSUMER_KEY'),
            'consumer_secret':  current_app.config.get('MPESA_CONSUMER_SECRET'),
            'shortcode':        current_app.config.get('MPESA_SHORTCODE'),
            'passkey':          current_app.config.get('MPESA_PASSKEY'),
            # Environment
            'environment':      current_app.config.get('MPESA_ENVIRONMENT', 'sandbox'),
            'callback_url':     current_app.config.get('MPESA_CALLBACK_URL') or _default_callback_url('mpesa'),
            'transaction_type': current_app.config.get('MPESA_TRANSACTION_TYPE', 'CustomerPayBillOnline'),
            'timeout':          timeout,
        }

    elif provider_name == 'pesapal':
        return {
            # Required
            'consumer_key':    current_app.config.get('PESAPAL_CONSUMER_KEY'),
            'consumer_secret': current_app.config.get('PESAPAL_CONSUMER_SECRET'),
            # Optional / environment-specific
            'environment':     current_app.config.get('PESAPAL_ENVIRONMENT', 'test'),
            'currency':        current_app.config.get('PESAPAL_CURRENCY', 'KES'),
            'callback_url':    current_app.config.get('PESAPAL_CALLBACK_URL') or _default_callback_url('pesapal'),
            'timeout':         timeout,
        }

    return {}


def list_available_providers():
    """List all available providers."""
    return list(PROVIDERS.keys())


__all__ = ['get_provider', 'list_available_providers', 'PROVIDERS']
