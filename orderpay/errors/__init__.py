from orderpay.errors.exceptions import (
    AppError,
    ConfigurationError,
    ValidationError,
    OrderNotFound,
    UpstreamError,
    UpstreamAuthError,
    GatewayRejected,
    StoreError,
    UnauthorizedCallback,
    MalformedCallback,
)

__all__= [
    'AppError',
    'ConfigurationError',
    'ValidationError',
    'OrderNotFound',
    'UpstreamError',
    'UpstreamAuthError',
    'GatewayRejected',
    'StoreError',
    'UnauthorizedCallback',
    'MalformedCallback',
]
