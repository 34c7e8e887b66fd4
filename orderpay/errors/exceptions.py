class AppError(Exception):
    status_code = 500
    error = "Application error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        if status_code:
            self.status_code = status_code
        self.message = message


class ConfigurationError(AppError):
    status_code = 500
    error = "Configuration error"

class ValidationError(AppError):
    status_code = 400
    error = "Validation error"

class OrderNotFound(AppError):
    status_code = 404
    error = "Order not found"

class UpstreamError(AppError):
    status_code = 502
    error = "Upstream service error"

class UpstreamAuthError(UpstreamError):
    error = "Upstream authentication failed"

class GatewayRejected(UpstreamError):
    error = "Payment gateway rejected the request"

    def __init__(self, message, response=None, status_code=None):
        super().__init__(message, status_code)
        self.response = response or {}

class StoreError(UpstreamError):
    error = "Order store error"

class UnauthorizedCallback(AppError):
    status_code = 401
    error = "Unauthorized"

class MalformedCallback(AppError):
    status_code = 400
    error = "Bad request"
