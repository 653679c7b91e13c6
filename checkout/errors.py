"""Error kinds raised by the checkout services.

Each error carries the HTTP status the API layer answers with and a message
that is safe to show to the caller. Details meant for operators go to the log.
"""


class CheckoutError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(CheckoutError):
    status_code = 422
    message = "Invalid checkout request"


class ProcessorRequestError(CheckoutError):
    status_code = 502
    message = "Payment processor request failed"


class SignatureVerificationError(CheckoutError):
    status_code = 400
    message = "Invalid signature"


class NotFoundError(CheckoutError):
    status_code = 404
    message = "Order not found"


class DatastoreError(CheckoutError):
    status_code = 500
    message = "Internal server error"


class ConfigurationError(CheckoutError):
    status_code = 503
    message = "Service unavailable"
