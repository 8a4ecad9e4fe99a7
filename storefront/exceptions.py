"""Checkout error taxonomy.

Every error carries the HTTP status the request boundary renders it with.
"""


class CheckoutError(Exception):
    status_code = 500
    default_message = "Failed to process payment"

    def __init__(self, message: str = "", **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class ValidationError(CheckoutError):
    status_code = 400
    default_message = "Invalid request"


class InsufficientStockError(CheckoutError):
    status_code = 409
    default_message = "Insufficient stock"

    def __init__(self, *, product_id: str, title: str, available: int, size: str | None = None):
        self.product_id = product_id
        self.title = title
        self.size = size
        self.available = available
        if size:
            message = f"Insufficient stock for {title} size {size}"
        else:
            message = f"Insufficient stock for {title}"
        super().__init__(message)


class ConfigurationError(CheckoutError):
    status_code = 500
    default_message = "Razorpay is not configured. Please contact support."


class GatewayError(CheckoutError):
    status_code = 502
    default_message = "Failed to create Razorpay order"


class PersistenceError(CheckoutError):
    status_code = 500
    default_message = "Failed to save order"
