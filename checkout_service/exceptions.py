"""
exceptions.py — Error Taxonomy of the Checkout Service

Raised by the checkout, order and storage layers. The API layer (main.py)
translates them into HTTP responses; the workflow decides which of them are
fatal to an operation and which are only logged.
"""


class CheckoutServiceError(Exception):
    """Base class of every error raised by this package."""

    kind = "checkout_error"


# --- Checkout validation ---

class IncompleteCheckout(CheckoutServiceError):
    """Customer, payment or shipping selection is missing at completion time."""

    kind = "incomplete_checkout"

    def __init__(self, missing_fields):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required checkout data: {', '.join(self.missing_fields)}")


class EmptyCart(CheckoutServiceError):
    """The cart has no lines at completion time."""

    kind = "empty_cart"

    def __init__(self):
        super().__init__("Cart is empty")


class StepLocked(CheckoutServiceError):
    """A gated step was requested before its prerequisite steps were completed."""

    kind = "step_locked"

    def __init__(self, step):
        self.step = step
        super().__init__(f"Checkout step {step} is locked until all previous steps are completed")


# --- Payment ---

class PaymentFailed(CheckoutServiceError):
    """The payment gateway rejected the payment."""

    kind = "payment_failed"

    def __init__(self, message="Payment failed"):
        self.message = message
        super().__init__(message)


class PaymentTimeout(CheckoutServiceError):
    """The payment gateway did not answer within the configured timeout."""

    kind = "payment_timeout"

    def __init__(self, order_id=None):
        self.order_id = order_id
        super().__init__(f"Payment service timed out (order: {order_id})")


# --- Catalog / stock ---

class ProductNotFound(CheckoutServiceError):
    kind = "product_not_found"

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class InsufficientStock(CheckoutServiceError):
    kind = "insufficient_stock"

    def __init__(self, product_id, available, requested):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: available {available}, requested {requested}"
        )


class StockUpdateFailed(CheckoutServiceError):
    """A stock decrement failed after the order was created. Logged, never fatal."""

    kind = "stock_update_failed"

    def __init__(self, product_id, reason=""):
        self.product_id = product_id
        self.reason = reason
        super().__init__(f"Stock update failed for product {product_id}: {reason}")


# --- Orders ---

class OrderNotFound(CheckoutServiceError):
    kind = "order_not_found"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvalidStatusTransition(CheckoutServiceError):
    """The requested status is not reachable from the current one."""

    kind = "invalid_status_transition"

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition order from '{current}' to '{target}'")


class SyncFailure(CheckoutServiceError):
    """A store could not be read or written while synchronizing an order."""

    kind = "sync_failure"

    def __init__(self, order_id, store_name, reason=""):
        self.order_id = order_id
        self.store_name = store_name
        self.reason = reason
        super().__init__(f"Failed to sync order {order_id} in store '{store_name}': {reason}")


# --- Digital downloads ---

class DownloadNotFound(CheckoutServiceError):
    kind = "download_not_found"

    def __init__(self, download_id):
        self.download_id = download_id
        super().__init__(f"Download {download_id} not found")


class DownloadLimitReached(CheckoutServiceError):
    """The download link was already used as often as it allows."""

    kind = "download_limit_reached"

    def __init__(self, download_id, max_downloads):
        self.download_id = download_id
        self.max_downloads = max_downloads
        super().__init__(f"Download {download_id} reached its limit of {max_downloads} downloads")


class DownloadExpired(CheckoutServiceError):
    kind = "download_expired"

    def __init__(self, download_id, expires_at):
        self.download_id = download_id
        self.expires_at = expires_at
        super().__init__(f"Download {download_id} expired at {expires_at.isoformat()}")


# --- Storage ---

class StorageUnavailable(CheckoutServiceError):
    """A storage slot could not be read or written."""

    kind = "storage_unavailable"

    def __init__(self, key, reason=""):
        self.key = key
        self.reason = reason
        super().__init__(f"Storage slot '{key}' unavailable: {reason}")


class InvalidImport(CheckoutServiceError):
    kind = "invalid_import"

    def __init__(self, reason="Invalid orders format"):
        super().__init__(f"Failed to import orders: {reason}")


# --- Shipping ---

class ShippingUnavailable(CheckoutServiceError):
    kind = "shipping_unavailable"

    def __init__(self, reason=""):
        self.reason = reason
        super().__init__(f"Shipping service unavailable: {reason}")
