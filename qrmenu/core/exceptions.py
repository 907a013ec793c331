"""
Error Hierarchy

Every error raised by the ordering core derives from QRMenuError.
Each class carries the HTTP status the API layer answers with, so
route handlers can let them propagate to a single exception handler.
"""

from typing import Optional


class QRMenuError(Exception):
    """Base class for recoverable, user-facing errors."""

    status_code: int = 400
    default_message: str = "Request could not be completed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def error(self) -> str:
        return type(self).__name__


# =============================================================================
# ORDERING
# =============================================================================

class EmptyOrderError(QRMenuError):
    """Raised when submitting a draft that has no lines."""
    status_code = 400
    default_message = "Your order is empty"


class SubmissionInProgressError(QRMenuError):
    """Raised when a draft is touched while its submission is in flight."""
    status_code = 409
    default_message = "An order from this table is already being placed"


class SubmissionFailedError(QRMenuError):
    """Raised when an order could not be persisted after all retries."""
    status_code = 503
    default_message = "Failed to place order. Please try again or call for assistance"


class OrderNotFoundError(QRMenuError):
    status_code = 404

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvalidTransitionError(QRMenuError):
    status_code = 409

    def __init__(self, current: str, requested: str, reason: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(
            reason or f"Cannot change order status from '{current}' to '{requested}'"
        )


# =============================================================================
# CATALOG
# =============================================================================

class MenuItemNotFoundError(QRMenuError):
    status_code = 404

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Menu item {item_id} not found")


# =============================================================================
# STORAGE
# =============================================================================

class StaleWriteError(QRMenuError):
    """The stored record changed since it was read."""
    status_code = 409

    def __init__(self, entity_id: str, expected_version: int, actual_version: Optional[int]):
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{entity_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )


class DataSourceError(QRMenuError):
    """Permanent data source failure; retrying will not help."""
    status_code = 503
    default_message = "Data source unavailable"


class TransientDataSourceError(DataSourceError):
    """Temporary data source failure; the call may be retried."""
    default_message = "Data source temporarily unavailable"
