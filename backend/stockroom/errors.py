# Overview: Domain error kinds raised by the stock services and rendered by the API.

"""
Every error here is recoverable at the request boundary: the caller is shown
the message and may resubmit. None of them is process-fatal.

Status codes are carried on the class so routes can stay thin; the app-level
error handler renders `to_dict()` with `status_code`.
"""


class StockroomError(Exception):
    """Base class for request-recoverable domain errors."""

    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": str(self), "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(StockroomError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidQuantity(StockroomError):
    """Requested amount is zero, negative, or otherwise not a usable quantity."""

    status_code = 400
    code = "INVALID_QUANTITY"


class InsufficientStock(StockroomError):
    """Requested amount exceeds what is on hand. `available` lets the caller re-prompt."""

    status_code = 409
    code = "INSUFFICIENT_STOCK"

    def __init__(self, *, item_id: int, requested: int, available: int):
        super().__init__(
            f"Quantity exceeds available stock (requested {requested}, available {available})",
            details={"item_id": item_id, "requested": requested, "available": available},
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


class WriteConflict(StockroomError):
    """Concurrent modification of the same row; only raised once retries are exhausted."""

    status_code = 409
    code = "WRITE_CONFLICT"


class ReferentialIntegrityViolation(StockroomError):
    status_code = 409
    code = "REFERENTIAL_INTEGRITY"
