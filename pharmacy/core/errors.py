"""Error taxonomy for stock ledger operations.

Every failure raised by :mod:`pharmacy.services.ledger_service` is one of the
classes below. The request layer maps ``kind`` to an HTTP status; nothing in
the engine knows about HTTP.
"""


class LedgerError(Exception):
    kind = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFound(LedgerError):
    kind = "not_found"


class InvalidInput(LedgerError):
    kind = "invalid_input"


class InsufficientStock(LedgerError):
    kind = "insufficient_stock"

    def __init__(self, message: str, *, available: int = 0, requested: int = 0):
        super().__init__(message)
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["available"] = self.available
        payload["requested"] = self.requested
        return payload


class Internal(LedgerError):
    kind = "internal"


__all__ = ["InsufficientStock", "Internal", "InvalidInput", "LedgerError", "NotFound"]
