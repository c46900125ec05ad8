"""
Metering error hierarchy.

Provides:
- MeteringError: base for all metering failures
- InsufficientCredits: allowance and purchased credits both exhausted at consume time
- StorageUnavailable: ledger could not be read or written (fail closed)
- ConcurrentModification: compare-and-swap lost its race past the retry limit

Business-rule denials are not exceptions; they are Decision values.
"""

from typing import Optional


class MeteringError(Exception):
    """Base exception for metering failures."""

    error_code = "METERING_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class InsufficientCredits(MeteringError):
    """Raised when neither the plan allowance nor the credit balance can cover a consume."""

    error_code = "INSUFFICIENT_CREDITS"

    def __init__(self, user_id: int, resource_type: str, requested: int, available: int = 0):
        self.user_id = user_id
        self.resource_type = resource_type
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient credits for {resource_type}: requested {requested}, available {available}"
        )

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": "limit exceeded",
            "resource_type": self.resource_type,
            "requested": self.requested,
            "available": self.available,
        }


class StorageUnavailable(MeteringError):
    """
    Raised when the ledger store cannot be reached.

    Callers must deny the gated action.
    """

    error_code = "STORAGE_UNAVAILABLE"

    def __init__(self, detail: str, cause: Optional[Exception] = None):
        self.detail = detail
        self.cause = cause
        super().__init__(f"Ledger storage unavailable: {detail}")

    def to_dict(self) -> dict:
        # Never leak the driver error to the end user
        return {"error": self.error_code, "message": "Service temporarily unavailable"}


class ConcurrentModification(MeteringError):
    """Raised when an optimistic update keeps losing to concurrent writers."""

    error_code = "CONCURRENT_MODIFICATION"

    def __init__(self, entity: str, key: object, attempts: int = 0):
        self.entity = entity
        self.key = key
        self.attempts = attempts
        super().__init__(f"Concurrent modification of {entity} {key} after {attempts} attempts")

    def to_dict(self) -> dict:
        return {
            "error": self.error_code,
            "message": "Please retry the request",
            "entity": self.entity,
        }
