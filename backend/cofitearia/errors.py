"""Exception taxonomy shared by services, routes and CLI commands.

Services raise these; routes translate them to HTTP statuses (see
``http_status``) and CLI commands print them. None of them is fatal to the
process.
"""

from __future__ import annotations


class CofiteariaError(Exception):
    """Base exception for all domain errors."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(CofiteariaError, ValueError):
    """400-level input problem (non-positive quantity, malformed email, ...)."""

    status_code = 400


class NotFoundError(CofiteariaError):
    """Missing or inactive product, inventory item, sale or user."""

    status_code = 404

    def __init__(self, entity: str, identifier=None):
        self.entity = entity
        self.identifier = identifier
        msg = f"{entity} not found"
        if identifier is not None:
            msg = f"{entity} {identifier} not found"
        super().__init__(msg)


class ConflictError(CofiteariaError, ValueError):
    """409-level business rule conflict (e.g., duplicate barcode or username)."""

    status_code = 409


class InsufficientStockError(CofiteariaError):
    """Removal would drive an inventory item below zero."""

    status_code = 409

    def __init__(self, item_id: int, requested: int, available: int):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for inventory item {item_id}: "
            f"requested {requested}, available {available}",
            details={"item_id": item_id, "requested": requested, "available": available},
        )


class SaleError(CofiteariaError):
    """Raised for sale operation errors."""

    status_code = 409


class EmptyCartError(SaleError):
    """Finalization attempted on a sale with no items."""

    def __init__(self, sale_id: int):
        self.sale_id = sale_id
        super().__init__(f"Sale {sale_id} has no items")


class SaleStateError(SaleError):
    """Mutation attempted on a sale that is no longer in the required state."""


class InvalidCredentialsError(CofiteariaError):
    """Authentication failure. Deliberately vague about which part was wrong."""

    status_code = 401

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class PermissionDeniedError(CofiteariaError):
    """Raised when user lacks required permission."""

    status_code = 403


class StorageError(CofiteariaError):
    """Persistence failure; the SQLAlchemy exception is chained as __cause__."""

    status_code = 503


def http_status(exc: CofiteariaError) -> int:
    return getattr(exc, "status_code", 500)
