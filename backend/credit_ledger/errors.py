# Overview: Typed errors raised by the ledger services and mapped to HTTP codes by the routes.


class LedgerError(Exception):
    """Base class for ledger operation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(LedgerError):
    """400-level input problem (non-positive amount, overpayment, bad field)."""
    status_code = 400


class NotFoundError(LedgerError):
    """404-level missing sale, installment, transaction or customer."""
    status_code = 404


class IntegrityError(LedgerError):
    """409-level mismatch between related ledger records."""
    status_code = 409
