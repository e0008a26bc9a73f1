"""
Error Taxonomy

Every ledger failure surfaces as one of these kinds. The HTTP layer maps
them to status codes; nothing below the API raises HTTPException.
"""


class ShopLedgerError(Exception):
    """Base class for all domain errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopLedgerError, ValueError):
    """Malformed or out-of-range input (negative stock, short password, ...)"""

    status_code = 400


class AuthError(ShopLedgerError):
    """Missing or invalid identity"""

    status_code = 401


class ForbiddenError(AuthError):
    """Identity is valid but its role does not allow the operation"""

    status_code = 403


class NotFoundError(ShopLedgerError, ValueError):
    """Unknown client, product, user or notification id"""

    status_code = 404


class ConflictError(ShopLedgerError, ValueError):
    """Business rule violation against the current store state"""

    status_code = 409


class InternalError(ShopLedgerError):
    """Unexpected failure, including snapshot I/O"""

    status_code = 500
