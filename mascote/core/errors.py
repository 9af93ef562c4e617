"""
Error taxonomy shared by the services and the HTTP layer

Every failure a public operation can report is a MascoteError subclass with a
machine-readable kind and the HTTP status it maps to.
"""

from fastapi import status


class MascoteError(Exception):
    """Base class for classified failures"""

    kind: str = "error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.kind, "detail": self.message}


class AuthError(MascoteError):
    kind = "auth_error"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class ClientInactive(AuthError):
    kind = "client_inactive"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Client account is inactive"


class NotFoundError(MascoteError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ClientNotFound(NotFoundError):
    kind = "client_not_found"
    default_message = "Client not found"


class OrderNotFound(NotFoundError):
    kind = "order_not_found"
    default_message = "Order not found"


class QuotaExceeded(MascoteError):
    kind = "quota_exceeded"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Monthly order quota exhausted"


class InvalidOrder(MascoteError):
    kind = "invalid_order"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing required order fields"


class InvalidStatus(MascoteError):
    kind = "invalid_status"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Unknown order status"


class StorageError(MascoteError):
    kind = "storage_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage unavailable"


class InvalidRequest(MascoteError):
    kind = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Malformed request"
