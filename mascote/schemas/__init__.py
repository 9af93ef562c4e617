"""
Schemas for API responses and requests
"""

from mascote.schemas.client import ClientSummary, LoginRequest, LoginResponse, ProfileResponse
from mascote.schemas.order import (
    OrderAssets,
    OrderCreatedResponse,
    OrderFields,
    OrderListResponse,
    OrderRead,
    OrderStatusUpdate,
    OrderSummary,
    UploadedAsset,
)

__all__ = [
    "ClientSummary",
    "LoginRequest",
    "LoginResponse",
    "ProfileResponse",
    "OrderAssets",
    "OrderCreatedResponse",
    "OrderFields",
    "OrderListResponse",
    "OrderRead",
    "OrderStatusUpdate",
    "OrderSummary",
    "UploadedAsset",
]
