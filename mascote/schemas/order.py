"""
Schemas for order intake and order responses
"""

from sqlmodel import SQLModel, Field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from mascote.models.order import OrderStatus, REQUIRED_ORDER_FIELDS


class OrderFields(SQLModel):
    """Context fields submitted with a new order"""
    round: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    venue: Optional[str] = None
    mascot_kind: Optional[str] = None

    def missing(self) -> List[str]:
        """Names of required fields that are absent or blank"""
        return [name for name in REQUIRED_ORDER_FIELDS if not (getattr(self, name) or "").strip()]

    def cleaned(self) -> dict:
        values = {name: (getattr(self, name) or "").strip() for name in REQUIRED_ORDER_FIELDS}
        values["mascot_kind"] = (self.mascot_kind or "").strip()
        return values


class UploadedAsset(SQLModel):
    """A received file blob: where it was spooled and what it was called"""
    filename: str
    path: Path


class OrderAssets(SQLModel):
    """Images attached to an order, all optional"""
    team_shield: Optional[UploadedAsset] = None
    opponent_shield: Optional[UploadedAsset] = None
    mascot: Optional[UploadedAsset] = None
    sponsors: List[UploadedAsset] = Field(default_factory=list)


class OrderCreatedResponse(SQLModel):
    ok: bool = True
    order_id: str


class OrderSummary(SQLModel):
    id: str


class OrderListResponse(SQLModel):
    ok: bool = True
    status: OrderStatus
    orders: List[OrderSummary]


class OrderStatusUpdate(SQLModel):
    status: str


class OrderRead(SQLModel):
    ok: bool = True
    id: str
    cycle_key: str
    round: str
    date: str
    time: str
    venue: str
    mascot_kind: str
    uses_team_shield: bool
    uses_team_mascot: bool
    sponsor_count: int
    status: OrderStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
