"""
Order record with its status state machine

The record is stored as order.json inside the order directory; the current
status is mirrored in status.txt next to it.
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle status of a production order"""
    NEW = "new"                        # Submitted by the client
    IN_PRODUCTION = "in_production"    # Being designed
    READY = "ready"                    # Artwork delivered

    @classmethod
    def parse(cls, value: object) -> Optional["OrderStatus"]:
        """Return the matching status, or None for unknown values"""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Any status may follow any other, including skipping in_production"""
        return isinstance(target, OrderStatus)


REQUIRED_ORDER_FIELDS = ("round", "date", "time", "venue")


class OrderRecord(SQLModel):
    """Structured order record (order.json)"""

    id: str = Field(description="Timestamp-derived order id, YYYYMMDD_HHMMSS[-n]")
    client_id: str
    cycle_key: str = Field(description="Cycle the order was created in")

    # Match context
    round: str
    date: str
    time: str
    venue: str
    mascot_kind: str = ""

    # Assets
    uses_team_shield: bool = False
    uses_team_mascot: bool = False
    sponsor_count: int = Field(default=0, ge=0)

    status: OrderStatus = Field(default=OrderStatus.NEW)
    created_at: datetime
    updated_at: Optional[datetime] = None

    def transition_to(self, target: OrderStatus, when: datetime) -> None:
        """Move the record to a new status"""
        if not self.status.can_transition_to(target):
            raise ValueError(f"Cannot move order from {self.status.value} to {target}")

        self.status = target
        self.updated_at = when
