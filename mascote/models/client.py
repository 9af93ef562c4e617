"""
Client record persisted in the shared client table
"""

from sqlmodel import Field, SQLModel
from typing import Optional


class Client(SQLModel):
    """One provisioned client (team) keyed by its client id in the table"""

    credential_hash: str = Field(description="bcrypt hash of the login secret")
    display_name: str = Field(default="", description="Team display name")
    plan_quota: int = Field(default=1, ge=1, description="Orders allowed per cycle")
    active: bool = Field(default=True, description="Inactive clients cannot log in or order")

    # Usage accounting
    cycle_key: Optional[str] = Field(
        default=None,
        description="Cycle (YYYY-MM) the usage counter refers to"
    )
    usage_count: int = Field(default=0, ge=0, description="Orders consumed in cycle_key")

    def has_capacity(self) -> bool:
        """Check remaining quota; only meaningful after reconciliation"""
        return self.usage_count < self.plan_quota

    def remaining(self) -> int:
        return max(self.plan_quota - self.usage_count, 0)
