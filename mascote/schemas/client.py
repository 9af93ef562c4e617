"""
Pydantic schemas for login and client profile
"""

from pydantic import BaseModel, Field
from typing import Optional


class LoginRequest(BaseModel):
    """Login schema; the client id is the team's WhatsApp number"""
    client_id: str = Field(..., min_length=1, max_length=64)
    secret: str = Field(..., min_length=1, max_length=128)


class ClientSummary(BaseModel):
    """Profile as seen in the current quota cycle"""
    client_id: str
    display_name: str
    plan_quota: int
    usage_count: int
    remaining: int
    active: bool
    cycle_key: Optional[str] = None


class LoginResponse(BaseModel):
    """Token response"""
    ok: bool = True
    token: str
    token_type: str = "bearer"
    display_name: str
    plan_quota: int
    usage_count: int


class ProfileResponse(ClientSummary):
    ok: bool = True
