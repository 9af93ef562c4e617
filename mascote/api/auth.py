"""
Client authentication API endpoints
"""

from fastapi import APIRouter, Depends

from mascote.core.dependencies import get_current_client_id, get_services
from mascote.schemas.client import LoginRequest, LoginResponse, ProfileResponse
from mascote.services import MascoteServices

router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
def login(
    login_data: LoginRequest,
    services: MascoteServices = Depends(get_services),
):
    """Exchange client id and secret for a bearer token"""
    token, summary = services.sessions.login(login_data.client_id, login_data.secret)
    return LoginResponse(
        token=token,
        display_name=summary.display_name,
        plan_quota=summary.plan_quota,
        usage_count=summary.usage_count,
    )


@router.get("/me", response_model=ProfileResponse)
def get_profile(
    client_id: str = Depends(get_current_client_id),
    services: MascoteServices = Depends(get_services),
):
    """Current client's profile and quota usage"""
    summary = services.sessions.get_profile(client_id)
    return ProfileResponse(**summary.model_dump())
