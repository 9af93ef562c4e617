"""
Request dependencies for FastAPI
"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import structlog

from mascote.services import MascoteServices

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


def get_services(request: Request) -> MascoteServices:
    """Services built at startup"""
    return request.app.state.services


def get_current_client_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: MascoteServices = Depends(get_services),
) -> str:
    """Client id from the bearer token; AuthError when absent or invalid"""
    token = credentials.credentials if credentials else None
    client_id = services.sessions.authenticate(token)
    logger.debug(f"Client authenticated: {client_id}")
    return client_id
