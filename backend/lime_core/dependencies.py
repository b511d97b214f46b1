"""
Lime Core Backend — FastAPI Dependencies
==========================================

What:  Request-scoped providers: the authenticated identity, the tenant key
       derived from it, and service instances bound to the request's session.
How:   `get_current_user` decodes the bearer token; `get_organization_id`
       turns it into the organization filter used by every service call.
       Faults raised here (401/403) are answered by the global handlers in
       `main.py` with the standard error envelope.

Usage:
    async def handler(
        organization_id: str = Depends(get_organization_id),
        service: SegmentationService = Depends(get_segmentation_service),
    ): ...
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lime_core.database import get_db_session
from lime_core.exceptions import AuthenticationError, PermissionDeniedError
from lime_core.schemas.auth import AuthenticatedUser
from lime_core.security import decode_access_token
from lime_core.services.auth_service import AuthService
from lime_core.services.identity_provider import GoogleIdentityProvider
from lime_core.services.segmentation_service import SegmentationService
from lime_core.services.template_service import TemplateService

# auto_error=False: a missing header becomes our 401 envelope instead of
# FastAPI's default 403 body
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Authentication required")
    return decode_access_token(credentials.credentials)


async def get_organization_id(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
) -> str:
    """The tenant filter key: always the identity's own current organization."""
    if not user.current_organization_id:
        raise PermissionDeniedError(message="No active organization selected")
    request.state.organization_id = user.current_organization_id
    return user.current_organization_id


def get_identity_provider() -> GoogleIdentityProvider:
    return GoogleIdentityProvider()


def get_auth_service(
    db: AsyncSession = Depends(get_db_session),
    identity_provider: GoogleIdentityProvider = Depends(get_identity_provider),
) -> AuthService:
    return AuthService(db, identity_provider)


def get_template_service(db: AsyncSession = Depends(get_db_session)) -> TemplateService:
    return TemplateService(db)


def get_segmentation_service(
    db: AsyncSession = Depends(get_db_session),
) -> SegmentationService:
    return SegmentationService(db)
