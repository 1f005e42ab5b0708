"""
Authentication dependencies: Auth0 JWT verification, member resolution,
and shared-secret checks for scheduler and server-to-server routes.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from activation_api.config import get_settings
from activation_api.core.auth0 import TokenVerificationError, extract_email, get_verifier
from activation_api.dependencies.db import get_db
from activation_api.models.members import Member

logger = logging.getLogger(__name__)

# Make HTTPBearer optional when auth is disabled
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, Any]:
    """
    Verify the Auth0 JWT and return basic user info (``id``, ``email``).

    If AUTH_DISABLED=true, returns a mock test user.
    """
    settings = get_settings()

    if settings.auth_disabled:
        logger.warning("Auth0 disabled - using mock test user")
        return {"id": "test-user-id", "email": "sdr@example.com"}

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = await get_verifier().verify(credentials.credentials)
    except TokenVerificationError as e:
        logger.error("Auth0 token verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"id": payload.get("sub"), "email": extract_email(payload)}


async def get_current_member(
    user: Dict[str, Any] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Member:
    """
    Resolve the caller to a Member (organization scope + role flags).

    Raises 403 if no member record exists for the account's email.
    """
    email = (user.get("email") or "").lower()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token carries no email claim",
        )

    result = await db.execute(select(Member).where(func.lower(Member.email) == email))
    member = result.scalars().first()
    if not member:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No organization membership found for this account",
        )
    return member


async def require_admin(member: Member = Depends(get_current_member)) -> Member:
    if not member.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden - Admin access required")
    return member


async def require_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Scheduler routes authenticate with ``Authorization: Bearer <CRON_SECRET>``."""
    settings = get_settings()
    if not settings.cron_secret or authorization != f"Bearer {settings.cron_secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")


async def require_service_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Server-to-server calls from Control Tower send the shared X-API-KEY."""
    settings = get_settings()
    if not settings.control_tower_api_key or x_api_key != settings.control_tower_api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")
