"""Shared route dependencies."""
import secrets

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from attendance.core.config import settings
from attendance.core.database import get_session
from attendance.registry.service import AttendanceRegistry


def get_registry(session: Session = Depends(get_session)) -> AttendanceRegistry:
    """Dependency for getting a registry bound to the request's session."""
    return AttendanceRegistry(session)


def require_admin_token(x_admin_token: str | None = Header(default=None)) -> None:
    """
    Guard for admin routes.

    Compares the X-Admin-Token header to the configured shared token. Admin
    routes answer 503 until a token is configured.
    """
    if not settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured",
        )
    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
