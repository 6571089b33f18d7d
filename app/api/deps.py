"""
API Dependencies Module

This module provides FastAPI dependency functions for authentication and authorization.
It implements a dual authentication strategy supporting both bearer tokens (for API clients)
and the HTTP-only "jwt" cookie (for browser clients).
"""
import logging
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from app.core.config import Settings, get_settings, settings as default_settings
from app.core.errors import AuthenticationFailed, PermissionDenied
from app.core.permissions import is_allowed
from app.core.security import (
    TokenExpiredError,
    TokenInvalidError,
    TokenMalformedError,
    decode_access_token,
)
from app.db.session import get_db
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

AUTH_COOKIE_NAME = "jwt"

# auto_error=False allows us to check the cookie as a fallback
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{default_settings.API_V1_STR}/auth/login",
    auto_error=False  # Don't raise error immediately if Authorization header is missing
)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    token: Optional[str] = Depends(reusable_oauth2),
) -> User:
    """
    Dependency that retrieves and validates the current authenticated user.

    The bearer token in the Authorization header wins; otherwise the "jwt" cookie
    is used. Every failure is a 401 with a message specific to the cause.

    Raises:
        AuthenticationFailed: no token; malformed, expired or invalid token;
            unknown or deactivated account; password changed after the token was issued
    """
    # Try Authorization header first, then fall back to cookie
    if not token:
        token = request.cookies.get(AUTH_COOKIE_NAME)

    # Require authentication
    if not token:
        raise AuthenticationFailed("Authentication required. Please log in.")

    try:
        payload = decode_access_token(token, settings)
    except TokenExpiredError:
        raise AuthenticationFailed("Session expired. Please log in again.")
    except TokenMalformedError:
        raise AuthenticationFailed("Malformed authentication token.")
    except TokenInvalidError:
        raise AuthenticationFailed("Invalid authentication token.")

    user = db.get(User, payload["id"])
    if not user or not user.is_active:
        logger.warning("Token presented for missing or inactive user %s", payload["id"])
        raise AuthenticationFailed("Account not found or deactivated.")

    if user.changed_password_after(int(payload["iat"])):
        logger.warning("Token for user %s predates the last password change", user.id)
        raise AuthenticationFailed("Password changed recently. Please log in again.")

    return user


class RoleChecker:
    """
    Dependency factory for checking user roles.

    Usage: Depends(RoleChecker([UserRole.ADMIN, UserRole.MODERATOR]))
    """
    def __init__(self, allowed_roles: Iterable[UserRole]):
        self.allowed_roles = list(allowed_roles)

    def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        if not is_allowed(current_user.role, self.allowed_roles):
            raise PermissionDenied(
                f"Access restricted to: {', '.join(r.value for r in self.allowed_roles)}"
            )
        return current_user


require_admin = RoleChecker([UserRole.ADMIN])
require_moderator = RoleChecker([UserRole.MODERATOR])
require_admin_or_moderator = RoleChecker([UserRole.ADMIN, UserRole.MODERATOR])
