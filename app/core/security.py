"""
Security Module

Password hashing (passlib/bcrypt), JWT access tokens (python-jose) and one-time codes.
Token helpers take the Settings instance explicitly instead of reading globals.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import Settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    """Base class for access token failures."""


class TokenMalformedError(TokenError):
    """Raised when a token cannot be parsed at all."""


class TokenExpiredError(TokenError):
    """Raised when a token's exp claim is in the past."""


class TokenInvalidError(TokenError):
    """Raised when a token's signature or claims do not verify."""


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    subject: str,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None,
) -> str:
    """
    Create a signed access token.

    The payload is {"id": subject, "iat": <issued>, "exp": <expiry>} with both
    timestamps in whole seconds since the epoch.
    """
    issued = issued_at or datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "id": str(subject),
        "iat": int(issued.timestamp()),
        "exp": int((issued + expires_delta).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> Dict[str, Any]:
    """
    Verify a token and return its payload.

    Raises:
        TokenMalformedError: the token is not a parseable JWT
        TokenExpiredError: the signature is valid but the token has expired
        TokenInvalidError: the signature or claims do not verify
    """
    try:
        jwt.get_unverified_header(token)
    except JWTError as e:
        logger.warning("Malformed token: %s", e)
        raise TokenMalformedError("Token is malformed") from e

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as e:
        logger.warning("Token expired: %s", e)
        raise TokenExpiredError("Token has expired") from e
    except JWTError as e:
        logger.warning("Invalid token: %s", e)
        raise TokenInvalidError("Token is invalid") from e

    if not payload.get("id") or "iat" not in payload:
        raise TokenInvalidError("Token is missing required claims")
    return payload


def generate_otp() -> str:
    """Six-digit numeric one-time code."""
    return str(secrets.randbelow(900000) + 100000)
