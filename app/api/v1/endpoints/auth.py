"""
Authentication Endpoints Module

Registration with email verification, login/logout, and OTP based password reset.
Login returns a JWT and also sets it as the HTTP-only "jwt" cookie for browser clients.
"""
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session, select

from app.api import deps
from app.core.config import Settings, get_settings
from app.core.errors import AuthenticationFailed, ValidationFailed
from app.core.security import create_access_token, generate_otp, get_password_hash, verify_password
from app.db.session import get_db
from app.models.common import utcnow
from app.models.user import User, UserRole
from app.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from app.schemas.user import Message, PrincipalSummary
from app.services.mailer import Mailer, get_mailer, otp_message

logger = logging.getLogger(__name__)

router = APIRouter()


def _find_by_email(db: Session, email: str):
    return db.exec(select(User).where(User.email == email)).first()


def _issue_otp(user: User, settings: Settings) -> str:
    user.otp = generate_otp()
    user.otp_expires = utcnow() + timedelta(minutes=settings.OTP_VALIDITY_MINUTES)
    return user.otp


def _set_password(user: User, password: str) -> None:
    user.password = get_password_hash(password)
    # One second back so a token issued right after the change stays valid
    user.password_changed_at = utcnow() - timedelta(seconds=1)
    user.updated_at = utcnow()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register_user(
    user_in: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Register a new account and mail an email verification code.

    The account cannot log in until the code is confirmed via /verify-email.

    Raises:
        ValidationFailed 400: passwords differ, email already registered, or admin role requested
    """
    if user_in.password != user_in.confirm_password:
        raise ValidationFailed("Passwords do not match")
    if user_in.role == UserRole.ADMIN:
        raise ValidationFailed("Admin accounts cannot be self-registered")
    if _find_by_email(db, user_in.email):
        raise ValidationFailed("Email already registered")

    user = User(
        name=user_in.name,
        email=user_in.email,
        password=get_password_hash(user_in.password),
        role=user_in.role,
        department=user_in.department,
        is_verified=False,
    )
    otp = _issue_otp(user, settings)
    db.add(user)
    db.commit()
    db.refresh(user)

    mailer.send(
        user.email,
        "Verify Your Account",
        otp_message(user.name, otp, "verification", settings.OTP_VALIDITY_MINUTES),
    )
    logger.info("Registered user %s pending email verification", user.id)
    return RegisterResponse(
        message="Registration successful. Please verify your email.",
        email=user.email,
        name=user.name,
    )


@router.post("/verify-email", response_model=TokenResponse)
def verify_email(
    body: VerifyEmailRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Confirm the registration code and return an access token.

    Raises:
        ValidationFailed 400: unknown user, already verified, or invalid/expired code
    """
    user = _find_by_email(db, body.email)
    if not user:
        raise ValidationFailed("User not found")
    if user.is_verified:
        raise ValidationFailed("Email already verified")
    if not user.otp_matches(body.otp):
        raise ValidationFailed("Invalid or expired OTP")

    user.is_verified = True
    user.otp = None
    user.otp_expires = None
    user.updated_at = utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)

    return TokenResponse(
        message="Email verified successfully",
        token=create_access_token(user.id, settings),
        user=PrincipalSummary.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Authenticate a user and issue an access token.

    The token is returned in the body and set as the "jwt" cookie
    (HTTP-only, SameSite=strict, secure in production).

    Raises:
        ValidationFailed 400: unknown email, wrong password, or email not verified
        AuthenticationFailed 401: account deactivated
    """
    user = _find_by_email(db, body.email)
    if not user:
        raise ValidationFailed("Invalid credentials")
    if not user.is_verified:
        raise ValidationFailed("Email not verified. Please verify your email first.")
    if not user.is_active:
        raise AuthenticationFailed("Account is not active. Please contact support.")
    if not verify_password(body.password, user.password):
        logger.warning("Failed login for %s", body.email)
        raise ValidationFailed("Invalid credentials")

    token = create_access_token(user.id, settings)
    response.set_cookie(
        key=deps.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,  # Cannot be accessed via JavaScript
        max_age=settings.JWT_COOKIE_EXPIRES_DAYS * 24 * 60 * 60,
        secure=settings.is_production,
        samesite="strict",
    )
    return TokenResponse(token=token, user=PrincipalSummary.model_validate(user))


@router.post("/logout", response_model=Message)
def logout(response: Response):
    """Clear the auth cookie. API clients can simply discard their token."""
    response.delete_cookie(deps.AUTH_COOKIE_NAME)
    return Message(message="Logged out")


@router.post("/forgot-password", response_model=Message)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Mail a password reset code.

    Raises:
        ValidationFailed 400: unknown user or email not verified
    """
    user = _find_by_email(db, body.email)
    if not user:
        raise ValidationFailed("User not found")
    if not user.is_verified:
        raise ValidationFailed("Email not verified. Please verify your email first.")

    otp = _issue_otp(user, settings)
    db.add(user)
    db.commit()

    mailer.send(
        user.email,
        "Password Reset OTP",
        otp_message(user.name, otp, "password reset", settings.OTP_VALIDITY_MINUTES),
    )
    return Message(message="OTP sent to your email for password reset")


@router.post("/reset-password", response_model=Message)
def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    """
    Set a new password using a reset code. Tokens issued before the reset stop working.

    Raises:
        ValidationFailed 400: passwords differ, unknown user, or invalid/expired code
    """
    if body.new_password != body.confirm_password:
        raise ValidationFailed("Passwords do not match")

    user = _find_by_email(db, body.email)
    if not user:
        raise ValidationFailed("User not found")
    if not user.otp_matches(body.otp):
        raise ValidationFailed("Invalid or expired OTP")

    _set_password(user, body.new_password)
    user.otp = None
    user.otp_expires = None
    db.add(user)
    db.commit()
    logger.info("Password reset for user %s", user.id)
    return Message(message="Password reset successfully")


@router.post("/change-password", response_model=Message)
def change_password(
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """
    Change the authenticated user's password.

    Raises:
        ValidationFailed 400: current password wrong or new passwords differ
    """
    if not verify_password(body.current_password, current_user.password):
        raise ValidationFailed("Current password is incorrect")
    if body.new_password != body.confirm_password:
        raise ValidationFailed("New passwords do not match")

    _set_password(current_user, body.new_password)
    db.add(current_user)
    db.commit()
    logger.info("Password changed for user %s", current_user.id)
    return Message(message="Password changed successfully")
