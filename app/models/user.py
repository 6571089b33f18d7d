"""
User Model Module

This module defines the User model together with the UserRole and Department
enumerations used for authentication and authorization throughout the application.
"""
from enum import Enum
from typing import Optional
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.models.common import as_utc, new_id, utcnow


class UserRole(str, Enum):
    """
    Roles a principal can hold.

    Access checks match roles exactly against a per-operation allow-list:
    - ADMIN: full access, approves project edits, manages users and department roles
    - MODERATOR: creates projects, requests edits to project financials
    - USER: read access; never sees project financials
    """
    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"


class Department(str, Enum):
    SOFTWARE = "Software"
    MARKETING = "Marketing"


class User(SQLModel, table=True):
    """
    User model representing authenticated principals.

    Attributes:
        id: Unique identifier (UUID) automatically generated for each user
        name: Display name
        email: Login email, stored lowercase (unique, indexed)
        password: bcrypt hash; never serialized
        role: One of UserRole
        department: Required for every role except admin
        department_role_id: Optional reference to a DepartmentRole
        password_changed_at: Tokens issued before this instant are rejected
        is_active: Deactivated accounts cannot authenticate
        is_verified: Set once the email OTP has been confirmed
        otp / otp_expires: Pending verification or password reset code
    """
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)

    name: str = Field(nullable=False)
    email: str = Field(unique=True, index=True, nullable=False)
    password: str = Field(nullable=False)  # Hashed password (bcrypt)

    role: UserRole = Field(default=UserRole.USER)
    department: Optional[Department] = None
    # Plain id reference, like every cross-table id here
    department_role_id: Optional[str] = Field(default=None, index=True)

    password_changed_at: Optional[datetime] = None
    is_active: bool = True
    is_verified: bool = False

    # One-time code for email verification and password reset
    otp: Optional[str] = None
    otp_expires: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def changed_password_after(self, token_issued_at: int) -> bool:
        """True when the password changed after a token with this iat was issued."""
        if self.password_changed_at is None:
            return False
        changed = int(as_utc(self.password_changed_at).timestamp())
        return token_issued_at < changed

    def otp_matches(self, otp: str, now: Optional[datetime] = None) -> bool:
        if not self.otp or not self.otp_expires:
            return False
        return self.otp == otp and as_utc(self.otp_expires) >= as_utc(now or utcnow())
