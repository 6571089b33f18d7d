from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from app.models.user import Department, UserRole
from app.schemas.user import PrincipalSummary, check_name, check_password_strength, normalize_email


class _EmailBody(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class RegisterRequest(_EmailBody):
    name: str
    password: str
    confirm_password: str
    role: UserRole = UserRole.USER
    department: Optional[Department] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return check_name(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def validate_department_required(self) -> "RegisterRequest":
        if self.role != UserRole.ADMIN and self.department is None:
            raise ValueError("Department is required for non-admin users")
        return self


class RegisterResponse(BaseModel):
    message: str
    email: str
    name: str


class VerifyEmailRequest(_EmailBody):
    otp: str


class LoginRequest(_EmailBody):
    password: str


class ForgotPasswordRequest(_EmailBody):
    pass


class ResetPasswordRequest(_EmailBody):
    otp: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)


class TokenResponse(BaseModel):
    message: Optional[str] = None
    token: str
    user: PrincipalSummary
