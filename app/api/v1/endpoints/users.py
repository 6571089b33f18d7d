"""
User Management Endpoints Module

This module provides the admin dashboard's user CRUD. All endpoints require
administrative privileges except /me, which returns the caller's own profile.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from app.api import deps
from app.api.serializers import serialize_user
from app.core.errors import Conflict, NotFound, ValidationFailed
from app.core.security import get_password_hash
from app.db.session import get_db
from app.models.common import utcnow
from app.models.department_role import DepartmentRole
from app.models.user import Department, User, UserRole
from app.schemas.user import UserCreate, UserUpdate

router = APIRouter()


def _email_taken(db: Session, email: str, exclude_id: Optional[str] = None) -> bool:
    statement = select(User).where(User.email == email)
    if exclude_id:
        statement = statement.where(User.id != exclude_id)
    return db.exec(statement).first() is not None


def _check_department_role(db: Session, role_id: Optional[str]) -> None:
    if role_id and not db.get(DepartmentRole, role_id):
        raise ValidationFailed(
            "Department role does not exist",
            errors=[{"field": "department_role_id", "message": "Unknown department role"}],
        )


@router.get("/me")
def read_user_me(current_user: User = Depends(deps.get_current_user)) -> Dict[str, Any]:
    """Get the current authenticated user's profile."""
    return serialize_user(current_user, current_user.role)


@router.get("")
def read_users(
    role: Optional[UserRole] = None,
    department: Optional[Department] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
) -> List[Dict[str, Any]]:
    """
    Retrieve users, optionally filtered.

    Args:
        role: Only users with this role
        department: Only users in this department
        search: Case-insensitive fragment of the name or email
    """
    statement = select(User)
    if role is not None:
        statement = statement.where(User.role == role)
    if department is not None:
        statement = statement.where(User.department == department)
    if search:
        pattern = f"%{search.lower()}%"
        statement = statement.where(
            or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern))
        )
    statement = statement.order_by(col(User.created_at)).offset(skip).limit(limit)
    return [serialize_user(u, current_user.role) for u in db.exec(statement).all()]


@router.get("/{user_id}")
def read_user_by_id(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
) -> Dict[str, Any]:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return serialize_user(user, current_user.role)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    *,
    db: Session = Depends(get_db),
    user_in: UserCreate,
    current_user: User = Depends(deps.require_admin),
) -> Dict[str, Any]:
    """
    Create a user from the admin dashboard.

    Accounts created by an admin skip email verification.

    Raises:
        Conflict 409: the email is already registered
    """
    if _email_taken(db, user_in.email):
        raise Conflict("Email already registered")
    _check_department_role(db, user_in.department_role_id)

    db_user = User(
        name=user_in.name,
        email=user_in.email,
        password=get_password_hash(user_in.password),
        role=user_in.role,
        department=user_in.department,
        department_role_id=user_in.department_role_id,
        is_verified=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return serialize_user(db_user, current_user.role)


@router.patch("/{user_id}")
def update_user(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    user_in: UserUpdate,
    current_user: User = Depends(deps.require_admin),
) -> Dict[str, Any]:
    """
    Update any user's profile; only fields present in the body are applied.

    Raises:
        ValidationFailed 400: empty body, or the result would leave a non-admin without a department
        NotFound 404: the user does not exist
        Conflict 409: the new email belongs to another user
    """
    update_data = user_in.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationFailed("At least one field is required for update")

    db_user = db.get(User, user_id)
    if not db_user:
        raise NotFound("User not found")

    if update_data.get("email") and _email_taken(db, update_data["email"], exclude_id=user_id):
        raise Conflict("Email already in use by another user")
    if "department_role_id" in update_data:
        _check_department_role(db, update_data["department_role_id"])

    for field in ("name", "email", "role", "is_active"):
        if field in update_data and update_data[field] is None:
            raise ValidationFailed(f"{field} cannot be null")

    role = update_data.get("role", db_user.role)
    department = update_data.get("department", db_user.department)
    if role != UserRole.ADMIN and department is None:
        raise ValidationFailed("Department is required for non-admin users")

    # Hash password if it's being updated
    if "password" in update_data:
        update_data["password"] = get_password_hash(update_data["password"])
        db_user.password_changed_at = utcnow()

    for field, value in update_data.items():
        setattr(db_user, field, value)
    db_user.updated_at = utcnow()

    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return serialize_user(db_user, current_user.role)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    *,
    db: Session = Depends(get_db),
    user_id: str,
    current_user: User = Depends(deps.require_admin),
):
    """
    Delete a user. Admins cannot delete themselves.
    """
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # Prevent self-deletion
    if user.id == current_user.id:
        raise ValidationFailed("Users cannot delete themselves")

    db.delete(user)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
