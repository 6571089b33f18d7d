"""
Department Role Endpoints Module

Admins define the job titles available inside each department; every
authenticated user can read them.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, col, select

from app.api import deps
from app.db.session import get_db
from app.models.common import utcnow
from app.models.department_role import DepartmentRole
from app.models.user import Department, User
from app.schemas.department_role import DepartmentRoleCreate, DepartmentRoleRead, DepartmentRoleUpdate

router = APIRouter()


def _get_role(db: Session, role_id: str) -> DepartmentRole:
    role = db.get(DepartmentRole, role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Department role not found")
    return role


@router.post("", response_model=DepartmentRoleRead, status_code=status.HTTP_201_CREATED)
def create_department_role(
    role_in: DepartmentRoleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
):
    role = DepartmentRole(
        department=role_in.department,
        role=role_in.role,
        created_by=current_user.id,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


@router.get("", response_model=List[DepartmentRoleRead])
def list_department_roles(
    department: Optional[Department] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
):
    statement = select(DepartmentRole)
    if department is not None:
        statement = statement.where(DepartmentRole.department == department)
    return db.exec(statement.order_by(col(DepartmentRole.role))).all()


@router.get("/{department}", response_model=List[DepartmentRoleRead])
def list_roles_for_department(
    department: Department,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """All roles defined for one department."""
    statement = (
        select(DepartmentRole)
        .where(DepartmentRole.department == department)
        .order_by(col(DepartmentRole.role))
    )
    return db.exec(statement).all()


@router.patch("/{role_id}", response_model=DepartmentRoleRead)
def update_department_role(
    role_id: str,
    role_update: DepartmentRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
):
    role = _get_role(db, role_id)
    for key, value in role_update.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(role, key, value)
    role.updated_at = utcnow()
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_department_role(
    role_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
):
    role = _get_role(db, role_id)
    db.delete(role)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
