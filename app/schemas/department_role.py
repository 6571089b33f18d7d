from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.user import Department


def _label(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Role label cannot be empty")
    return v


class DepartmentRoleCreate(BaseModel):
    department: Department
    role: str = Field(..., max_length=50)

    @field_validator("role")
    @classmethod
    def strip_role(cls, v: str) -> str:
        return _label(v)


class DepartmentRoleUpdate(BaseModel):
    department: Optional[Department] = None
    role: Optional[str] = Field(None, max_length=50)

    @field_validator("role")
    @classmethod
    def strip_role(cls, v: Optional[str]) -> Optional[str]:
        return _label(v)


class DepartmentRoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    department: Department
    role: str
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
