from datetime import datetime

from sqlmodel import SQLModel, Field

from app.models.common import new_id, utcnow
from app.models.user import Department


class DepartmentRole(SQLModel, table=True):
    """A job title available inside a department, defined by an admin."""
    __tablename__ = "department_roles"

    id: str = Field(default_factory=new_id, primary_key=True)
    department: Department = Field(index=True)
    role: str = Field(nullable=False)
    created_by: str = Field(index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
