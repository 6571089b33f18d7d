from .user import User, UserRole, Department
from .client import Client
from .department_role import DepartmentRole
from .project import (
    Project, ProjectStatus, Currency, PaymentMethod, InstallmentStatus, EditStatus
)

__all__ = [
    "User", "UserRole", "Department",
    "Client",
    "DepartmentRole",
    "Project", "ProjectStatus", "Currency", "PaymentMethod", "InstallmentStatus", "EditStatus",
]
