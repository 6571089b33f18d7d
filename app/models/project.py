"""
Project Model Module

This module defines the Project model: a client engagement with a budget, a list of
embedded installment payments and a staged edit awaiting admin approval.
"""
from enum import Enum
from typing import Any, Dict, List, Optional
from datetime import date, datetime

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from app.models.common import new_id, utcnow


class ProjectStatus(str, Enum):
    PLANNED = "planned"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Currency(str, Enum):
    EGP = "EGP"
    USD = "USD"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    CHECK = "check"
    CASH = "cash"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class EditStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Project(SQLModel, table=True):
    """
    Project model representing a client engagement.

    Installments and the pending edit are embedded documents stored as JSON;
    they are owned by the project and never referenced on their own.

    Attributes:
        id: Unique identifier (UUID)
        name: Project name (required)
        description: Free-form description
        client_id: Client the project is for; a plain id that outlives the client
        budget: Total budget in `currency`
        deposit: Optional initial deposit
        currency: "EGP" or "USD"
        exchange_rate: EGP per USD; required and > 0 when currency is USD
        start_date / end_date: Planned timeline (end must follow start)
        status: One of ProjectStatus; new projects start as "planned"
        installments: Embedded installment documents (see schemas.project.Installment)
        completion_percentage: Paid share of the budget, 0..100
        created_by / updated_by: Principal ids, kept after the user is deleted
        pending_edit: Staged patch ({"budget"?, "installments"?}) awaiting approval
        edit_requested_by: Principal that staged the patch
        edit_status: None, "pending", "approved" or "rejected"
        edit_notes: Admin's decision notes
        version: Incremented on every write; guards read-modify-write races
    """
    __tablename__ = "projects"

    id: str = Field(default_factory=new_id, primary_key=True)

    name: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    client_id: Optional[str] = Field(default=None, index=True)

    # Financials
    budget: float = 0
    deposit: Optional[float] = None
    currency: str = Field(default=Currency.EGP.value)
    exchange_rate: Optional[float] = None

    # Timeline
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    status: str = Field(default=ProjectStatus.PLANNED.value, index=True)

    installments: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    completion_percentage: float = 0

    created_by: Optional[str] = Field(default=None, index=True)
    updated_by: Optional[str] = None

    # Edit approval workflow
    pending_edit: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON(none_as_null=True)))
    edit_requested_by: Optional[str] = None
    edit_status: Optional[str] = None
    edit_notes: Optional[str] = None

    version: int = Field(default=1, nullable=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
