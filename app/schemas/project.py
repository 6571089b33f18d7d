"""
Project Schemas

Request bodies for the project endpoints. Installments are validated here before
they reach the lifecycle service and are stored as plain JSON documents.
"""
import re
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.common import utcnow
from app.models.project import Currency, InstallmentStatus, PaymentMethod, ProjectStatus

REF_NO_PATTERN = re.compile(r"^[A-Z0-9]{8,12}$")
MIN_INSTALLMENT_AMOUNT = 100


class Installment(BaseModel):
    ref_no: str = Field(..., description="Unique payment reference, 8-12 alphanumeric characters")
    amount: float = Field(..., ge=MIN_INSTALLMENT_AMOUNT, description="Amount paid in this installment")
    payment_date: datetime = Field(default_factory=utcnow)
    payment_method: PaymentMethod
    status: InstallmentStatus = InstallmentStatus.PENDING
    currency: Currency = Currency.EGP
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("ref_no", mode="before")
    @classmethod
    def normalize_ref_no(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
        return v

    @field_validator("ref_no")
    @classmethod
    def validate_ref_no(cls, v: str) -> str:
        if not REF_NO_PATTERN.match(v):
            raise ValueError("RefNo must be 8-12 alphanumeric characters")
        return v

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: float) -> float:
        return round(v, 2)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


def check_unique_ref_numbers(installments: Optional[List[Installment]]) -> None:
    if not installments:
        return
    seen = set()
    for installment in installments:
        if installment.ref_no in seen:
            raise ValueError(f"Duplicate installment ref_no: {installment.ref_no}")
        seen.add(installment.ref_no)


def dump_installments(installments: List[Installment]) -> List[dict]:
    """JSON-ready documents as they are stored on the project."""
    return [i.model_dump(mode="json") for i in installments]


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    client_id: Optional[str] = None
    budget: float = Field(0, ge=0)
    deposit: Optional[float] = Field(None, ge=0)
    currency: Currency = Currency.EGP
    exchange_rate: Optional[float] = Field(None, gt=0)
    start_date: date
    end_date: Optional[date] = None
    installments: List[Installment] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_project(self) -> "ProjectCreate":
        if self.end_date is not None and self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        check_unique_ref_numbers(self.installments)
        return self


class ProjectUpdate(BaseModel):
    """Partial update; only fields present in the body are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    client_id: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    deposit: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    exchange_rate: Optional[float] = Field(None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[ProjectStatus] = None
    installments: Optional[List[Installment]] = None

    @model_validator(mode="after")
    def validate_installments(self) -> "ProjectUpdate":
        check_unique_ref_numbers(self.installments)
        return self


class EditRequest(BaseModel):
    """A moderator's proposed change to a project's financials."""
    budget: Optional[float] = Field(None, ge=0)
    installments: Optional[List[Installment]] = None

    @model_validator(mode="after")
    def validate_installments(self) -> "EditRequest":
        check_unique_ref_numbers(self.installments)
        return self

    def to_patch(self) -> dict:
        """Only the fields the caller actually supplied, ready for storage."""
        patch = {}
        if self.budget is not None:
            patch["budget"] = self.budget
        if self.installments is not None:
            patch["installments"] = dump_installments(self.installments)
        return patch


class EditDecision(BaseModel):
    approve: bool
    notes: Optional[str] = Field(None, max_length=500)
