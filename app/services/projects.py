"""
Project Lifecycle Service

Owns the money math of a project (currency-aware paid total, completion percentage)
and the two-party edit approval workflow:

    none/approved/rejected --request_edit--> pending --decide_edit--> approved | rejected

Every operation computes a change set in memory from the current project row and
returns it; save_changes then writes it in one statement guarded by the project's
version counter, so either every change applies or none does.

Only completed installments count as paid. Installments in a currency other than
the project's are converted with the project's exchange rate (EGP per USD).
"""
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import update
from sqlmodel import Session, col

from app.core.errors import Conflict, ValidationFailed
from app.models.common import utcnow
from app.models.project import Currency, EditStatus, InstallmentStatus, Project, ProjectStatus
from app.schemas.project import ProjectCreate, ProjectUpdate, dump_installments

logger = logging.getLogger(__name__)

APPROVED_NOTE = "Edit approved"
REJECTED_NOTE = "Edit rejected"

# Fields whose change requires the completion percentage to be recomputed
FINANCIAL_FIELDS = ("budget", "installments", "currency", "exchange_rate")


def convert_amount(
    amount: float, from_currency: str, to_currency: str, exchange_rate: Optional[float]
) -> float:
    """Convert between EGP and USD; the rate is EGP per USD."""
    if from_currency == to_currency:
        return amount
    if not exchange_rate or exchange_rate <= 0:
        raise ValidationFailed(
            "Exchange rate is required to convert installments to the project currency",
            errors=[{"field": "exchange_rate", "message": "Must be greater than 0"}],
        )
    if from_currency == Currency.USD.value and to_currency == Currency.EGP.value:
        return amount * exchange_rate
    return amount / exchange_rate


def total_payments(
    installments: Iterable[Dict[str, Any]], currency: str, exchange_rate: Optional[float] = None
) -> float:
    """Sum of completed installments in the project currency, rounded to 2 dp."""
    total = 0.0
    for installment in installments:
        if installment.get("status") != InstallmentStatus.COMPLETED.value:
            continue
        total += convert_amount(
            float(installment["amount"]),
            installment.get("currency", Currency.EGP.value),
            currency,
            exchange_rate,
        )
    return round(total, 2)


def calculate_completion(
    installments: Iterable[Dict[str, Any]],
    budget: float,
    currency: str = Currency.EGP.value,
    exchange_rate: Optional[float] = None,
) -> float:
    """Paid share of the budget as a percentage clamped to [0, 100]."""
    if not budget or budget <= 0:
        return 0.0
    percentage = total_payments(installments, currency, exchange_rate) / budget * 100
    return round(min(100.0, max(0.0, percentage)), 2)


def validate_financials(
    currency: str, exchange_rate: Optional[float], installments: Iterable[Dict[str, Any]]
) -> None:
    if currency == Currency.USD.value and (not exchange_rate or exchange_rate <= 0):
        raise ValidationFailed(
            "Exchange rate is required for USD projects",
            errors=[{"field": "exchange_rate", "message": "Required and must be greater than 0"}],
        )
    foreign = [i for i in installments if i.get("currency", Currency.EGP.value) != currency]
    if foreign and (not exchange_rate or exchange_rate <= 0):
        raise ValidationFailed(
            "Exchange rate is required when installments use another currency",
            errors=[{"field": "exchange_rate", "message": "Required and must be greater than 0"}],
        )


def _validate_dates(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValidationFailed(
            "End date must be after start date",
            errors=[{"field": "end_date", "message": "End date must be after start date"}],
        )


def build_project(data: ProjectCreate, creator_id: str) -> Project:
    installments = dump_installments(data.installments)
    currency = data.currency.value
    validate_financials(currency, data.exchange_rate, installments)
    return Project(
        name=data.name.strip(),
        description=data.description,
        client_id=data.client_id,
        budget=data.budget,
        deposit=data.deposit,
        currency=currency,
        exchange_rate=data.exchange_rate,
        start_date=data.start_date,
        end_date=data.end_date,
        status=ProjectStatus.PLANNED.value,
        installments=installments,
        completion_percentage=calculate_completion(installments, data.budget, currency, data.exchange_rate),
        created_by=creator_id,
    )


def plan_update(project: Project, data: ProjectUpdate, actor_id: str) -> Dict[str, Any]:
    """Change set for an admin's partial update; omitted fields are left untouched."""
    changes: Dict[str, Any] = data.model_dump(exclude_unset=True, mode="json")
    # Dates and installments are stored natively / as JSON documents
    for field in ("start_date", "end_date"):
        if field in changes:
            changes[field] = getattr(data, field)
    if "installments" in changes:
        changes["installments"] = dump_installments(data.installments or [])
    if not changes:
        raise ValidationFailed("No changes supplied")

    for field in ("name", "budget", "currency", "installments", "start_date", "status"):
        if field in changes and changes[field] is None:
            raise ValidationFailed(
                f"{field} cannot be null", errors=[{"field": field, "message": "Cannot be null"}]
            )

    merged = {f: changes.get(f, getattr(project, f)) for f in FINANCIAL_FIELDS + ("start_date", "end_date")}
    _validate_dates(merged["start_date"], merged["end_date"])
    validate_financials(merged["currency"], merged["exchange_rate"], merged["installments"])

    if any(f in changes for f in FINANCIAL_FIELDS):
        changes["completion_percentage"] = calculate_completion(
            merged["installments"], merged["budget"], merged["currency"], merged["exchange_rate"]
        )
    changes["updated_by"] = actor_id
    return changes


def request_edit(project: Project, patch: Dict[str, Any], requester_id: str) -> Dict[str, Any]:
    """
    Stage a moderator's patch for admin approval.

    Raises:
        ValidationFailed: the patch is empty or another edit is already pending
    """
    if not patch:
        raise ValidationFailed("No changes requested")
    if project.edit_status == EditStatus.PENDING.value:
        raise ValidationFailed("Edit request already pending")
    if "installments" in patch:
        validate_financials(project.currency, project.exchange_rate, patch["installments"])

    return {
        "pending_edit": dict(patch),
        "edit_requested_by": requester_id,
        "edit_status": EditStatus.PENDING.value,
    }


def decide_edit(
    project: Project, approve: bool, notes: Optional[str] = None, decided_by: Optional[str] = None
) -> Dict[str, Any]:
    """
    Approve (merge the staged patch) or reject (discard it) a pending edit.

    Raises:
        ValidationFailed: there is no pending edit
    """
    patch = project.pending_edit
    if project.edit_status != EditStatus.PENDING.value or not patch:
        raise ValidationFailed("No pending edit request")

    changes: Dict[str, Any] = {"pending_edit": None, "updated_by": decided_by}
    if not approve:
        changes["edit_status"] = EditStatus.REJECTED.value
        changes["edit_notes"] = notes or REJECTED_NOTE
        return changes

    budget = patch["budget"] if "budget" in patch else project.budget
    installments: List[Dict[str, Any]] = (
        patch["installments"] if "installments" in patch else project.installments
    )
    validate_financials(project.currency, project.exchange_rate, installments)

    if "budget" in patch:
        changes["budget"] = budget
    if "installments" in patch:
        changes["installments"] = installments
    changes["completion_percentage"] = calculate_completion(
        installments, budget, project.currency, project.exchange_rate
    )
    changes["edit_status"] = EditStatus.APPROVED.value
    changes["edit_notes"] = notes or APPROVED_NOTE
    return changes


def save_changes(db: Session, project: Project, changes: Dict[str, Any]) -> Project:
    """
    Persist a change set with a compare-and-swap on the project's version.

    Raises:
        Conflict: another request wrote the project since it was loaded
    """
    expected = project.version
    values = dict(changes)
    values["version"] = expected + 1
    values["updated_at"] = utcnow()

    statement = (
        update(Project)
        .where(col(Project.id) == project.id, col(Project.version) == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(statement)
    if result.rowcount != 1:
        db.rollback()
        logger.warning("Stale write rejected for project %s at version %s", project.id, expected)
        raise Conflict("Project was modified by another request. Reload it and try again.")

    db.commit()
    db.refresh(project)
    return project


def submit_edit_request(db: Session, project: Project, patch: Dict[str, Any], requester_id: str) -> Project:
    project = save_changes(db, project, request_edit(project, patch, requester_id))
    logger.info("Edit requested on project %s by %s: %s", project.id, requester_id, sorted(patch))
    return project


def resolve_edit_request(
    db: Session, project: Project, approve: bool, notes: Optional[str], decided_by: str
) -> Project:
    project = save_changes(db, project, decide_edit(project, approve, notes, decided_by))
    logger.info("Edit on project %s %s by %s", project.id, project.edit_status, decided_by)
    return project
