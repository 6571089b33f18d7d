"""
Response Serialization Policy

Decides, per (entity type, viewer role), which fields a response may carry,
so handlers never strip fields on their own.
"""
from typing import Any, Dict, FrozenSet, Optional

from sqlmodel import SQLModel

from app.core.permissions import can_view_financials
from app.services.projects import total_payments

# Never exposed, whoever is asking
_HIDDEN_FIELDS: Dict[str, FrozenSet[str]] = {
    "user": frozenset({"password", "otp", "otp_expires"}),
    "project": frozenset(),
}

_PROJECT_FINANCIALS = frozenset({
    "budget",
    "deposit",
    "installments",
    "completion_percentage",
    "total_payments",
    "exchange_rate",
    "pending_edit",
})


def hidden_fields(entity: str, viewer_role: Optional[Any]) -> FrozenSet[str]:
    role = getattr(viewer_role, "value", viewer_role)
    hidden = _HIDDEN_FIELDS.get(entity, frozenset())
    if entity == "project" and not can_view_financials(role):
        hidden = hidden | _PROJECT_FINANCIALS
    return hidden


def serialize(entity: str, obj: SQLModel, viewer_role: Optional[Any]) -> Dict[str, Any]:
    data = obj.model_dump(mode="json")
    if entity == "project":
        data["total_payments"] = total_payments(
            data.get("installments") or [], data["currency"], data.get("exchange_rate")
        )
    for field in hidden_fields(entity, viewer_role):
        data.pop(field, None)
    return data


def serialize_project(project, viewer_role) -> Dict[str, Any]:
    return serialize("project", project, viewer_role)


def serialize_user(user, viewer_role=None) -> Dict[str, Any]:
    return serialize("user", user, viewer_role)
