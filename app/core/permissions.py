"""Role-based access checks. Roles are matched exactly; there is no hierarchy."""
from typing import Iterable

# Roles allowed to see project financials (budget, installments, completion)
FINANCIAL_VIEWER_ROLES = ("admin", "moderator")


def _value(role) -> str:
    return getattr(role, "value", role)


def is_allowed(role, allowed_roles: Iterable) -> bool:
    """Check whether a role is a member of the allow-list for an operation."""
    if role is None:
        return False
    return _value(role) in {_value(r) for r in allowed_roles}


def can_view_financials(role) -> bool:
    return is_allowed(role, FINANCIAL_VIEWER_ROLES)
