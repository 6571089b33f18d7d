"""
Project Endpoints Module

CRUD for projects plus the edit approval workflow: moderators stage changes to a
project's budget or installments, admins approve or reject them. Financial fields
are stripped from responses for roles that may not see them.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from app.api import deps
from app.api.serializers import serialize_project
from app.core.errors import NotFound
from app.db.session import get_db
from app.models.client import Client
from app.models.project import Project, ProjectStatus
from app.models.user import User
from app.schemas.project import EditDecision, EditRequest, ProjectCreate, ProjectUpdate
from app.services import projects as lifecycle

router = APIRouter()


def _get_project(db: Session, project_id: str) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise NotFound("Project not found")
    return project


def _check_client(db: Session, client_id: Optional[str]) -> None:
    if client_id and not db.get(Client, client_id):
        raise NotFound("Client not found")


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    project_in: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin_or_moderator),
) -> Dict[str, Any]:
    """
    Create a new project.

    New projects always start as "planned"; the completion percentage is derived
    from the initial installments.
    """
    _check_client(db, project_in.client_id)
    project = lifecycle.build_project(project_in, current_user.id)
    db.add(project)
    db.commit()
    db.refresh(project)
    return serialize_project(project, current_user.role)


@router.get("")
def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    client: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
) -> List[Dict[str, Any]]:
    """
    Retrieve projects, optionally filtered.

    Args:
        status: Only projects in this status
        client: Client id, or a case-insensitive fragment of the client's name or email
    """
    statement = select(Project)
    if status_filter is not None:
        statement = statement.where(Project.status == status_filter.value)
    if client:
        pattern = f"%{client.lower()}%"
        matching_clients = select(Client.id).where(
            or_(
                col(Client.id) == client,
                func.lower(Client.name).like(pattern),
                func.lower(Client.email).like(pattern),
            )
        )
        statement = statement.where(col(Project.client_id).in_(matching_clients))

    statement = statement.order_by(col(Project.created_at).desc()).offset(skip).limit(limit)
    projects = db.exec(statement).all()
    return [serialize_project(p, current_user.role) for p in projects]


@router.get("/{project_id}")
def read_project(
    project_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
) -> Dict[str, Any]:
    project = _get_project(db, project_id)
    return serialize_project(project, current_user.role)


@router.patch("/{project_id}")
def update_project(
    project_id: str,
    project_update: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
) -> Dict[str, Any]:
    """
    Partially update a project (admin only).

    Completion is recomputed whenever budget, installments, currency or exchange rate change.
    """
    project = _get_project(db, project_id)
    if "client_id" in project_update.model_fields_set:
        _check_client(db, project_update.client_id)
    changes = lifecycle.plan_update(project, project_update, current_user.id)
    project = lifecycle.save_changes(db, project, changes)
    return serialize_project(project, current_user.role)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
):
    project = _get_project(db, project_id)
    db.delete(project)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/request-edit")
def request_edit(
    project_id: str,
    edit_in: EditRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_moderator),
) -> Dict[str, Any]:
    """
    Stage a change to the project's budget and/or installments for admin approval.

    Raises:
        400: nothing to change, or an edit is already pending
        404: project not found
        409: the project changed while the request was being processed
    """
    project = _get_project(db, project_id)
    project = lifecycle.submit_edit_request(db, project, edit_in.to_patch(), current_user.id)
    return {
        "message": "Edit request submitted for admin approval",
        "project": serialize_project(project, current_user.role),
    }


@router.post("/{project_id}/approve-edit")
def approve_edit(
    project_id: str,
    decision: EditDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_admin),
) -> Dict[str, Any]:
    """
    Approve (apply) or reject (discard) the pending edit.

    Raises:
        400: no pending edit request
        404: project not found
        409: the project changed while the request was being processed
    """
    project = _get_project(db, project_id)
    project = lifecycle.resolve_edit_request(
        db, project, decision.approve, decision.notes, current_user.id
    )
    return {
        "message": "Edit approved and applied" if decision.approve else "Edit rejected",
        "project": serialize_project(project, current_user.role),
    }
