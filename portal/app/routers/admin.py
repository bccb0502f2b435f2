"""
Admin API Endpoints (super admin only)
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from modules.workspace.admin_service import (
    admin_list_audit_logs,
    admin_list_projects,
    admin_list_users,
    admin_set_user_suspension,
    admin_update_project_status,
)
from modules.workspace.store import SqlAlchemyStore

from ..auth.jwt import get_current_user_id
from ..db import get_store
from .workspace import MutationResponse, ProjectResponse

router = APIRouter()


# Pydantic schemas
class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class AdminProjectResponse(ProjectResponse):
    created_at: datetime
    updated_at: datetime


class ProjectPage(BaseModel):
    items: List[AdminProjectResponse]
    pagination: Pagination


class ProjectStatusUpdate(BaseModel):
    status: str = Field(min_length=1)


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    admin_user_id: str
    action: str
    target_type: str
    target_id: Optional[str]
    details: Optional[dict]
    created_at: datetime


class AuditLogPage(BaseModel):
    items: List[AuditLogResponse]
    pagination: Pagination


@router.get("/projects", response_model=ProjectPage)
def list_projects(
    page: int = Query(1, ge=1),
    q: Optional[str] = None,
    status: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Search projects, newest first (status=all for no filter)"""
    rows, pagination = admin_list_projects(store, user_id, page=page, q=q, status=status)
    return ProjectPage(
        items=[AdminProjectResponse.model_validate(p) for p in rows],
        pagination=Pagination(**pagination),
    )


@router.patch("/projects/{project_id}", response_model=MutationResponse)
def update_project(
    project_id: str,
    update: ProjectStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    result = admin_update_project_status(store, user_id, project_id, update.status)
    return MutationResponse(
        applied=result.applied,
        reason=result.reason,
        entity_id=result.entity_id,
        revalidate="/admin/projects" if result.applied else None,
    )


@router.get("/audit-logs", response_model=AuditLogPage)
def list_audit_logs(
    page: int = Query(1, ge=1),
    action: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    rows, pagination = admin_list_audit_logs(store, user_id, page=page, action=action)
    return AuditLogPage(
        items=[AuditLogResponse.model_validate(r) for r in rows],
        pagination=Pagination(**pagination),
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class AdminUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: Optional[str]
    role: str
    is_active: bool
    suspended_at: Optional[datetime]
    suspension_reason: Optional[str]
    created_at: datetime


class UserPage(BaseModel):
    items: List[AdminUserResponse]
    pagination: Pagination


class SuspensionUpdate(BaseModel):
    suspend: bool
    reason: Optional[str] = None


@router.get("/users", response_model=UserPage)
def list_users(
    page: int = Query(1, ge=1),
    q: Optional[str] = None,
    role: Optional[str] = None,
    suspension: str = Query("all", pattern="^(all|active|suspended)$"),
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Search users by email or name, newest first"""
    rows, pagination = admin_list_users(
        store, user_id, page=page, q=q, role=role, suspension=suspension
    )
    return UserPage(
        items=[AdminUserResponse.model_validate(u) for u in rows],
        pagination=Pagination(**pagination),
    )


@router.post("/users/{target_id}/suspension", response_model=MutationResponse)
def set_user_suspension(
    target_id: str,
    update: SuspensionUpdate,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Suspend or reinstate an account; 403 for the caller's own account"""
    result = admin_set_user_suspension(
        store, user_id, target_id, update.suspend, reason=update.reason
    )
    return MutationResponse(
        applied=result.applied,
        reason=result.reason,
        entity_id=result.entity_id,
        revalidate="/admin/users" if result.applied else None,
    )
