"""
Workspace API Endpoints

Form posts from the client and talent workspace pages. Invalid form input
is answered with ``applied: false`` and a reason, not an HTTP error.
"""

import enum
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Form
from pydantic import BaseModel, ConfigDict, Field

from common.models import MessageRole
from modules.workspace.applicants import accept_applicant, list_applicants, submit_application
from modules.workspace.commands import TransitionResult
from modules.workspace.messaging import send_client_message, send_talent_message
from modules.workspace.review_service import (
    get_review_queue,
    review_delivery,
    submit_talent_delivery,
)
from modules.workspace.service import (
    close_project_as_complete,
    get_workspace,
    initialize_milestones,
    record_uploaded_file,
)
from modules.workspace.store import SqlAlchemyStore
from modules.workspace.transitions import (
    client_set_milestone_status,
    talent_set_milestone_status,
)

from ..auth.jwt import get_current_user_id
from ..db import get_store

router = APIRouter()


class Side(str, enum.Enum):
    CLIENT = "client"
    TALENT = "talent"


# Pydantic schemas
class MutationResponse(BaseModel):
    applied: bool
    reason: Optional[str] = None
    entity_id: Optional[str] = None
    revalidate: Optional[str] = None


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    status: str
    client_id: str
    talent_id: Optional[str]
    budget: Optional[str]
    deadline: Optional[datetime]


class MilestoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str]
    amount: Optional[str]
    status: str
    due_date: Optional[datetime]
    created_at: datetime


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    seq: int
    sender_id: Optional[str]
    role: str
    body: str
    created_at: datetime


class DeliveryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    milestone_id: Optional[str]
    submitted_by: str
    summary: str
    link: Optional[str]
    file_id: Optional[str]
    status: str
    created_at: datetime


class FileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    url: str
    size: Optional[str]
    type: Optional[str]
    label: Optional[str]
    uploaded_by: str
    created_at: datetime


class WorkspaceResponse(BaseModel):
    role: str
    project: ProjectResponse
    milestones: List[MilestoneResponse]
    messages: List[MessageResponse]
    deliveries: List[DeliveryResponse]
    files: List[FileResponse]
    approved_count: int
    can_close: bool


class FileUpload(BaseModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    size_bytes: Optional[float] = None
    content_type: Optional[str] = None
    label: Optional[str] = None


def _workspace_path(side: Side, project_id: str) -> str:
    return f"/dashboard/{side.value}/work/{project_id}"


def _respond(result: TransitionResult, side: Side, project_id: str) -> MutationResponse:
    return MutationResponse(
        applied=result.applied,
        reason=result.reason,
        entity_id=result.entity_id,
        revalidate=_workspace_path(side, project_id) if result.applied else None,
    )


@router.get("/{side}/{project_id}", response_model=WorkspaceResponse)
def read_workspace(
    side: Side,
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Workspace view for the project's client or talent"""
    view = get_workspace(store, user_id, project_id, MessageRole(side.value))
    return WorkspaceResponse(
        role=view.role.value,
        project=ProjectResponse.model_validate(view.project),
        milestones=[MilestoneResponse.model_validate(m) for m in view.milestones],
        messages=[MessageResponse.model_validate(m) for m in view.messages],
        deliveries=[DeliveryResponse.model_validate(d) for d in view.deliveries],
        files=[FileResponse.model_validate(f) for f in view.files],
        approved_count=view.approved_count,
        can_close=view.can_close,
    )


@router.post("/{side}/{project_id}/milestones/{milestone_id}/status", response_model=MutationResponse)
def update_milestone_status(
    side: Side,
    project_id: str,
    milestone_id: str,
    status: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Client approves / requests revision, talent starts / completes"""
    apply = client_set_milestone_status if side == Side.CLIENT else talent_set_milestone_status
    result = apply(store, user_id, project_id, milestone_id, status)
    return _respond(result, side, project_id)


@router.post("/{side}/{project_id}/messages", response_model=MutationResponse)
def post_message(
    side: Side,
    project_id: str,
    message: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    send = send_client_message if side == Side.CLIENT else send_talent_message
    result = send(store, user_id, project_id, message)
    return _respond(result, side, project_id)


@router.post("/client/{project_id}/deliveries/{delivery_id}/review", response_model=MutationResponse)
def post_delivery_review(
    project_id: str,
    delivery_id: str,
    decision: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    result = review_delivery(store, user_id, project_id, delivery_id, decision)
    return _respond(result, Side.CLIENT, project_id)


@router.get("/client/{project_id}/review-queue")
def read_review_queue(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Pending deliveries awaiting the client's decision"""
    return get_review_queue(store, user_id, project_id)


@router.post("/talent/{project_id}/deliveries", response_model=MutationResponse)
def post_delivery(
    project_id: str,
    summary: Optional[str] = Form(None),
    link: Optional[str] = Form(None),
    milestone_id: Optional[str] = Form(None, alias="milestoneId"),
    file_id: Optional[str] = Form(None, alias="fileId"),
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    result = submit_talent_delivery(
        store, user_id, project_id, summary,
        link=link, milestone_id=milestone_id, file_id=file_id,
    )
    return _respond(result, Side.TALENT, project_id)


@router.post("/client/{project_id}/close", response_model=MutationResponse)
def close_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Close as completed; 409 while milestones are unapproved"""
    result = close_project_as_complete(store, user_id, project_id)
    return _respond(result, Side.CLIENT, project_id)


@router.post("/client/{project_id}/milestones/initialize", response_model=List[MilestoneResponse])
def seed_milestones(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Seed milestones from the project plan (no-op if any exist)"""
    created = initialize_milestones(store, user_id, project_id)
    return [MilestoneResponse.model_validate(m) for m in created]


@router.post("/{project_id}/files", response_model=FileResponse, status_code=201)
def upload_file(
    project_id: str,
    upload: FileUpload,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Record metadata for a file accepted by the upload service"""
    record = record_uploaded_file(
        store, user_id, project_id,
        name=upload.name,
        url=upload.url,
        size_bytes=upload.size_bytes,
        content_type=upload.content_type,
        label=upload.label,
    )
    return FileResponse.model_validate(record)


# ---------------------------------------------------------------------------
# Applications and talent assignment
# ---------------------------------------------------------------------------

class ApplicantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    proposal: str
    budget: Optional[str]
    timeline: Optional[str]
    relevant_links: Optional[str]
    status: str
    created_at: datetime


@router.post("/talent/{project_id}/applications", response_model=MutationResponse)
def post_application(
    project_id: str,
    proposal: Optional[str] = Form(None),
    budget: Optional[str] = Form(None),
    timeline: Optional[str] = Form(None),
    links: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Talent applies to an open project"""
    result = submit_application(
        store, user_id, project_id, proposal,
        budget=budget, timeline=timeline, links=links,
    )
    return MutationResponse(
        applied=result.applied,
        reason=result.reason,
        entity_id=result.entity_id,
        revalidate=f"/dashboard/talent/jobs/{project_id}" if result.applied else None,
    )


@router.get("/client/{project_id}/applicants", response_model=List[ApplicantResponse])
def read_applicants(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    return [ApplicantResponse.model_validate(a) for a in list_applicants(store, user_id, project_id)]


@router.post("/client/{project_id}/applicants/{applicant_id}/accept", response_model=MutationResponse)
def post_accept_applicant(
    project_id: str,
    applicant_id: str,
    user_id: str = Depends(get_current_user_id),
    store: SqlAlchemyStore = Depends(get_store),
):
    """Assign the applicant as talent; refused once the project has one"""
    result = accept_applicant(store, user_id, project_id, applicant_id)
    return MutationResponse(
        applied=result.applied,
        reason=result.reason,
        entity_id=result.entity_id,
        revalidate=f"/dashboard/client/projects/{project_id}" if result.applied else None,
    )
