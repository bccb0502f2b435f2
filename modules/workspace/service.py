"""Workspace service: views and project-level operations around the engines."""
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from common.models import (
    MessageRole,
    MilestoneStatus,
    ProjectStatus,
    TERMINAL_PROJECT_STATUSES,
)

from .access import authorize, authorize_member, require_user
from .commands import TransitionResult
from .errors import ProjectNotClosable
from .models import (
    DeliverySubmission,
    Milestone,
    Project,
    ProjectFile,
    ProjectMessage,
    new_id,
    utcnow,
)
from .narration import PROJECT_CLOSED_BODY, emit_system_message
from .store import WorkspaceStore

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceView:
    """Everything one side of the workspace shows for a project."""
    project: Project
    role: MessageRole
    milestones: list[Milestone] = field(default_factory=list)
    messages: list[ProjectMessage] = field(default_factory=list)
    deliveries: list[DeliverySubmission] = field(default_factory=list)
    files: list[ProjectFile] = field(default_factory=list)

    @property
    def approved_count(self) -> int:
        return sum(1 for m in self.milestones if m.status == MilestoneStatus.APPROVED.value)

    @property
    def can_close(self) -> bool:
        return (
            bool(self.milestones)
            and self.approved_count == len(self.milestones)
            and self.project.status not in {s.value for s in TERMINAL_PROJECT_STATUSES}
        )


def get_workspace(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    role: MessageRole,
) -> WorkspaceView:
    """Load the workspace for the project's client or talent."""
    user_id = require_user(user_id)
    role = MessageRole(role)
    project = authorize(store, project_id, user_id, role)
    return WorkspaceView(
        project=project,
        role=role,
        milestones=store.list_milestones(project_id),
        messages=store.list_messages(project_id),
        deliveries=store.list_deliveries(project_id),
        files=store.list_files(project_id),
    )


def initialize_milestones(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
) -> list[Milestone]:
    """Seed pending milestones from the project's AI plan.

    No-op when the project already has milestones or the plan lists none.
    Plan format: {"milestones": [{"title": ..., "description": ..., "amount": ...}]}
    """
    user_id = require_user(user_id)
    project = authorize(store, project_id, user_id, MessageRole.CLIENT)

    if store.list_milestones(project_id):
        return []

    try:
        plan = json.loads(project.plan or "{}")
    except json.JSONDecodeError:
        logger.warning(f"Project {project_id} has an unreadable plan, no milestones seeded")
        return []

    entries = plan.get("milestones") if isinstance(plan, dict) else None
    if not entries:
        return []

    created = []
    with store.atomic():
        for entry in entries:
            if not isinstance(entry, dict) or not str(entry.get("title") or "").strip():
                continue
            amount = entry.get("amount")
            created.append(store.insert(Milestone(
                id=new_id(),
                project_id=project_id,
                title=str(entry["title"]).strip(),
                description=entry.get("description"),
                amount=str(amount) if amount is not None else None,
                status=MilestoneStatus.PENDING.value,
                created_at=utcnow(),
            )))

    logger.info(f"Seeded {len(created)} milestones for project {project_id}")
    return created


def close_project_as_complete(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
) -> TransitionResult:
    """Client closes the project once every milestone is approved.

    Raises ProjectNotClosable while milestones are missing or unapproved.
    Escrow release happens in the payment layer, not here.
    """
    user_id = require_user(user_id)
    if not project_id:
        return TransitionResult.rejected("project_id: missing")

    project = authorize(store, project_id, user_id, MessageRole.CLIENT)
    if project.status in {s.value for s in TERMINAL_PROJECT_STATUSES}:
        reason = f"Project {project_id} is already {project.status}"
        logger.info(f"Ignored close request: {reason}")
        return TransitionResult.rejected(reason)

    with store.atomic():
        milestones = store.list_milestones(project_id)
        approved = sum(1 for m in milestones if m.status == MilestoneStatus.APPROVED.value)
        if not milestones or approved != len(milestones):
            raise ProjectNotClosable(
                f"Project {project_id}: {approved}/{len(milestones)} milestones approved"
            )

        store.set_project_status(project, ProjectStatus.COMPLETED.value)
        message = emit_system_message(store, project_id, PROJECT_CLOSED_BODY)

    logger.info(f"Project {project_id} closed as completed by client {user_id}")
    return TransitionResult(applied=True, entity_id=project_id, message_id=message.id)


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------

def format_bytes(size: Optional[float]) -> Optional[str]:
    """Human readable size: 512 B, 1.5 KB, 12.0 MB."""
    if size is None or not math.isfinite(size):
        return None
    if size < 1024:
        return f"{int(size)} B"
    kb = size / 1024
    if kb < 1024:
        return f"{kb:.1f} KB"
    return f"{kb / 1024:.1f} MB"


def record_uploaded_file(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    name: str,
    url: str,
    size_bytes: Optional[float] = None,
    content_type: Optional[str] = None,
    label: Optional[str] = None,
) -> ProjectFile:
    """Store metadata for a file the upload service has accepted.

    Either side of the workspace may upload.
    """
    user_id = require_user(user_id)
    if not name or not url:
        raise ValueError("Uploaded file needs a name and a url")

    _, role = authorize_member(store, project_id, user_id)
    record = store.insert(ProjectFile(
        id=new_id(),
        project_id=project_id,
        name=name,
        url=url,
        size=format_bytes(size_bytes),
        type=content_type,
        label=label,
        uploaded_by=user_id,
        created_at=utcnow(),
    ))
    logger.info(f"File {record.id} ({name}, {record.size}) uploaded to {project_id} by {role.value}")
    return record
