"""System narration: the audit trail for workflow transitions.

Every status change appends exactly one system-authored ``ProjectMessage``.
Messages are never updated or removed (see ``models.check_immutable_records``).
"""
import logging

from common.models import MessageRole, MilestoneStatus

from .models import ProjectMessage, new_id, utcnow
from .store import WorkspaceStore

logger = logging.getLogger(__name__)


def emit_system_message(store: WorkspaceStore, project_id: str, body: str) -> ProjectMessage:
    """Append a system message. Store errors propagate."""
    message = store.insert(ProjectMessage(
        id=new_id(),
        project_id=project_id,
        sender_id=None,
        role=MessageRole.SYSTEM.value,
        body=body,
        created_at=utcnow(),
    ))
    logger.debug(f"System message on {project_id}: {body}")
    return message


# ---------------------------------------------------------------------------
# Message bodies
# ---------------------------------------------------------------------------

def client_milestone_body(title: str, status: MilestoneStatus) -> str:
    if status == MilestoneStatus.APPROVED:
        return f"Milestone {title} approved by client."
    return f"Revision requested for {title}."


def talent_milestone_body(title: str, status: MilestoneStatus) -> str:
    return f"Milestone {title} marked {status.value.replace('_', ' ')} by talent."


def delivery_review_body(approved: bool) -> str:
    return f"Delivery {'approved' if approved else 'returned for revision'}."


def delivery_submitted_body(milestone_title: str = None) -> str:
    if milestone_title:
        return f"Delivery submitted for {milestone_title}."
    return "Delivery submitted."


PROJECT_CLOSED_BODY = "Project closed as completed by client."


def talent_assigned_body(talent_name: str) -> str:
    return f"{talent_name} joined the project as talent."
