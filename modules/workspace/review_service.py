"""Delivery review: talent submits work, client approves or asks for revision.

Status Flow:
    submit  → delivery pending,  linked milestone → completed
    approve → delivery approved, linked milestone → approved
    revision→ delivery revision, linked milestone → in_progress

Every call writes one system message. Decisions are not deduplicated:
approving the same delivery twice re-applies the cascade and narrates twice.
Strict mode (``workflow.strict_transitions``) only reviews pending
deliveries and refuses submissions against approved milestones.

Usage:
    from modules.workspace.review_service import (
        submit_talent_delivery,
        review_delivery,
        get_review_queue,
    )
"""
import logging
from typing import Optional

from common.models import DeliveryStatus, MessageRole, MilestoneStatus

from .access import authorize, require_user
from .commands import (
    DeliveryReviewCommand,
    DeliverySubmissionCommand,
    Rejected,
    ReviewDecision,
    TransitionResult,
    parse_command,
)
from .config import get_config
from .errors import NotFound
from .models import DeliverySubmission, new_id, utcnow
from .narration import delivery_review_body, delivery_submitted_body, emit_system_message
from .store import WorkspaceStore

logger = logging.getLogger(__name__)

# decision → (delivery status, cascaded milestone status)
REVIEW_OUTCOMES = {
    ReviewDecision.APPROVE: (DeliveryStatus.APPROVED, MilestoneStatus.APPROVED),
    ReviewDecision.REVISION: (DeliveryStatus.REVISION, MilestoneStatus.IN_PROGRESS),
}


def _strict_enabled(strict: Optional[bool]) -> bool:
    return get_config().workflow.strict_transitions if strict is None else strict


# ---------------------------------------------------------------------------
# 1) Submit: talent → new pending delivery
# ---------------------------------------------------------------------------

def submit_talent_delivery(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    summary: str,
    link: Optional[str] = None,
    milestone_id: Optional[str] = None,
    file_id: Optional[str] = None,
    strict: Optional[bool] = None,
) -> TransitionResult:
    """Record a delivery from the project's talent.

    The linked milestone, if any, is set to completed whatever its
    current status.

    Returns:
        TransitionResult with entity_id = new delivery id
    """
    user_id = require_user(user_id)

    command = parse_command(DeliverySubmissionCommand, {
        "project_id": project_id,
        "summary": summary,
        "link": link,
        "milestone_id": milestone_id,
        "file_id": file_id,
    })
    if isinstance(command, Rejected):
        logger.info(f"Ignored delivery submission: {command.reason}")
        return TransitionResult.rejected(command.reason)

    authorize(store, command.project_id, user_id, MessageRole.TALENT)

    with store.atomic():
        milestone = None
        if command.milestone_id:
            milestone = store.get_milestone(command.project_id, command.milestone_id)
            if milestone is None:
                raise NotFound(
                    f"Milestone {command.milestone_id} not found in project {command.project_id}"
                )
            if _strict_enabled(strict) and milestone.status == MilestoneStatus.APPROVED.value:
                reason = f"Milestone {milestone.title} is already approved"
                logger.info(f"Ignored delivery submission on {command.project_id}: {reason}")
                return TransitionResult.rejected(reason)

        if command.file_id and store.get_file(command.project_id, command.file_id) is None:
            raise NotFound(f"File {command.file_id} not found in project {command.project_id}")

        delivery = store.insert(DeliverySubmission(
            id=new_id(),
            project_id=command.project_id,
            milestone_id=command.milestone_id,
            submitted_by=user_id,
            summary=command.summary,
            link=command.link,
            file_id=command.file_id,
            status=DeliveryStatus.PENDING.value,
            created_at=utcnow(),
        ))

        if milestone is not None:
            store.set_milestone_status(milestone, MilestoneStatus.COMPLETED.value)

        message = emit_system_message(
            store,
            command.project_id,
            delivery_submitted_body(milestone.title if milestone is not None else None),
        )

    logger.info(
        f"Delivery {delivery.id} submitted on {command.project_id} "
        f"(milestone={command.milestone_id or '-'})"
    )
    return TransitionResult(applied=True, entity_id=delivery.id, message_id=message.id)


# ---------------------------------------------------------------------------
# 2) Review: client approves or requests revision
# ---------------------------------------------------------------------------

def review_delivery(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    delivery_id: str,
    decision: str,
    strict: Optional[bool] = None,
) -> TransitionResult:
    """Apply the client's decision to a delivery and its milestone.

    Args:
        decision: 'approve' or 'revision'; anything else is ignored

    Returns:
        TransitionResult with entity_id = delivery id
    """
    user_id = require_user(user_id)

    command = parse_command(DeliveryReviewCommand, {
        "project_id": project_id,
        "delivery_id": delivery_id,
        "decision": decision,
    })
    if isinstance(command, Rejected):
        logger.info(f"Ignored delivery review: {command.reason}")
        return TransitionResult.rejected(command.reason)

    authorize(store, command.project_id, user_id, MessageRole.CLIENT)
    delivery_status, milestone_status = REVIEW_OUTCOMES[command.decision]

    with store.atomic():
        delivery = store.get_delivery(command.project_id, command.delivery_id)
        if delivery is None:
            raise NotFound(
                f"Delivery {command.delivery_id} not found in project {command.project_id}"
            )

        if _strict_enabled(strict) and delivery.status != DeliveryStatus.PENDING.value:
            reason = f"Delivery {delivery.id} already reviewed ('{delivery.status}')"
            logger.info(f"Ignored delivery review on {command.project_id}: {reason}")
            return TransitionResult.rejected(reason)

        store.set_delivery_status(delivery, delivery_status.value)

        if delivery.milestone_id:
            milestone = store.get_milestone(command.project_id, delivery.milestone_id)
            if milestone is not None:
                store.set_milestone_status(milestone, milestone_status.value)
            else:
                logger.warning(
                    f"Delivery {delivery.id} references missing milestone {delivery.milestone_id}"
                )

        message = emit_system_message(
            store,
            command.project_id,
            delivery_review_body(command.decision == ReviewDecision.APPROVE),
        )

    logger.info(
        f"Delivery {delivery.id} on {command.project_id}: {delivery_status.value} "
        f"(milestone {delivery.milestone_id or '-'} → {milestone_status.value})"
    )
    return TransitionResult(applied=True, entity_id=delivery.id, message_id=message.id)


# ---------------------------------------------------------------------------
# 3) Review queue: pending deliveries for the client
# ---------------------------------------------------------------------------

def get_review_queue(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
) -> list[dict]:
    """Pending deliveries of a project, oldest first."""
    user_id = require_user(user_id)
    authorize(store, project_id, user_id, MessageRole.CLIENT)

    items = []
    for delivery in store.list_deliveries(project_id):
        if delivery.status != DeliveryStatus.PENDING.value:
            continue
        milestone = (
            store.get_milestone(project_id, delivery.milestone_id)
            if delivery.milestone_id else None
        )
        items.append({
            "id": delivery.id,
            "summary": delivery.summary,
            "link": delivery.link,
            "file_id": delivery.file_id,
            "milestone_id": delivery.milestone_id,
            "milestone_title": milestone.title if milestone is not None else None,
            "submitted_by": delivery.submitted_by,
            "created_at": delivery.created_at.isoformat() if delivery.created_at else None,
        })

    logger.info(f"Review queue for {project_id}: {len(items)} pending")
    return items
