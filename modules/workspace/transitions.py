"""Milestone transition engine.

Client and talent hold disjoint authority over milestone status, so each
role gets its own state machine over the shared ``MilestoneStatus`` values:

    client:  → approved            (accept the work)
             → in_progress         (send back for revision)
    talent:  → in_progress         (start / resume)
             → completed           (submit for review)

Lenient mode (default) allows a role's targets from any current status and
overwrites unconditionally, last write wins. Strict mode
(``workflow.strict_transitions``) additionally requires the current status
to be listed in the role's strict table.

Usage:
    from modules.workspace.transitions import client_set_milestone_status
    result = client_set_milestone_status(store, user_id, project_id, milestone_id, "approved")
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from common.models import MessageRole, MilestoneStatus

from .access import authorize, require_user
from .commands import MilestoneStatusCommand, Rejected, TransitionResult, parse_command
from .config import get_config
from .errors import NotFound
from .narration import client_milestone_body, emit_system_message, talent_milestone_body
from .store import WorkspaceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleFSM:
    """Legal milestone transitions for one role."""
    role: MessageRole
    targets: frozenset
    strict_table: dict = field(default_factory=dict)

    @property
    def lenient_table(self) -> dict:
        return {current: self.targets for current in MilestoneStatus}

    def table(self, strict: bool) -> dict:
        return self.strict_table if strict else self.lenient_table

    def allows_target(self, target: MilestoneStatus) -> bool:
        return target in self.targets

    def allows(self, current: MilestoneStatus, target: MilestoneStatus, strict: bool = False) -> bool:
        if not self.allows_target(target):
            return False
        return target in self.table(strict).get(current, frozenset())


CLIENT_MILESTONE_FSM = RoleFSM(
    role=MessageRole.CLIENT,
    targets=frozenset({MilestoneStatus.APPROVED, MilestoneStatus.IN_PROGRESS}),
    strict_table={
        MilestoneStatus.COMPLETED: frozenset({MilestoneStatus.APPROVED, MilestoneStatus.IN_PROGRESS}),
    },
)

TALENT_MILESTONE_FSM = RoleFSM(
    role=MessageRole.TALENT,
    targets=frozenset({MilestoneStatus.IN_PROGRESS, MilestoneStatus.COMPLETED}),
    strict_table={
        MilestoneStatus.PENDING: frozenset({MilestoneStatus.IN_PROGRESS}),
        MilestoneStatus.IN_PROGRESS: frozenset({MilestoneStatus.COMPLETED}),
    },
)


def _strict_enabled(strict: Optional[bool]) -> bool:
    return get_config().workflow.strict_transitions if strict is None else strict


def _apply_milestone_status(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    milestone_id: str,
    status: str,
    fsm: RoleFSM,
    body_for: Callable[[str, MilestoneStatus], str],
    strict: Optional[bool],
) -> TransitionResult:
    user_id = require_user(user_id)

    command = parse_command(MilestoneStatusCommand, {
        "project_id": project_id,
        "milestone_id": milestone_id,
        "status": status,
    })
    if isinstance(command, Rejected):
        logger.info(f"Ignored {fsm.role.value} milestone update: {command.reason}")
        return TransitionResult.rejected(command.reason)

    if not fsm.allows_target(command.status):
        reason = f"{fsm.role.value} may not set milestone status '{command.status.value}'"
        logger.info(f"Ignored milestone update on {command.project_id}: {reason}")
        return TransitionResult.rejected(reason)

    authorize(store, command.project_id, user_id, fsm.role)

    with store.atomic():
        milestone = store.get_milestone(command.project_id, command.milestone_id)
        if milestone is None:
            raise NotFound(
                f"Milestone {command.milestone_id} not found in project {command.project_id}"
            )

        current = MilestoneStatus(milestone.status)
        if _strict_enabled(strict) and not fsm.allows(current, command.status, strict=True):
            reason = (
                f"{fsm.role.value} may not move milestone from "
                f"'{current.value}' to '{command.status.value}'"
            )
            logger.info(f"Ignored milestone update on {command.project_id}: {reason}")
            return TransitionResult.rejected(reason)

        title = milestone.title
        store.set_milestone_status(milestone, command.status.value)
        message = emit_system_message(store, command.project_id, body_for(title, command.status))

    logger.info(
        f"Milestone {milestone.id} ({title}): {current.value} → {command.status.value} "
        f"by {fsm.role.value} {user_id}"
    )
    return TransitionResult(applied=True, entity_id=milestone.id, message_id=message.id)


def client_set_milestone_status(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    milestone_id: str,
    status: str,
    strict: Optional[bool] = None,
) -> TransitionResult:
    """Client approves a milestone or sends it back to in_progress.

    Any status outside {approved, in_progress} is ignored without writing.
    Raises Unauthenticated / NotFound / Forbidden.
    """
    return _apply_milestone_status(
        store, user_id, project_id, milestone_id, status,
        CLIENT_MILESTONE_FSM, client_milestone_body, strict,
    )


def talent_set_milestone_status(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    milestone_id: str,
    status: str,
    strict: Optional[bool] = None,
) -> TransitionResult:
    """Talent starts a milestone or marks it completed for review.

    Any status outside {in_progress, completed} is ignored without writing.
    Raises Unauthenticated / NotFound / Forbidden.
    """
    return _apply_milestone_status(
        store, user_id, project_id, milestone_id, status,
        TALENT_MILESTONE_FSM, talent_milestone_body, strict,
    )
