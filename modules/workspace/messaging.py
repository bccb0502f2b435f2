"""Workspace chat between client and talent. Pure append, no state change."""
import logging
from typing import Optional

from common.models import MessageRole

from .access import authorize, require_user
from .commands import MessageCommand, Rejected, TransitionResult, parse_command
from .models import ProjectMessage, new_id, utcnow
from .store import WorkspaceStore

logger = logging.getLogger(__name__)


def _send_message(
    store: WorkspaceStore,
    user_id: Optional[str],
    project_id: str,
    body: str,
    role: MessageRole,
) -> TransitionResult:
    user_id = require_user(user_id)

    command = parse_command(MessageCommand, {"project_id": project_id, "body": body})
    if isinstance(command, Rejected):
        logger.debug(f"Ignored {role.value} message: {command.reason}")
        return TransitionResult.rejected(command.reason)

    authorize(store, command.project_id, user_id, role)

    message = store.insert(ProjectMessage(
        id=new_id(),
        project_id=command.project_id,
        sender_id=user_id,
        role=role.value,
        body=command.body,
        created_at=utcnow(),
    ))
    logger.debug(f"{role.value} message {message.id} on {command.project_id}")
    return TransitionResult(applied=True, entity_id=message.id, message_id=message.id)


def send_client_message(store, user_id, project_id, body) -> TransitionResult:
    return _send_message(store, user_id, project_id, body, MessageRole.CLIENT)


def send_talent_message(store, user_id, project_id, body) -> TransitionResult:
    return _send_message(store, user_id, project_id, body, MessageRole.TALENT)
