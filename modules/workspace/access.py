"""Workspace access guard.

Identity is resolved upstream (JWT in the portal, ``--as`` in the CLI);
these checks only compare the caller's id against project ownership.
All read-only.
"""
import logging
from typing import Optional

from common.models import MessageRole, UserRole

from .errors import Forbidden, NotFound, Unauthenticated
from .models import Project, User
from .store import WorkspaceStore

logger = logging.getLogger(__name__)

WORKSPACE_ROLES = {MessageRole.CLIENT, MessageRole.TALENT}


def require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise Unauthenticated("No caller identity")
    return user_id


def authorize(
    store: WorkspaceStore,
    project_id: str,
    user_id: str,
    required_role: MessageRole,
) -> Project:
    """Load the project and check the caller holds ``required_role`` on it."""
    required_role = MessageRole(required_role)
    if required_role not in WORKSPACE_ROLES:
        raise ValueError(f"Not a workspace role: {required_role.value}")

    project = store.get_project(project_id)
    if project is None:
        raise NotFound(f"Project {project_id} not found")

    owner = project.client_id if required_role == MessageRole.CLIENT else project.talent_id
    if owner is None or owner != user_id:
        logger.warning(
            f"Denied {required_role.value} access to project {project_id} for user {user_id}"
        )
        raise Forbidden(f"User {user_id} is not the {required_role.value} of project {project_id}")
    return project


def authorize_member(
    store: WorkspaceStore,
    project_id: str,
    user_id: str,
) -> tuple[Project, MessageRole]:
    """Client or talent of the project; returns the role the caller holds."""
    project = store.get_project(project_id)
    if project is None:
        raise NotFound(f"Project {project_id} not found")
    if project.client_id == user_id:
        return project, MessageRole.CLIENT
    if project.talent_id is not None and project.talent_id == user_id:
        return project, MessageRole.TALENT
    logger.warning(f"Denied workspace access to project {project_id} for user {user_id}")
    raise Forbidden(f"User {user_id} is not a member of project {project_id}")


def require_admin(store: WorkspaceStore, user_id: Optional[str]) -> User:
    user_id = require_user(user_id)
    user = store.get_user(user_id)
    if user is None or not user.is_active:
        raise Unauthenticated(f"Unknown or inactive user {user_id}")
    if user.role != UserRole.SUPER_ADMIN.value:
        raise Forbidden(f"User {user_id} is not a super admin")
    return user
