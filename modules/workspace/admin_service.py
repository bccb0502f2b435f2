"""Super admin oversight of users and projects.

Every admin mutation writes an ``AdminAuditLog`` row in the same unit of
work as the change itself.

Usage:
    from modules.workspace.admin_service import admin_list_projects
    rows, pagination = admin_list_projects(store, admin_id, page=2, status="active")
"""
import logging
import math
from typing import Optional

from common.models import ProjectStatus

from .access import require_admin
from .commands import TransitionResult
from .config import get_config
from .errors import Forbidden, NotFound
from .models import AdminAuditLog, Project, User, new_id, utcnow
from .store import WorkspaceStore

logger = logging.getLogger(__name__)


def _log_admin_action(
    store: WorkspaceStore,
    admin_user_id: str,
    action: str,
    target_type: str,
    target_id: Optional[str] = None,
    details: Optional[dict] = None,
) -> AdminAuditLog:
    entry = store.insert(AdminAuditLog(
        id=new_id(),
        admin_user_id=admin_user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
        created_at=utcnow(),
    ))
    logger.info(f"Admin {admin_user_id}: {action} {target_type}/{target_id}")
    return entry


def _pagination(page: int, page_size: int, total: int) -> dict:
    return {
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": max(1, math.ceil(total / page_size)),
    }


def admin_update_project_status(
    store: WorkspaceStore,
    admin_id: Optional[str],
    project_id: str,
    status: str,
) -> TransitionResult:
    """Set any project status, bypassing the workspace rules."""
    admin = require_admin(store, admin_id)

    try:
        next_status = ProjectStatus(status)
    except ValueError:
        reason = f"Unknown project status '{status}'"
        logger.info(f"Ignored admin project update: {reason}")
        return TransitionResult.rejected(reason)

    with store.atomic():
        project = store.get_project(project_id)
        if project is None:
            raise NotFound(f"Project {project_id} not found")

        previous = project.status
        store.set_project_status(project, next_status.value)
        entry = _log_admin_action(
            store,
            admin.id,
            "update_project_status",
            "project",
            project_id,
            {"previous_status": previous, "next_status": next_status.value},
        )

    return TransitionResult(applied=True, entity_id=project_id, message_id=entry.id)


def admin_list_projects(
    store: WorkspaceStore,
    admin_id: Optional[str],
    page: int = 1,
    q: Optional[str] = None,
    status: Optional[str] = None,
) -> tuple[list[Project], dict]:
    """One page of projects, newest first.

    Args:
        q: substring of title or description
        status: project status, 'all' or None for no filter
    """
    require_admin(store, admin_id)
    page_size = get_config().admin.projects_page_size
    page = max(1, int(page or 1))
    q = (q or "").strip() or None
    if status == "all":
        status = None

    rows, total = store.search_projects(q, status, page_size, (page - 1) * page_size)
    return rows, _pagination(page, page_size, total)


def admin_list_audit_logs(
    store: WorkspaceStore,
    admin_id: Optional[str],
    page: int = 1,
    action: Optional[str] = None,
) -> tuple[list[AdminAuditLog], dict]:
    require_admin(store, admin_id)
    page_size = get_config().admin.audit_page_size
    page = max(1, int(page or 1))
    action = (action or "").strip() or None

    rows, total = store.list_audit_logs(action, page_size, (page - 1) * page_size)
    return rows, _pagination(page, page_size, total)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

SUSPENSION_FILTERS = {"all": None, "active": False, "suspended": True}

DEFAULT_SUSPENSION_REASON = "Suspended by super admin."


def admin_list_users(
    store: WorkspaceStore,
    admin_id: Optional[str],
    page: int = 1,
    q: Optional[str] = None,
    role: Optional[str] = None,
    suspension: str = "all",
) -> tuple[list[User], dict]:
    """One page of users, newest first.

    Args:
        q: substring of email or name
        role: user role, 'all' or None for no filter
        suspension: 'all', 'active' or 'suspended'; anything else means 'all'
    """
    require_admin(store, admin_id)
    page_size = get_config().admin.users_page_size
    page = max(1, int(page or 1))
    q = (q or "").strip() or None
    role = (role or "").strip() or None
    if role == "all":
        role = None
    suspended = SUSPENSION_FILTERS.get(suspension or "all")

    rows, total = store.search_users(q, role, suspended, page_size, (page - 1) * page_size)
    return rows, _pagination(page, page_size, total)


def admin_set_user_suspension(
    store: WorkspaceStore,
    admin_id: Optional[str],
    user_id: str,
    suspend: bool,
    reason: Optional[str] = None,
) -> TransitionResult:
    """Suspend or reinstate a user account.

    Admins cannot suspend their own account.
    """
    admin = require_admin(store, admin_id)
    if user_id == admin.id:
        raise Forbidden("You cannot suspend your own account")

    reason = (reason or "").strip() or None
    with store.atomic():
        user = store.get_user(user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")

        store.set_user_suspension(
            user, suspend, (reason or DEFAULT_SUSPENSION_REASON) if suspend else None
        )
        entry = _log_admin_action(
            store,
            admin.id,
            "suspend_user" if suspend else "unsuspend_user",
            "user",
            user_id,
            {"reason": reason},
        )

    return TransitionResult(applied=True, entity_id=user_id, message_id=entry.id)
