"""Project Workspace (escrow marketplace).

Shared space where a client and the assigned talent move milestones
through their lifecycle, submit and review deliveries, and chat. Every
status change is narrated into the append-only project timeline.

Layers:
  store / database   persistence (SQLAlchemy or in-memory)
  access             caller-vs-project authorization
  transitions        per-role milestone state machines
  applicants         talent applications and assignment
  review_service     delivery submit / review cascade
  service            workspace view, plan seeding, close, uploads
  admin_service      super admin oversight of users and projects, with audit log
"""

from .models import (
    AdminAuditLog,
    Applicant,
    Base,
    DeliverySubmission,
    Milestone,
    Project,
    ProjectFile,
    ProjectMessage,
    User,
)
from .database import get_engine, get_session, init_db
from .store import InMemoryStore, SqlAlchemyStore, WorkspaceStore, create_store
from .errors import (
    Forbidden,
    ImmutableRecordError,
    NotFound,
    ProjectNotClosable,
    Unauthenticated,
    WorkspaceError,
)
from .commands import Rejected, ReviewDecision, TransitionResult, parse_command
from .transitions import client_set_milestone_status, talent_set_milestone_status
from .review_service import get_review_queue, review_delivery, submit_talent_delivery
from .messaging import send_client_message, send_talent_message
from .applicants import accept_applicant, list_applicants, submit_application
from .service import (
    WorkspaceView,
    close_project_as_complete,
    get_workspace,
    initialize_milestones,
    record_uploaded_file,
)
from .admin_service import (
    admin_list_audit_logs,
    admin_list_projects,
    admin_list_users,
    admin_set_user_suspension,
    admin_update_project_status,
)

__all__ = [
    # Models
    "AdminAuditLog",
    "Applicant",
    "Base",
    "DeliverySubmission",
    "Milestone",
    "Project",
    "ProjectFile",
    "ProjectMessage",
    "User",
    # Database / store
    "get_engine",
    "get_session",
    "init_db",
    "InMemoryStore",
    "SqlAlchemyStore",
    "WorkspaceStore",
    "create_store",
    # Errors
    "Forbidden",
    "ImmutableRecordError",
    "NotFound",
    "ProjectNotClosable",
    "Unauthenticated",
    "WorkspaceError",
    # Commands
    "Rejected",
    "ReviewDecision",
    "TransitionResult",
    "parse_command",
    # Workflow
    "client_set_milestone_status",
    "talent_set_milestone_status",
    "get_review_queue",
    "review_delivery",
    "submit_talent_delivery",
    "send_client_message",
    "send_talent_message",
    # Applications
    "accept_applicant",
    "list_applicants",
    "submit_application",
    # Workspace service
    "WorkspaceView",
    "close_project_as_complete",
    "get_workspace",
    "initialize_milestones",
    "record_uploaded_file",
    # Admin
    "admin_list_audit_logs",
    "admin_list_projects",
    "admin_list_users",
    "admin_set_user_suspension",
    "admin_update_project_status",
]
