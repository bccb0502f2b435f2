"""SQLAlchemy 2.0 models for the project workspace.

Tables:
- users:                 clients, talent, company accounts, super admins
- projects:              commissioned work, one client, at most one talent
- applicants:            talent applications to a project
- milestones:            deliverable units of a project
- project_files:         metadata of files uploaded to the workspace
- delivery_submissions:  work product submitted by the talent
- project_messages:      append-only timeline (chat + system narration)
- admin_audit_logs:      audit trail for admin actions
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    event,
    inspect,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
)

from common.models import (
    ApplicantStatus,
    DeliveryStatus,
    MilestoneStatus,
    ProjectStatus,
    UserRole,
)

from .errors import ImmutableRecordError


def new_id() -> str:
    """Opaque text primary key."""
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Shared declarative base for all workspace models."""
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(32), nullable=False, default=UserRole.CLIENT.value
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)  # False = suspended
    suspended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    suspension_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class Project(Base):
    """A unit of commissioned work.

    Exactly one client owner, at most one assigned talent.
    ``plan`` holds the JSON plan produced during AI-assisted planning;
    milestones are seeded from it.
    """
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProjectStatus.DRAFT.value
    )
    client_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    talent_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=True
    )
    budget: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    plan: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    client: Mapped["User"] = relationship(foreign_keys=[client_id])
    talent: Mapped[Optional["User"]] = relationship(foreign_keys=[talent_id])

    # Children are removed by the database cascade, never by the ORM,
    # so deleting a project does not touch the message log row by row.
    milestones: Mapped[list["Milestone"]] = relationship(
        back_populates="project",
        passive_deletes=True,
        order_by="Milestone.created_at",
    )
    messages: Mapped[list["ProjectMessage"]] = relationship(
        order_by="ProjectMessage.seq",
        viewonly=True,
    )
    applicants: Mapped[list["Applicant"]] = relationship(
        back_populates="project",
        passive_deletes=True,
        order_by="Applicant.created_at",
    )

    __table_args__ = (
        Index("ix_projects_status", "status"),
        Index("ix_projects_client", "client_id"),
        Index("ix_projects_talent", "talent_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Project(id={self.id}, "
            f"title='{self.title[:50]}', "
            f"status='{self.status}')>"
        )


class Applicant(Base):
    """A talent's application to a project. One per user and project."""
    __tablename__ = "applicants"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    proposal: Mapped[str] = mapped_column(Text, nullable=False)
    budget: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timeline: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    relevant_links: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ApplicantStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    project: Mapped["Project"] = relationship(back_populates="applicants")

    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_applicants_project_user"),
        Index("ix_applicants_project", "project_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Applicant(project={self.project_id}, "
            f"user={self.user_id}, "
            f"status='{self.status}')>"
        )


class Milestone(Base):
    __tablename__ = "milestones"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    amount: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=MilestoneStatus.PENDING.value
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    project: Mapped["Project"] = relationship(back_populates="milestones")

    __table_args__ = (
        Index("ix_milestones_project", "project_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Milestone(id={self.id}, "
            f"title='{self.title[:50]}', "
            f"status='{self.status}')>"
        )


class ProjectFile(Base):
    """Metadata of a file stored by the upload service."""
    __tablename__ = "project_files"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    size: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    label: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_files_project", "project_id"),
    )

    def __repr__(self) -> str:
        return f"<ProjectFile(id={self.id}, name='{self.name}', size='{self.size}')>"


class DeliverySubmission(Base):
    """Work product submitted by the talent.

    Immutable once written except for ``status``.
    """
    __tablename__ = "delivery_submissions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    milestone_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("milestones.id"), nullable=True
    )
    submitted_by: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=False
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("project_files.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=DeliveryStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    milestone: Mapped[Optional["Milestone"]] = relationship()
    file: Mapped[Optional["ProjectFile"]] = relationship()

    __table_args__ = (
        Index("ix_deliveries_project", "project_id"),
        Index("ix_deliveries_milestone", "milestone_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<DeliverySubmission(id={self.id}, "
            f"milestone={self.milestone_id}, "
            f"status='{self.status}')>"
        )


class ProjectMessage(Base):
    """Timeline entry. Append-only: the audit log for every transition."""
    __tablename__ = "project_messages"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=True
    )  # None for system narration
    # Position in the project timeline, assigned by the store on insert
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    sender: Mapped[Optional["User"]] = relationship(viewonly=True)

    __table_args__ = (
        UniqueConstraint("project_id", "seq", name="uq_messages_project_seq"),
        Index("ix_messages_project_created", "project_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectMessage(project={self.project_id}, "
            f"role='{self.role}', body='{self.body[:40]}')>"
        )


class AdminAuditLog(Base):
    """Audit trail for super admin actions."""
    __tablename__ = "admin_audit_logs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    admin_user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False)  # user / project / payment / system
    target_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    details: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_audit_created", "created_at"),
        Index("ix_audit_action", "action"),
    )

    def __repr__(self) -> str:
        return (
            f"<AdminAuditLog(action='{self.action}', "
            f"target={self.target_type}/{self.target_id})>"
        )


# ---------------------------------------------------------------------------
# Append-only enforcement via SQLAlchemy event listeners
# ---------------------------------------------------------------------------
DELIVERY_MUTABLE_FIELDS = {"status"}


def check_immutable_records(session) -> None:
    """Reject updates/deletes of messages and non-status delivery edits.

    Registered as a ``before_flush`` hook, can also be called directly.
    """
    for obj in session.deleted:
        if isinstance(obj, ProjectMessage):
            raise ImmutableRecordError(f"ProjectMessage {obj.id} cannot be deleted")
        if isinstance(obj, DeliverySubmission):
            raise ImmutableRecordError(f"DeliverySubmission {obj.id} cannot be deleted")

    for obj in session.dirty:
        if isinstance(obj, ProjectMessage) and session.is_modified(obj):
            raise ImmutableRecordError(f"ProjectMessage {obj.id} is append-only")
        if isinstance(obj, DeliverySubmission):
            state = inspect(obj)
            for attr in state.mapper.column_attrs:
                if attr.key in DELIVERY_MUTABLE_FIELDS:
                    continue
                if state.attrs[attr.key].history.has_changes():
                    raise ImmutableRecordError(
                        f"DeliverySubmission {obj.id}: field '{attr.key}' is immutable"
                    )


@event.listens_for(Session, "before_flush")
def _before_flush_check_immutable(session, flush_context, instances):
    check_immutable_records(session)
