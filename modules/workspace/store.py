"""Data-access layer for the workspace engines.

The engines only talk to a ``WorkspaceStore``. Two backends:
  - SqlAlchemyStore: production, wraps a SQLAlchemy Session
  - InMemoryStore:   dict-backed fake for tests and dry runs

Both hold ORM instances; the in-memory one never attaches them to a session.
"""
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol, TypeVar

from sqlalchemy import func, inspect, or_, select
from sqlalchemy.orm import Session

from common.models import ProjectStatus

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
    utcnow,
)

T = TypeVar("T", bound=Base)


class WorkspaceStore(Protocol):
    """Storage backend protocol."""

    def get_user(self, user_id: str) -> Optional[User]: ...

    def get_project(self, project_id: str) -> Optional[Project]: ...

    def get_milestone(self, project_id: str, milestone_id: str) -> Optional[Milestone]: ...

    def get_delivery(self, project_id: str, delivery_id: str) -> Optional[DeliverySubmission]: ...

    def get_file(self, project_id: str, file_id: str) -> Optional[ProjectFile]: ...

    def list_milestones(self, project_id: str) -> list[Milestone]: ...

    def list_deliveries(self, project_id: str) -> list[DeliverySubmission]: ...

    def list_messages(self, project_id: str) -> list[ProjectMessage]: ...

    def list_files(self, project_id: str) -> list[ProjectFile]: ...

    def search_projects(
        self, q: Optional[str], status: Optional[str], limit: int, offset: int
    ) -> tuple[list[Project], int]: ...

    def list_audit_logs(
        self, action: Optional[str], limit: int, offset: int
    ) -> tuple[list[AdminAuditLog], int]: ...

    def get_applicant(self, project_id: str, applicant_id: str) -> Optional[Applicant]: ...

    def find_application(self, project_id: str, user_id: str) -> Optional[Applicant]: ...

    def list_applicants(self, project_id: str) -> list[Applicant]: ...

    def search_users(
        self, q: Optional[str], role: Optional[str], suspended: Optional[bool],
        limit: int, offset: int,
    ) -> tuple[list[User], int]: ...

    def insert(self, entity: T) -> T: ...

    def set_milestone_status(self, milestone: Milestone, status: str) -> None: ...

    def set_delivery_status(self, delivery: DeliverySubmission, status: str) -> None: ...

    def set_project_status(self, project: Project, status: str) -> None: ...

    def assign_talent(self, project: Project, talent_id: str) -> None: ...

    def set_applicant_status(self, applicant: Applicant, status: str) -> None: ...

    def set_user_suspension(self, user: User, suspended: bool, reason: Optional[str]) -> None: ...

    def atomic(self): ...


# ---------------------------------------------------------------------------
# SQLAlchemy backend
# ---------------------------------------------------------------------------

class SqlAlchemyStore:
    """Store over a SQLAlchemy session. Commit is left to the session owner."""

    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.session.get(Project, project_id)

    def get_milestone(self, project_id: str, milestone_id: str) -> Optional[Milestone]:
        return self.session.scalars(
            select(Milestone).where(
                Milestone.id == milestone_id,
                Milestone.project_id == project_id,
            )
        ).first()

    def get_delivery(self, project_id: str, delivery_id: str) -> Optional[DeliverySubmission]:
        return self.session.scalars(
            select(DeliverySubmission).where(
                DeliverySubmission.id == delivery_id,
                DeliverySubmission.project_id == project_id,
            )
        ).first()

    def get_file(self, project_id: str, file_id: str) -> Optional[ProjectFile]:
        return self.session.scalars(
            select(ProjectFile).where(
                ProjectFile.id == file_id,
                ProjectFile.project_id == project_id,
            )
        ).first()

    def list_milestones(self, project_id: str) -> list[Milestone]:
        return list(self.session.scalars(
            select(Milestone)
            .where(Milestone.project_id == project_id)
            .order_by(Milestone.created_at.asc(), Milestone.id.asc())
        ))

    def list_deliveries(self, project_id: str) -> list[DeliverySubmission]:
        return list(self.session.scalars(
            select(DeliverySubmission)
            .where(DeliverySubmission.project_id == project_id)
            .order_by(DeliverySubmission.created_at.asc(), DeliverySubmission.id.asc())
        ))

    def list_messages(self, project_id: str) -> list[ProjectMessage]:
        return list(self.session.scalars(
            select(ProjectMessage)
            .where(ProjectMessage.project_id == project_id)
            .order_by(ProjectMessage.seq.asc())
        ))

    def list_files(self, project_id: str) -> list[ProjectFile]:
        return list(self.session.scalars(
            select(ProjectFile)
            .where(ProjectFile.project_id == project_id)
            .order_by(ProjectFile.created_at.asc(), ProjectFile.id.asc())
        ))

    def search_projects(self, q, status, limit, offset):
        query = select(Project)
        if q:
            pattern = f"%{q}%"
            query = query.where(or_(
                Project.title.ilike(pattern),
                Project.description.ilike(pattern),
            ))
        if status:
            query = query.where(Project.status == status)

        total = self.session.scalar(
            select(func.count()).select_from(query.subquery())
        ) or 0
        rows = list(self.session.scalars(
            query.order_by(Project.created_at.desc(), Project.id).limit(limit).offset(offset)
        ))
        return rows, total

    def list_audit_logs(self, action, limit, offset):
        query = select(AdminAuditLog)
        if action:
            query = query.where(AdminAuditLog.action.ilike(f"%{action}%"))

        total = self.session.scalar(
            select(func.count()).select_from(query.subquery())
        ) or 0
        rows = list(self.session.scalars(
            query.order_by(AdminAuditLog.created_at.desc(), AdminAuditLog.id)
            .limit(limit).offset(offset)
        ))
        return rows, total

    def get_applicant(self, project_id: str, applicant_id: str) -> Optional[Applicant]:
        return self.session.scalars(
            select(Applicant).where(
                Applicant.id == applicant_id,
                Applicant.project_id == project_id,
            )
        ).first()

    def find_application(self, project_id: str, user_id: str) -> Optional[Applicant]:
        return self.session.scalars(
            select(Applicant).where(
                Applicant.project_id == project_id,
                Applicant.user_id == user_id,
            )
        ).first()

    def list_applicants(self, project_id: str) -> list[Applicant]:
        return list(self.session.scalars(
            select(Applicant)
            .where(Applicant.project_id == project_id)
            .order_by(Applicant.created_at.asc(), Applicant.id.asc())
        ))

    def search_users(self, q, role, suspended, limit, offset):
        query = select(User)
        if q:
            pattern = f"%{q}%"
            query = query.where(or_(
                User.email.ilike(pattern),
                User.name.ilike(pattern),
            ))
        if role:
            query = query.where(User.role == role)
        if suspended is not None:
            query = query.where(User.is_active == (not suspended))

        total = self.session.scalar(
            select(func.count()).select_from(query.subquery())
        ) or 0
        rows = list(self.session.scalars(
            query.order_by(User.created_at.desc(), User.id).limit(limit).offset(offset)
        ))
        return rows, total

    def _next_message_seq(self, project_id: str) -> int:
        current = self.session.scalar(
            select(func.max(ProjectMessage.seq)).where(ProjectMessage.project_id == project_id)
        )
        return (current or 0) + 1

    def insert(self, entity: T) -> T:
        if isinstance(entity, ProjectMessage) and entity.seq is None:
            entity.seq = self._next_message_seq(entity.project_id)
        self.session.add(entity)
        self.session.flush()
        return entity

    def set_milestone_status(self, milestone: Milestone, status: str) -> None:
        milestone.status = status
        self.session.flush()

    def set_delivery_status(self, delivery: DeliverySubmission, status: str) -> None:
        delivery.status = status
        self.session.flush()

    def set_project_status(self, project: Project, status: str) -> None:
        project.status = status
        self.session.flush()

    def assign_talent(self, project: Project, talent_id: str) -> None:
        project.talent_id = talent_id
        project.status = ProjectStatus.ACTIVE.value
        self.session.flush()

    def set_applicant_status(self, applicant: Applicant, status: str) -> None:
        applicant.status = status
        self.session.flush()

    def set_user_suspension(self, user: User, suspended: bool, reason: Optional[str]) -> None:
        user.is_active = not suspended
        user.suspended_at = utcnow() if suspended else None
        user.suspension_reason = reason if suspended else None
        self.session.flush()

    @contextmanager
    def atomic(self) -> Iterator["SqlAlchemyStore"]:
        """Savepoint around one operation's reads and writes."""
        with self.session.begin_nested():
            yield self


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

def _apply_defaults(entity: Base) -> None:
    """Fill unset columns from their Python-side defaults, as a flush would."""
    for attr in inspect(type(entity)).column_attrs:
        if getattr(entity, attr.key) is not None:
            continue
        default = attr.columns[0].default
        if default is None:
            continue
        if default.is_callable:
            setattr(entity, attr.key, default.arg(None))
        elif default.is_scalar:
            setattr(entity, attr.key, default.arg)


class InMemoryStore:
    """Dict-backed store. ``atomic()`` undoes every write on error."""

    def __init__(self):
        self._tables: dict[type, dict[str, Base]] = {
            User: {},
            Project: {},
            Milestone: {},
            ProjectFile: {},
            DeliverySubmission: {},
            ProjectMessage: {},
            AdminAuditLog: {},
            Applicant: {},
        }
        self._undo: Optional[list] = None

    # -- helpers -----------------------------------------------------------

    def _rows(self, model: type) -> list:
        return list(self._tables[model].values())

    def _scoped(self, model: type, project_id: str, entity_id: str):
        row = self._tables[model].get(entity_id)
        if row is None or row.project_id != project_id:
            return None
        return row

    def _by_project(self, model: type, project_id: str) -> list:
        rows = [r for r in self._rows(model) if r.project_id == project_id]
        return sorted(rows, key=lambda r: r.created_at)

    def _set(self, entity: Base, attr: str, value) -> None:
        old = getattr(entity, attr)
        if self._undo is not None:
            self._undo.append(lambda: setattr(entity, attr, old))
        setattr(entity, attr, value)

    # -- reads -------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[User]:
        return self._tables[User].get(user_id)

    def get_project(self, project_id: str) -> Optional[Project]:
        return self._tables[Project].get(project_id)

    def get_milestone(self, project_id, milestone_id):
        return self._scoped(Milestone, project_id, milestone_id)

    def get_delivery(self, project_id, delivery_id):
        return self._scoped(DeliverySubmission, project_id, delivery_id)

    def get_file(self, project_id, file_id):
        return self._scoped(ProjectFile, project_id, file_id)

    def list_milestones(self, project_id):
        return self._by_project(Milestone, project_id)

    def list_deliveries(self, project_id):
        return self._by_project(DeliverySubmission, project_id)

    def list_messages(self, project_id):
        rows = [r for r in self._rows(ProjectMessage) if r.project_id == project_id]
        return sorted(rows, key=lambda r: r.seq)

    def list_files(self, project_id):
        return self._by_project(ProjectFile, project_id)

    def search_projects(self, q, status, limit, offset):
        rows = self._rows(Project)
        if q:
            needle = q.lower()
            rows = [
                p for p in rows
                if needle in p.title.lower() or needle in (p.description or "").lower()
            ]
        if status:
            rows = [p for p in rows if p.status == status]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        return rows[offset:offset + limit], len(rows)

    def list_audit_logs(self, action, limit, offset):
        rows = self._rows(AdminAuditLog)
        if action:
            rows = [r for r in rows if action.lower() in r.action.lower()]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[offset:offset + limit], len(rows)

    def get_applicant(self, project_id, applicant_id):
        return self._scoped(Applicant, project_id, applicant_id)

    def find_application(self, project_id, user_id):
        for row in self._rows(Applicant):
            if row.project_id == project_id and row.user_id == user_id:
                return row
        return None

    def list_applicants(self, project_id):
        return self._by_project(Applicant, project_id)

    def search_users(self, q, role, suspended, limit, offset):
        rows = self._rows(User)
        if q:
            needle = q.lower()
            rows = [
                u for u in rows
                if needle in u.email.lower() or needle in (u.name or "").lower()
            ]
        if role:
            rows = [u for u in rows if u.role == role]
        if suspended is not None:
            rows = [u for u in rows if u.is_active is not suspended]
        rows.sort(key=lambda u: u.created_at, reverse=True)
        return rows[offset:offset + limit], len(rows)

    # -- writes ------------------------------------------------------------

    def insert(self, entity: T) -> T:
        _apply_defaults(entity)
        if isinstance(entity, ProjectMessage) and entity.seq is None:
            entity.seq = 1 + max(
                (m.seq for m in self._rows(ProjectMessage) if m.project_id == entity.project_id),
                default=0,
            )
        if isinstance(entity, Applicant) and self.find_application(
            entity.project_id, entity.user_id
        ) is not None:
            raise ValueError(f"Duplicate application of {entity.user_id} to {entity.project_id}")
        table = self._tables[type(entity)]
        if entity.id in table:
            raise ValueError(f"Duplicate {type(entity).__name__} id {entity.id}")
        table[entity.id] = entity
        if self._undo is not None:
            self._undo.append(lambda: table.pop(entity.id, None))
        return entity

    def set_milestone_status(self, milestone, status):
        self._set(milestone, "status", status)

    def set_delivery_status(self, delivery, status):
        self._set(delivery, "status", status)

    def set_project_status(self, project, status):
        self._set(project, "status", status)
        self._set(project, "updated_at", utcnow())

    def assign_talent(self, project, talent_id):
        self._set(project, "talent_id", talent_id)
        self._set(project, "status", ProjectStatus.ACTIVE.value)
        self._set(project, "updated_at", utcnow())

    def set_applicant_status(self, applicant, status):
        self._set(applicant, "status", status)

    def set_user_suspension(self, user, suspended, reason):
        self._set(user, "is_active", not suspended)
        self._set(user, "suspended_at", utcnow() if suspended else None)
        self._set(user, "suspension_reason", reason if suspended else None)

    @contextmanager
    def atomic(self) -> Iterator["InMemoryStore"]:
        if self._undo is not None:
            # Already inside an outer unit of work
            yield self
            return
        self._undo = []
        try:
            yield self
        except Exception:
            for undo in reversed(self._undo):
                undo()
            raise
        finally:
            self._undo = None


def create_store(backend: str = "sql", session: Optional[Session] = None) -> WorkspaceStore:
    """Factory: creates the appropriate storage backend."""
    if backend == "memory":
        return InMemoryStore()
    if backend == "sql":
        if session is None:
            raise ValueError("SqlAlchemyStore requires a session")
        return SqlAlchemyStore(session)
    raise ValueError(f"Unknown store backend: {backend}")
