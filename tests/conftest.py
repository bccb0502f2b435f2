"""
Workspace Test Configuration

Shared fixtures for all tests.
"""
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from common.models import MilestoneStatus, ProjectStatus, UserRole
from modules.workspace.models import Base, Milestone, Project, User
from modules.workspace.store import InMemoryStore, SqlAlchemyStore


BASE_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

SAMPLE_PLAN = {
    "milestones": [
        {"title": "Wireframes", "description": "Low-fi layout", "amount": "400"},
        {"title": "Frontend", "amount": 1200},
        {"description": "entry without a title is skipped"},
    ]
}


# =============================================================================
# FIXTURES: Database
# =============================================================================

@pytest.fixture
def engine():
    # StaticPool: one shared in-memory DB, also across TestClient threads
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def sql_store(session):
    return SqlAlchemyStore(session)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture(params=["sql", "memory"])
def store(request, session):
    """Every engine test runs against both backends."""
    if request.param == "memory":
        return InMemoryStore()
    return SqlAlchemyStore(session)


# =============================================================================
# FIXTURES: Seeded workspace
# =============================================================================

def make_user(store, user_id, role=UserRole.CLIENT, is_active=True):
    return store.insert(User(
        id=user_id,
        email=f"{user_id}@example.com",
        name=user_id.title(),
        role=role.value,
        is_active=is_active,
        created_at=BASE_TIME,
    ))


def make_project(store, project_id, client_id, talent_id=None,
                 title="Landing page", status=ProjectStatus.ACTIVE,
                 plan=None, offset_minutes=0):
    return store.insert(Project(
        id=project_id,
        title=title,
        description=f"{title} for a marketing launch",
        status=status.value,
        client_id=client_id,
        talent_id=talent_id,
        plan=json.dumps(plan) if isinstance(plan, dict) else plan,
        created_at=BASE_TIME + timedelta(minutes=offset_minutes),
        updated_at=BASE_TIME + timedelta(minutes=offset_minutes),
    ))


def make_milestone(store, milestone_id, project_id, title,
                   status=MilestoneStatus.PENDING, offset_minutes=0):
    return store.insert(Milestone(
        id=milestone_id,
        project_id=project_id,
        title=title,
        amount="500",
        status=status.value,
        created_at=BASE_TIME + timedelta(minutes=offset_minutes),
    ))


def seed_workspace(store) -> SimpleNamespace:
    """Client + talent on one project with two milestones, plus a foreign project."""
    client = make_user(store, "client")
    talent = make_user(store, "talent", UserRole.TALENT)
    outsider = make_user(store, "outsider")
    admin = make_user(store, "admin", UserRole.SUPER_ADMIN)

    project = make_project(store, "proj-1", client.id, talent.id)
    design = make_milestone(store, "ms-design", project.id, "Design", offset_minutes=1)
    build = make_milestone(store, "ms-build", project.id, "Build", offset_minutes=2)

    other = make_project(store, "proj-2", outsider.id, title="Other work", offset_minutes=5)
    foreign = make_milestone(store, "ms-foreign", other.id, "Foreign", offset_minutes=6)

    return SimpleNamespace(
        client=client,
        talent=talent,
        outsider=outsider,
        admin=admin,
        project=project,
        design=design,
        build=build,
        other=other,
        foreign=foreign,
    )


@pytest.fixture
def ws(store):
    return seed_workspace(store)


@pytest.fixture
def sql_ws(sql_store):
    return seed_workspace(sql_store)


@pytest.fixture
def memory_ws(memory_store):
    return seed_workspace(memory_store)
