"""Tests for super admin oversight."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import make_project, make_user
from common.models import ProjectStatus, UserRole
from modules.workspace.admin_service import (
    admin_list_audit_logs,
    admin_list_projects,
    admin_list_users,
    admin_set_user_suspension,
    admin_update_project_status,
)
from modules.workspace.config import get_config
from modules.workspace.errors import Forbidden, NotFound, Unauthenticated


# ---------------------------------------------------------------------------
# TestAdminUpdateProjectStatus
# ---------------------------------------------------------------------------

class TestAdminUpdateProjectStatus:
    """Test admin_update_project_status + audit log."""

    def test_update_writes_audit_log(self, store, ws):
        result = admin_update_project_status(store, ws.admin.id, ws.project.id, "maintenance")
        assert result.applied is True
        assert ws.project.status == "maintenance"

        rows, _ = store.list_audit_logs(None, 10, 0)
        [entry] = rows
        assert entry.id == result.message_id
        assert entry.action == "update_project_status"
        assert entry.target_type == "project"
        assert entry.target_id == ws.project.id
        assert entry.admin_user_id == ws.admin.id
        assert entry.details == {"previous_status": "active", "next_status": "maintenance"}

    def test_admin_may_reopen_completed(self, store, ws):
        ws.project.status = ProjectStatus.COMPLETED.value
        admin_update_project_status(store, ws.admin.id, ws.project.id, "active")
        assert ws.project.status == "active"

    def test_unknown_status_ignored(self, store, ws):
        result = admin_update_project_status(store, ws.admin.id, ws.project.id, "archived")
        assert result.applied is False
        assert ws.project.status == "active"
        assert store.list_audit_logs(None, 10, 0) == ([], 0)

    def test_unknown_project(self, store, ws):
        with pytest.raises(NotFound):
            admin_update_project_status(store, ws.admin.id, "missing", "active")
        assert store.list_audit_logs(None, 10, 0)[1] == 0

    def test_non_admin_forbidden(self, store, ws):
        with pytest.raises(Forbidden):
            admin_update_project_status(store, ws.client.id, ws.project.id, "cancelled")
        assert ws.project.status == "active"

    def test_inactive_admin(self, store, ws):
        make_user(store, "retired", UserRole.SUPER_ADMIN, is_active=False)
        with pytest.raises(Unauthenticated):
            admin_update_project_status(store, "retired", ws.project.id, "cancelled")

    def test_anonymous(self, store, ws):
        with pytest.raises(Unauthenticated):
            admin_update_project_status(store, None, ws.project.id, "cancelled")


# ---------------------------------------------------------------------------
# TestAdminListProjects
# ---------------------------------------------------------------------------

class TestAdminListProjects:
    """Test admin_list_projects: search, filter, paging."""

    def test_newest_first(self, store, ws):
        rows, pagination = admin_list_projects(store, ws.admin.id)
        assert [p.id for p in rows] == [ws.other.id, ws.project.id]
        assert pagination == {
            "page": 1,
            "page_size": get_config().admin.projects_page_size,
            "total": 2,
            "total_pages": 1,
        }

    def test_paging(self, store, ws):
        page_size = get_config().admin.projects_page_size
        for i in range(page_size + 3):
            make_project(store, f"bulk-{i:02d}", ws.client.id, title=f"Bulk {i}",
                         offset_minutes=10 + i)
        total = page_size + 5

        first, pagination = admin_list_projects(store, ws.admin.id, page=1)
        assert len(first) == page_size
        assert first[0].id == f"bulk-{page_size + 2:02d}"
        assert pagination["total"] == total
        assert pagination["total_pages"] == 2

        second, pagination = admin_list_projects(store, ws.admin.id, page=2)
        assert len(second) == 5
        assert pagination["page"] == 2
        assert second[-1].id == ws.project.id

    def test_page_below_one_clamped(self, store, ws):
        _, pagination = admin_list_projects(store, ws.admin.id, page=0)
        assert pagination["page"] == 1

    def test_search(self, store, ws):
        rows, pagination = admin_list_projects(store, ws.admin.id, q="  other ")
        assert [p.id for p in rows] == [ws.other.id]
        assert pagination["total"] == 1

    def test_search_description_case_insensitive(self, store, ws):
        rows, _ = admin_list_projects(store, ws.admin.id, q="MARKETING")
        assert len(rows) == 2

    def test_status_filter(self, store, ws):
        make_project(store, "proj-draft", ws.client.id, status=ProjectStatus.DRAFT,
                     offset_minutes=30)
        rows, _ = admin_list_projects(store, ws.admin.id, status="draft")
        assert [p.id for p in rows] == ["proj-draft"]

        rows, _ = admin_list_projects(store, ws.admin.id, status="all")
        assert len(rows) == 3

    def test_empty_result(self, store, ws):
        rows, pagination = admin_list_projects(store, ws.admin.id, q="nothing like this")
        assert rows == []
        assert pagination["total_pages"] == 1

    def test_non_admin_forbidden(self, store, ws):
        with pytest.raises(Forbidden):
            admin_list_projects(store, ws.talent.id)


# ---------------------------------------------------------------------------
# TestAdminListAuditLogs
# ---------------------------------------------------------------------------

class TestAdminListAuditLogs:
    """Test admin_list_audit_logs."""

    def test_lists_and_filters(self, store, ws):
        admin_update_project_status(store, ws.admin.id, ws.project.id, "maintenance")
        admin_update_project_status(store, ws.admin.id, ws.other.id, "cancelled")

        rows, pagination = admin_list_audit_logs(store, ws.admin.id)
        assert len(rows) == 2
        assert pagination["page_size"] == get_config().admin.audit_page_size
        assert {r.target_id for r in rows} == {ws.project.id, ws.other.id}

        rows, _ = admin_list_audit_logs(store, ws.admin.id, action="project_status")
        assert len(rows) == 2

        rows, pagination = admin_list_audit_logs(store, ws.admin.id, action="delete_user")
        assert rows == []
        assert pagination["total"] == 0

    def test_non_admin_forbidden(self, store, ws):
        with pytest.raises(Forbidden):
            admin_list_audit_logs(store, ws.client.id)


# ---------------------------------------------------------------------------
# TestAdminListUsers
# ---------------------------------------------------------------------------

class TestAdminListUsers:
    """Test admin_list_users: search, role and suspension filters."""

    def test_all_users(self, store, ws):
        rows, pagination = admin_list_users(store, ws.admin.id)
        assert {u.id for u in rows} == {"client", "talent", "outsider", "admin"}
        assert pagination == {
            "page": 1,
            "page_size": get_config().admin.users_page_size,
            "total": 4,
            "total_pages": 1,
        }

    def test_search_email_or_name(self, store, ws):
        rows, _ = admin_list_users(store, ws.admin.id, q=" OUTSIDER ")
        assert [u.id for u in rows] == ["outsider"]

    def test_role_filter(self, store, ws):
        rows, _ = admin_list_users(store, ws.admin.id, role="talent")
        assert [u.id for u in rows] == ["talent"]
        rows, _ = admin_list_users(store, ws.admin.id, role="all")
        assert len(rows) == 4

    def test_suspension_filter(self, store, ws):
        admin_set_user_suspension(store, ws.admin.id, ws.outsider.id, True)
        rows, _ = admin_list_users(store, ws.admin.id, suspension="suspended")
        assert [u.id for u in rows] == ["outsider"]
        rows, pagination = admin_list_users(store, ws.admin.id, suspension="active")
        assert "outsider" not in {u.id for u in rows}
        assert pagination["total"] == 3

    def test_paging(self, store, ws):
        page_size = get_config().admin.users_page_size
        for i in range(page_size):
            make_user(store, f"user-{i:02d}")
        _, pagination = admin_list_users(store, ws.admin.id, page=2)
        assert pagination["total"] == page_size + 4
        assert pagination["total_pages"] == 2

    def test_non_admin_forbidden(self, store, ws):
        with pytest.raises(Forbidden):
            admin_list_users(store, ws.client.id)


# ---------------------------------------------------------------------------
# TestAdminSetUserSuspension
# ---------------------------------------------------------------------------

class TestAdminSetUserSuspension:
    """Test admin_set_user_suspension + audit log."""

    def test_suspend_writes_audit_log(self, store, ws):
        result = admin_set_user_suspension(
            store, ws.admin.id, ws.talent.id, True, reason="  Chargeback  "
        )
        assert result.applied is True
        user = store.get_user(ws.talent.id)
        assert user.is_active is False
        assert user.suspended_at is not None
        assert user.suspension_reason == "Chargeback"

        [entry], _ = store.list_audit_logs(None, 10, 0)
        assert entry.id == result.message_id
        assert entry.action == "suspend_user"
        assert entry.target_type == "user"
        assert entry.target_id == ws.talent.id
        assert entry.details == {"reason": "Chargeback"}

    def test_default_reason(self, store, ws):
        admin_set_user_suspension(store, ws.admin.id, ws.talent.id, True)
        user = store.get_user(ws.talent.id)
        assert user.suspension_reason == "Suspended by super admin."
        [entry], _ = store.list_audit_logs(None, 10, 0)
        assert entry.details == {"reason": None}

    def test_unsuspend(self, store, ws):
        admin_set_user_suspension(store, ws.admin.id, ws.talent.id, True)
        admin_set_user_suspension(store, ws.admin.id, ws.talent.id, False)
        user = store.get_user(ws.talent.id)
        assert user.is_active is True
        assert user.suspended_at is None
        assert user.suspension_reason is None

        rows, _ = admin_list_audit_logs(store, ws.admin.id, action="suspend_user")
        assert {r.action for r in rows} == {"suspend_user", "unsuspend_user"}

    def test_cannot_suspend_self(self, store, ws):
        with pytest.raises(Forbidden):
            admin_set_user_suspension(store, ws.admin.id, ws.admin.id, True)
        assert store.get_user(ws.admin.id).is_active is True
        assert store.list_audit_logs(None, 10, 0) == ([], 0)

    def test_suspended_admin_loses_access(self, store, ws):
        make_user(store, "second-admin", UserRole.SUPER_ADMIN)
        admin_set_user_suspension(store, "second-admin", ws.admin.id, True)
        with pytest.raises(Unauthenticated):
            admin_list_projects(store, ws.admin.id)

    def test_unknown_user(self, store, ws):
        with pytest.raises(NotFound):
            admin_set_user_suspension(store, ws.admin.id, "ghost", True)
        assert store.list_audit_logs(None, 10, 0)[1] == 0

    def test_non_admin_forbidden(self, store, ws):
        with pytest.raises(Forbidden):
            admin_set_user_suspension(store, ws.client.id, ws.talent.id, True)
        assert store.get_user(ws.talent.id).is_active is True
