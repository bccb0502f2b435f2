"""Tests for talent applications and talent assignment.

Covers:
  - Applying to open projects, duplicate and closed-project handling
  - Accepting an applicant: talent assigned, project active, others rejected
  - Reassignment refused once a talent is assigned
  - Authorization and scoping
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import make_milestone, make_project, make_user
from common.models import ApplicantStatus, ProjectStatus, UserRole
from modules.workspace.applicants import (
    accept_applicant,
    list_applicants,
    submit_application,
)
from modules.workspace.errors import Forbidden, NotFound, Unauthenticated
from modules.workspace.transitions import talent_set_milestone_status


@pytest.fixture
def open_project(store, ws):
    return make_project(store, "proj-open", ws.client.id, title="Open brief",
                        status=ProjectStatus.DRAFT, offset_minutes=10)


@pytest.fixture
def rival(store, ws):
    return make_user(store, "rival", UserRole.TALENT)


def _apply(store, user_id, project_id, proposal="I have shipped similar work"):
    result = submit_application(store, user_id, project_id, proposal, budget="1500")
    assert result.applied is True, result.reason
    return store.get_applicant(project_id, result.entity_id)


# ---------------------------------------------------------------------------
# TestSubmitApplication
# ---------------------------------------------------------------------------

class TestSubmitApplication:

    def test_apply(self, store, ws, open_project):
        result = submit_application(
            store, ws.talent.id, open_project.id, "  Proposal text  ",
            budget="1500", timeline="3 weeks", links="https://portfolio.example.com",
        )
        assert result.applied is True
        applicant = store.get_applicant(open_project.id, result.entity_id)
        assert applicant.user_id == ws.talent.id
        assert applicant.proposal == "Proposal text"
        assert applicant.relevant_links == "https://portfolio.example.com"
        assert applicant.status == ApplicantStatus.PENDING.value

    def test_second_application_ignored(self, store, ws, open_project):
        _apply(store, ws.talent.id, open_project.id)
        result = submit_application(store, ws.talent.id, open_project.id, "Again")
        assert result.applied is False
        assert "already applied" in result.reason
        assert len(store.list_applicants(open_project.id)) == 1

    def test_blank_proposal_ignored(self, store, ws, open_project):
        result = submit_application(store, ws.talent.id, open_project.id, "   ")
        assert result.applied is False
        assert store.list_applicants(open_project.id) == []

    def test_active_project_not_open(self, store, ws, rival):
        result = submit_application(store, rival.id, ws.project.id, "Let me in")
        assert result.applied is False
        assert "not accepting" in result.reason

    def test_client_account_cannot_apply(self, store, ws, open_project):
        with pytest.raises(Forbidden):
            submit_application(store, ws.outsider.id, open_project.id, "Hire me")

    def test_suspended_talent_cannot_apply(self, store, ws, open_project):
        make_user(store, "benched", UserRole.TALENT, is_active=False)
        with pytest.raises(Forbidden):
            submit_application(store, "benched", open_project.id, "Hire me")

    def test_unknown_project(self, store, ws):
        with pytest.raises(NotFound):
            submit_application(store, ws.talent.id, "missing", "Hire me")

    def test_unauthenticated(self, store, ws, open_project):
        with pytest.raises(Unauthenticated):
            submit_application(store, None, open_project.id, "Hire me")


# ---------------------------------------------------------------------------
# TestAcceptApplicant
# ---------------------------------------------------------------------------

class TestAcceptApplicant:

    def test_accept_assigns_talent(self, store, ws, open_project):
        applicant = _apply(store, ws.talent.id, open_project.id)
        result = accept_applicant(store, ws.client.id, open_project.id, applicant.id)

        assert result.applied is True
        assert result.entity_id == applicant.id
        project = store.get_project(open_project.id)
        assert project.talent_id == ws.talent.id
        assert project.status == ProjectStatus.ACTIVE.value
        assert applicant.status == ApplicantStatus.ACCEPTED.value

        [message] = store.list_messages(open_project.id)
        assert message.id == result.message_id
        assert message.role == "system"
        assert message.body == "Talent joined the project as talent."

    def test_other_pending_applicants_rejected(self, store, ws, open_project, rival):
        chosen = _apply(store, ws.talent.id, open_project.id)
        other = _apply(store, rival.id, open_project.id)
        accept_applicant(store, ws.client.id, open_project.id, chosen.id)
        assert other.status == ApplicantStatus.REJECTED.value

    def test_assigned_talent_can_work(self, store, ws, open_project):
        milestone = make_milestone(store, "ms-open", open_project.id, "Kickoff", offset_minutes=12)
        applicant = _apply(store, ws.talent.id, open_project.id)
        with pytest.raises(Forbidden):
            talent_set_milestone_status(
                store, ws.talent.id, open_project.id, milestone.id, "in_progress"
            )

        accept_applicant(store, ws.client.id, open_project.id, applicant.id)
        result = talent_set_milestone_status(
            store, ws.talent.id, open_project.id, milestone.id, "in_progress"
        )
        assert result.applied is True
        assert milestone.status == "in_progress"

    def test_reassignment_refused(self, store, ws, open_project, rival):
        chosen = _apply(store, ws.talent.id, open_project.id)
        other = _apply(store, rival.id, open_project.id)
        accept_applicant(store, ws.client.id, open_project.id, chosen.id)
        messages_before = len(store.list_messages(open_project.id))

        result = accept_applicant(store, ws.client.id, open_project.id, other.id)
        assert result.applied is False
        assert "already has talent" in result.reason
        assert store.get_project(open_project.id).talent_id == ws.talent.id
        assert other.status == ApplicantStatus.REJECTED.value
        assert len(store.list_messages(open_project.id)) == messages_before

    def test_repeat_accept_refused(self, store, ws, open_project):
        applicant = _apply(store, ws.talent.id, open_project.id)
        accept_applicant(store, ws.client.id, open_project.id, applicant.id)
        result = accept_applicant(store, ws.client.id, open_project.id, applicant.id)
        assert result.applied is False

    def test_non_draft_project_refused(self, store, ws, open_project):
        applicant = _apply(store, ws.talent.id, open_project.id)
        store.set_project_status(open_project, ProjectStatus.CANCELLED.value)
        result = accept_applicant(store, ws.client.id, open_project.id, applicant.id)
        assert result.applied is False
        assert store.get_project(open_project.id).talent_id is None

    def test_only_owner_accepts(self, store, ws, open_project):
        applicant = _apply(store, ws.talent.id, open_project.id)
        with pytest.raises(Forbidden):
            accept_applicant(store, ws.outsider.id, open_project.id, applicant.id)
        with pytest.raises(Forbidden):
            accept_applicant(store, ws.talent.id, open_project.id, applicant.id)
        assert store.get_project(open_project.id).talent_id is None

    def test_applicant_of_another_project(self, store, ws, open_project):
        foreign_open = make_project(store, "proj-open-2", ws.outsider.id,
                                    status=ProjectStatus.DRAFT, offset_minutes=11)
        foreign = _apply(store, ws.talent.id, foreign_open.id)
        with pytest.raises(NotFound):
            accept_applicant(store, ws.client.id, open_project.id, foreign.id)
        assert foreign.status == ApplicantStatus.PENDING.value

    def test_missing_applicant_id_ignored(self, store, ws, open_project):
        result = accept_applicant(store, ws.client.id, open_project.id, "  ")
        assert result.applied is False


# ---------------------------------------------------------------------------
# TestListApplicants
# ---------------------------------------------------------------------------

class TestListApplicants:

    def test_client_sees_applicants(self, store, ws, open_project, rival):
        first = _apply(store, ws.talent.id, open_project.id)
        second = _apply(store, rival.id, open_project.id)
        rows = list_applicants(store, ws.client.id, open_project.id)
        assert {a.id for a in rows} == {first.id, second.id}

    def test_applicant_cannot_list(self, store, ws, open_project):
        _apply(store, ws.talent.id, open_project.id)
        with pytest.raises(Forbidden):
            list_applicants(store, ws.talent.id, open_project.id)
