"""Tests for the delivery review service.

Covers:
  - Submit: pending delivery, milestone → completed, narration
  - Review: approve / revision cascade to the linked milestone
  - Unknown decisions ignored without writes
  - Repeated decisions re-fire (no dedup) in lenient mode
  - Strict mode: only pending deliveries reviewed
  - Review queue listing
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from conftest import BASE_TIME
from modules.workspace.errors import Forbidden, NotFound, Unauthenticated
from modules.workspace.models import ProjectFile
from modules.workspace.review_service import (
    REVIEW_OUTCOMES,
    get_review_queue,
    review_delivery,
    submit_talent_delivery,
)
from modules.workspace.transitions import client_set_milestone_status


def _bodies(store, project_id):
    return [m.body for m in store.list_messages(project_id)]


def _make_file(store, project_id, uploaded_by, file_id="file-1"):
    """Helper: create a ProjectFile."""
    return store.insert(ProjectFile(
        id=file_id,
        project_id=project_id,
        name="mockups.zip",
        url=f"https://files.example.com/{file_id}",
        size="2.4 MB",
        type="application/zip",
        uploaded_by=uploaded_by,
        created_at=BASE_TIME,
    ))


def _submit(store, ws, milestone_id=None, summary="First draft ready", **kwargs):
    """Helper: talent submits a delivery and returns it."""
    result = submit_talent_delivery(
        store, ws.talent.id, ws.project.id, summary,
        milestone_id=milestone_id, **kwargs,
    )
    assert result.applied is True
    return store.get_delivery(ws.project.id, result.entity_id)


# ---------------------------------------------------------------------------
# TestSubmitDelivery
# ---------------------------------------------------------------------------

class TestSubmitDelivery:
    """Test submit_talent_delivery."""

    def test_submit_for_milestone(self, store, ws):
        delivery = _submit(store, ws, milestone_id=ws.design.id, link="https://figma.com/x")
        assert delivery.status == "pending"
        assert delivery.submitted_by == ws.talent.id
        assert delivery.link == "https://figma.com/x"
        assert delivery.milestone_id == ws.design.id
        assert ws.design.status == "completed"
        assert _bodies(store, ws.project.id) == ["Delivery submitted for Design."]

    def test_submit_without_milestone(self, store, ws):
        delivery = _submit(store, ws)
        assert delivery.milestone_id is None
        assert ws.design.status == "pending"
        assert ws.build.status == "pending"
        assert _bodies(store, ws.project.id) == ["Delivery submitted."]

    def test_blank_optional_fields_become_none(self, store, ws):
        delivery = _submit(store, ws, milestone_id="  ", link="", file_id="")
        assert delivery.milestone_id is None
        assert delivery.link is None
        assert delivery.file_id is None

    def test_submit_with_file(self, store, ws):
        f = _make_file(store, ws.project.id, ws.talent.id)
        delivery = _submit(store, ws, file_id=f.id)
        assert delivery.file_id == f.id

    @pytest.mark.parametrize("summary", ["", "   ", None])
    def test_empty_summary_ignored(self, store, ws, summary):
        result = submit_talent_delivery(store, ws.talent.id, ws.project.id, summary)
        assert result.applied is False
        assert store.list_deliveries(ws.project.id) == []
        assert store.list_messages(ws.project.id) == []

    def test_missing_project_id_ignored(self, store, ws):
        result = submit_talent_delivery(store, ws.talent.id, "", "Work")
        assert result.applied is False

    def test_client_cannot_submit(self, store, ws):
        with pytest.raises(Forbidden):
            submit_talent_delivery(store, ws.client.id, ws.project.id, "Work")

    def test_unauthenticated(self, store, ws):
        with pytest.raises(Unauthenticated):
            submit_talent_delivery(store, "", ws.project.id, "Work")

    def test_foreign_milestone_rejected_without_writes(self, store, ws):
        with pytest.raises(NotFound):
            submit_talent_delivery(
                store, ws.talent.id, ws.project.id, "Work", milestone_id=ws.foreign.id
            )
        assert store.list_deliveries(ws.project.id) == []
        assert ws.foreign.status == "pending"

    def test_unknown_file(self, store, ws):
        with pytest.raises(NotFound):
            submit_talent_delivery(
                store, ws.talent.id, ws.project.id, "Work",
                milestone_id=ws.design.id, file_id="missing",
            )
        assert store.list_deliveries(ws.project.id) == []
        assert ws.design.status == "pending"
        assert store.list_messages(ws.project.id) == []

    def test_lenient_resubmit_on_approved_milestone(self, store, ws):
        client_set_milestone_status(store, ws.client.id, ws.project.id, ws.design.id, "approved")
        _submit(store, ws, milestone_id=ws.design.id, strict=False)
        assert ws.design.status == "completed"

    def test_strict_refuses_approved_milestone(self, store, ws):
        client_set_milestone_status(store, ws.client.id, ws.project.id, ws.design.id, "approved")
        result = submit_talent_delivery(
            store, ws.talent.id, ws.project.id, "Late fix",
            milestone_id=ws.design.id, strict=True,
        )
        assert result.applied is False
        assert ws.design.status == "approved"
        assert store.list_deliveries(ws.project.id) == []


# ---------------------------------------------------------------------------
# TestReviewDelivery
# ---------------------------------------------------------------------------

class TestReviewDelivery:
    """Test review_delivery: approve / revision cascade."""

    def test_outcome_table(self):
        assert {k.value: (d.value, m.value) for k, (d, m) in REVIEW_OUTCOMES.items()} == {
            "approve": ("approved", "approved"),
            "revision": ("revision", "in_progress"),
        }

    def test_approve_cascades(self, store, ws):
        delivery = _submit(store, ws, milestone_id=ws.design.id)
        result = review_delivery(store, ws.client.id, ws.project.id, delivery.id, "approve")
        assert result.applied is True
        assert delivery.status == "approved"
        assert ws.design.status == "approved"
        assert "Delivery approved." in _bodies(store, ws.project.id)

    def test_revision_cascades(self, store, ws):
        delivery = _submit(store, ws, milestone_id=ws.design.id)
        review_delivery(store, ws.client.id, ws.project.id, delivery.id, "revision")
        assert delivery.status == "revision"
        assert ws.design.status == "in_progress"
        assert "Delivery returned for revision." in _bodies(store, ws.project.id)

    def test_review_without_milestone(self, store, ws):
        delivery = _submit(store, ws)
        review_delivery(store, ws.client.id, ws.project.id, delivery.id, "approve")
        assert delivery.status == "approved"
        assert ws.design.status == "pending"
        assert ws.build.status == "pending"

    @pytest.mark.parametrize("decision", ["reject", "", None, "APPROVE"])
    def test_unknown_decision_ignored(self, store, ws, decision):
        delivery = _submit(store, ws, milestone_id=ws.design.id)
        before = len(store.list_messages(ws.project.id))
        result = review_delivery(store, ws.client.id, ws.project.id, delivery.id, decision)
        assert result.applied is False
        assert delivery.status == "pending"
        assert ws.design.status == "completed"
        assert len(store.list_messages(ws.project.id)) == before

    def test_repeated_approval_refires(self, store, ws):
        delivery = _submit(store, ws, milestone_id=ws.design.id)
        for _ in range(2):
            review_delivery(
                store, ws.client.id, ws.project.id, delivery.id, "approve", strict=False
            )
        assert _bodies(store, ws.project.id).count("Delivery approved.") == 2
        assert ws.design.status == "approved"

    def test_later_review_overwrites(self, store, ws):
        delivery = _submit(store, ws, milestone_id=ws.design.id)
        review_delivery(store, ws.client.id, ws.project.id, delivery.id, "approve", strict=False)
        review_delivery(store, ws.client.id, ws.project.id, delivery.id, "revision", strict=False)
        assert delivery.status == "revision"
        assert ws.design.status == "in_progress"

    def test_strict_reviews_pending_only(self, store, ws):
        delivery = _submit(store, ws, milestone_id=ws.design.id)
        review_delivery(store, ws.client.id, ws.project.id, delivery.id, "approve", strict=True)
        result = review_delivery(
            store, ws.client.id, ws.project.id, delivery.id, "revision", strict=True
        )
        assert result.applied is False
        assert delivery.status == "approved"
        assert ws.design.status == "approved"

    def test_talent_cannot_review(self, store, ws):
        delivery = _submit(store, ws, milestone_id=ws.design.id)
        with pytest.raises(Forbidden):
            review_delivery(store, ws.talent.id, ws.project.id, delivery.id, "approve")
        assert delivery.status == "pending"

    def test_unknown_delivery(self, store, ws):
        with pytest.raises(NotFound):
            review_delivery(store, ws.client.id, ws.project.id, "missing", "approve")

    def test_delivery_scoped_to_project(self, store, ws):
        delivery = _submit(store, ws)
        with pytest.raises(NotFound):
            review_delivery(store, ws.outsider.id, ws.other.id, delivery.id, "approve")
        assert delivery.status == "pending"


# ---------------------------------------------------------------------------
# TestReviewQueue
# ---------------------------------------------------------------------------

class TestReviewQueue:
    """Test get_review_queue."""

    def test_lists_pending_only(self, store, ws):
        first = _submit(store, ws, milestone_id=ws.design.id)
        second = _submit(store, ws, summary="Loose files")
        review_delivery(store, ws.client.id, ws.project.id, first.id, "approve")

        queue = get_review_queue(store, ws.client.id, ws.project.id)
        assert [item["id"] for item in queue] == [second.id]
        assert queue[0]["milestone_title"] is None

    def test_includes_milestone_title(self, store, ws):
        _submit(store, ws, milestone_id=ws.build.id)
        [item] = get_review_queue(store, ws.client.id, ws.project.id)
        assert item["milestone_title"] == "Build"
        assert item["summary"] == "First draft ready"

    def test_empty(self, store, ws):
        assert get_review_queue(store, ws.client.id, ws.project.id) == []

    def test_client_only(self, store, ws):
        with pytest.raises(Forbidden):
            get_review_queue(store, ws.talent.id, ws.project.id)
