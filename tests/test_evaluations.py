"""
Unit tests for stafftrak/evaluations.py against the fake Supabase client.

Tests cover:
  - build_evaluation_payload: derived score / rating, narrative defaults
  - fetch_evaluation: per-evaluator and any-evaluator lookups
  - evaluations_table: override and identifier validation
  - save_evaluation: insert vs update, draft status, signed records, authorship
  - submit_evaluation: validation, evaluator signature, notification
  - staff_sign_evaluation / save_staff_comments
  - fetch_evaluations_for_staff_ids: newest per staff member
"""
import pytest

from stafftrak.evaluations import (
    EVALUATIONS_TABLE,
    build_evaluation_payload,
    evaluations_table,
    fetch_evaluation,
    fetch_evaluations_for_staff_ids,
    fetch_latest_evaluation_for_staff,
    save_evaluation,
    save_staff_comments,
    staff_sign_evaluation,
    submit_evaluation,
)

TABLE = "summative_evaluations"
STAFF = {"id": "staff-1", "full_name": "Sam Staff", "email": "sam@summitlc.org"}
EVALUATOR = {"id": "eval-1", "full_name": "Eve Evaluator"}
SCORES = {"d1": {"score": 3, "feedback": "Solid"}, "d2": {"score": 4, "feedback": ""}}
EVALUATOR_SIGNED = {
    "id": "ev-1",
    "evaluator_id": "eval-1",
    "status": "pending_staff_signature",
    "evaluator_signature_at": "2026-10-01T10:00:00Z",
    "domain_scores": SCORES,
}
SIGNED = {
    "id": "ev-1",
    "evaluator_signature_at": "2026-10-01T10:00:00Z",
    "staff_signature_at": "2026-10-02T10:00:00Z",
}


# ── payload ────────────────────────────────────────────────────────────────────

class TestPayload:
    def test_overall_score_and_rating_are_derived(self):
        payload = build_evaluation_payload("staff-1", "eval-1", SCORES, {"areas_of_strength": "Planning"})
        assert payload["overall_score"] == 3.5
        assert payload["overall_rating"] == "Highly Effective"
        assert payload["areas_of_strength"] == "Planning"
        assert payload["areas_for_growth"] == ""

    def test_unscored_payload_has_no_rating(self):
        payload = build_evaluation_payload("staff-1", "eval-1", {"d1": {"score": None}}, {})
        assert payload["overall_score"] is None
        assert payload["overall_rating"] is None


# ── fetch_evaluation ───────────────────────────────────────────────────────────

class TestFetchEvaluation:
    def test_evaluator_sees_own_evaluation(self, client):
        client.queue(TABLE, [{"id": "ev-1"}])
        assert fetch_evaluation("staff-1", "eval-1", client=client) == {"id": "ev-1"}
        query = client.executed[0]
        assert query.filters() == {"staff_id": "staff-1", "evaluator_id": "eval-1"}
        assert query.called("order") == [("created_at",)]

    def test_admin_sees_evaluation_by_any_evaluator(self, client):
        client.queue(TABLE, [{"id": "ev-1", "evaluator_id": "eval-1"}])
        evaluation = fetch_evaluation("staff-1", client=client)
        assert evaluation["evaluator_id"] == "eval-1"
        assert client.executed[0].filters() == {"staff_id": "staff-1"}

    def test_error_returns_none(self, client):
        client.fail = RuntimeError("rls")
        assert fetch_evaluation("staff-1", client=client) is None


class TestEvaluationsTable:
    def test_default(self):
        assert evaluations_table() == EVALUATIONS_TABLE

    def test_override(self, monkeypatch):
        monkeypatch.setenv("EVALUATIONS_TABLE", "evaluations_2026")
        assert evaluations_table() == "evaluations_2026"

    @pytest.mark.parametrize("name", ["evals; drop table profiles", "public.evals", "2026_evals", 'evals"x'])
    def test_non_identifiers_fall_back_to_default(self, monkeypatch, name):
        monkeypatch.setenv("EVALUATIONS_TABLE", name)
        assert evaluations_table() == EVALUATIONS_TABLE


# ── save_evaluation ────────────────────────────────────────────────────────────

class TestSaveEvaluation:
    def test_new_draft_is_inserted(self, client):
        saved, error = save_evaluation(None, "staff-1", "eval-1", SCORES, {}, client=client)
        assert error is None
        (insert,) = client.executed_on(TABLE, "insert")
        assert insert.payload["status"] == "draft"
        assert saved["id"] == "new-id"

    def test_existing_draft_is_updated(self, client):
        saved, error = save_evaluation({"id": "ev-1", "status": "draft"}, "staff-1", "eval-1", SCORES, {},
                                       client=client)
        assert error is None
        (update,) = client.executed_on(TABLE, "update")
        assert update.filters() == {"id": "ev-1"}
        assert saved["id"] == "ev-1"
        assert saved["overall_score"] == 3.5

    def test_signed_evaluation_is_locked(self, client):
        saved, error = save_evaluation(SIGNED, "staff-1", "eval-1", SCORES, {}, client=client)
        assert saved is None
        assert error
        assert client.executed == []

    def test_evaluator_signed_evaluation_cannot_be_resaved(self, client):
        saved, error = save_evaluation(EVALUATOR_SIGNED, "staff-1", "eval-1", {"d1": {"score": 1}}, {},
                                       client=client)
        assert saved is None
        assert "signed" in error
        assert client.executed == []

    def test_admin_save_keeps_the_original_evaluator(self, client):
        draft = {"id": "ev-1", "evaluator_id": "eval-1", "status": "draft"}
        saved, error = save_evaluation(draft, "staff-1", "admin-1", SCORES, {}, client=client)
        assert error is None
        (update,) = client.executed_on(TABLE, "update")
        assert update.payload["evaluator_id"] == "eval-1"
        assert saved["evaluator_id"] == "eval-1"

    def test_table_name_can_be_overridden(self, client, monkeypatch):
        monkeypatch.setenv("EVALUATIONS_TABLE", "evaluations")
        save_evaluation(None, "staff-1", "eval-1", SCORES, {}, client=client)
        assert client.executed[0].table == "evaluations"


# ── submit_evaluation ──────────────────────────────────────────────────────────

class TestSubmitEvaluation:
    def test_submit_signs_and_notifies(self, client):
        saved, error = submit_evaluation(None, STAFF, EVALUATOR, SCORES, {}, client=client)
        assert error is None
        assert saved["status"] == "pending_staff_signature"
        assert saved["evaluator_signature_at"]
        ((name, options),) = client.functions.invocations
        assert name == "send-email"
        assert options["body"]["to"] == "sam@summitlc.org"
        assert options["body"]["template"] == "evaluation_ready"

    def test_submit_requires_a_score(self, client):
        saved, error = submit_evaluation(None, STAFF, EVALUATOR, {"d1": {"score": None}}, {}, client=client)
        assert saved is None
        assert "Score" in error
        assert client.executed == []
        assert client.functions.invocations == []

    def test_failed_save_does_not_notify(self, client):
        client.fail = RuntimeError("write failed")
        _saved, error = submit_evaluation(None, STAFF, EVALUATOR, SCORES, {}, client=client)
        assert error == "write failed"
        assert client.functions.invocations == []

    def test_already_submitted_is_rejected(self, client):
        saved, error = submit_evaluation(EVALUATOR_SIGNED, STAFF, EVALUATOR, SCORES, {}, client=client)
        assert saved is None
        assert "submitted" in error
        assert client.executed == []
        assert client.functions.invocations == []

    def test_failed_email_does_not_undo_submission(self, client):
        client.functions.error = RuntimeError("smtp down")
        saved, error = submit_evaluation(None, STAFF, EVALUATOR, SCORES, {}, client=client)
        assert error is None
        assert saved["status"] == "pending_staff_signature"


# ── staff sign-off ─────────────────────────────────────────────────────────────

class TestStaffSignOff:
    def test_sign_completes_evaluation(self, client):
        evaluation = {"id": "ev-1", "evaluator_signature_at": "2026-10-01T10:00:00Z"}
        signed, error = staff_sign_evaluation(evaluation, "Thanks", client=client)
        assert error is None
        assert signed["status"] == "completed"
        assert signed["staff_comments"] == "Thanks"
        assert signed["staff_signature_at"] == signed["completed_at"]

    def test_cannot_sign_before_evaluator(self, client):
        signed, error = staff_sign_evaluation({"id": "ev-1"}, "", client=client)
        assert signed is None
        assert error
        assert client.executed == []

    def test_cannot_sign_twice(self, client):
        signed, error = staff_sign_evaluation(SIGNED, "", client=client)
        assert signed is None
        assert client.executed == []

    def test_comments_blocked_once_locked(self, client):
        assert save_staff_comments(SIGNED, "late", client=client)
        assert save_staff_comments({"id": "ev-2"}, "ok", client=client) is None
        (update,) = client.executed_on(TABLE, "update")
        assert update.payload == {"staff_comments": "ok"}


# ── reads ──────────────────────────────────────────────────────────────────────

def test_newest_evaluation_per_staff(client):
    client.queue(TABLE, [
        {"id": "new-a", "staff_id": "a"},
        {"id": "new-b", "staff_id": "b"},
        {"id": "old-a", "staff_id": "a"},
    ])
    latest = fetch_evaluations_for_staff_ids(["a", "b"], client)
    assert latest == {"a": {"id": "new-a", "staff_id": "a"}, "b": {"id": "new-b", "staff_id": "b"}}


def test_no_staff_ids_means_no_query(client):
    assert fetch_evaluations_for_staff_ids([], client) == {}
    assert client.executed == []


def test_staff_never_see_drafts(client):
    fetch_latest_evaluation_for_staff("staff-1", client)
    (query,) = client.executed
    assert query.called("in_") == [("status", ["pending_staff_signature", "completed"])]
