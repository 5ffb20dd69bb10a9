"""
Unit tests for the pandas summaries in stafftrak/reports.py.

Only the pure DataFrame transforms and query composition are exercised;
running the SQL needs a live Postgres connection.
"""
import pandas as pd
from psycopg2 import sql

from stafftrak.reports import (
    RATING_ORDER,
    evaluation_overview_sql,
    evaluation_export,
    meeting_completion_by_evaluator,
    rating_distribution,
)
from tests.conftest import NOW


# ── rating_distribution ────────────────────────────────────────────────────────

class TestRatingDistribution:
    def test_counts_every_band_in_order(self):
        df = pd.DataFrame({"overall_rating": ["Effective", "Effective", "Highly Effective", None, ""]})
        dist = rating_distribution(df)
        assert list(dist["rating"]) == RATING_ORDER
        assert dict(zip(dist["rating"], dist["count"])) == {
            "Highly Effective": 1,
            "Effective": 2,
            "Developing": 0,
            "Needs Improvement": 0,
            "N/A": 2,
        }

    def test_empty_frame_gives_zero_counts(self):
        dist = rating_distribution(pd.DataFrame())
        assert list(dist["rating"]) == RATING_ORDER
        assert dist["count"].sum() == 0


# ── meeting_completion_by_evaluator ────────────────────────────────────────────

def test_meeting_completion_by_evaluator():
    df = pd.DataFrame([
        {"id": "m1", "evaluator_name": "Ann", "scheduled_at": "2026-10-01T10:00:00Z",
         "completed_at": "2026-10-01T11:00:00Z", "status": "completed"},
        {"id": "m2", "evaluator_name": "Ann", "scheduled_at": "2026-10-10T10:00:00Z",
         "completed_at": None, "status": "scheduled"},
        {"id": "m3", "evaluator_name": "Ben", "scheduled_at": "2026-10-25T10:00:00Z",
         "completed_at": None, "status": "scheduled"},
    ])
    table = meeting_completion_by_evaluator(df, NOW).set_index("evaluator_name")
    assert table.loc["Ann", "Completed"] == 1
    assert table.loc["Ann", "Overdue"] == 1
    assert table.loc["Ann", "Scheduled"] == 0
    assert table.loc["Ben", "Scheduled"] == 1


def test_meeting_completion_empty():
    assert list(meeting_completion_by_evaluator(pd.DataFrame()).columns) == ["evaluator_name"]


# ── evaluation_export ──────────────────────────────────────────────────────────

def test_evaluation_export_columns_and_status():
    df = pd.DataFrame([
        {"full_name": "Sam", "staff_type": "licensed", "evaluator_name": "Eve",
         "overall_score": 3.5, "overall_rating": "Highly Effective",
         "status": "pending_staff_signature", "staff_id": "s1"},
        {"full_name": "Kim", "staff_type": "classified", "evaluator_name": None,
         "overall_score": None, "overall_rating": None, "status": None, "staff_id": "s2"},
    ])
    out = evaluation_export(df)
    assert list(out.columns) == [
        "Staff Member", "Staff Type", "Evaluator", "Overall Score", "Summative Rating", "Status",
    ]
    assert list(out["Status"]) == ["Pending Staff Signature", "Not Started"]
    assert out.loc[1, "Summative Rating"] == ""


def test_evaluation_export_empty():
    assert evaluation_export(pd.DataFrame()).empty


# ── evaluation_overview_sql ────────────────────────────────────────────────────

def table_identifiers(composed):
    return [part.strings for part in composed.seq if isinstance(part, sql.Identifier)]


class TestEvaluationOverviewSql:
    def test_default_table(self):
        assert table_identifiers(evaluation_overview_sql()) == [("summative_evaluations",)]

    def test_table_override_is_used(self, monkeypatch):
        monkeypatch.setenv("EVALUATIONS_TABLE", "evaluations")
        assert table_identifiers(evaluation_overview_sql()) == [("evaluations",)]

    def test_invalid_override_never_reaches_the_query(self, monkeypatch):
        monkeypatch.setenv("EVALUATIONS_TABLE", "x; DROP TABLE profiles")
        composed = evaluation_overview_sql()
        assert table_identifiers(composed) == [("summative_evaluations",)]
        assert "DROP" not in repr(composed)
