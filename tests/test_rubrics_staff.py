"""
Unit tests for stafftrak/rubrics.py and stafftrak/staff.py.
"""
from stafftrak.rubrics import (
    fetch_standards,
    group_rubrics_by_staff_type,
    group_standards_by_domain,
    load_rubric_detail,
)
from stafftrak.staff import fetch_evaluators, fetch_staff, role_label, set_profile_active


# ── rubrics ────────────────────────────────────────────────────────────────────

class TestRubrics:
    def test_group_by_staff_type(self):
        rubrics = [
            {"id": 1, "staff_type": "classified"},
            {"id": 2, "staff_type": "licensed"},
            {"id": 3, "staff_type": "substitute_staff"},
        ]
        grouped = group_rubrics_by_staff_type(rubrics)
        assert list(grouped) == ["Licensed Staff", "Classified Staff", "Substitute Staff"]
        assert grouped["Licensed Staff"] == [{"id": 2, "staff_type": "licensed"}]

    def test_empty_groups_are_dropped(self):
        assert list(group_rubrics_by_staff_type([{"id": 1, "staff_type": "licensed"}])) == ["Licensed Staff"]

    def test_group_standards_keeps_order(self):
        standards = [
            {"id": "s1", "domain_id": "d1"},
            {"id": "s2", "domain_id": "d2"},
            {"id": "s3", "domain_id": "d1"},
        ]
        grouped = group_standards_by_domain(standards)
        assert [s["id"] for s in grouped["d1"]] == ["s1", "s3"]

    def test_no_domains_means_no_standards_query(self, client):
        assert fetch_standards([], client) == []
        assert client.executed == []

    def test_load_rubric_detail(self, client):
        client.queue("rubric_domains", [{"id": "d1"}, {"id": "d2"}])
        client.queue("rubric_standards", [{"id": "s1", "domain_id": "d2"}])
        domains, standards = load_rubric_detail("r1", client)
        assert [d["id"] for d in domains] == ["d1", "d2"]
        assert standards == {"d2": [{"id": "s1", "domain_id": "d2"}]}
        standards_query = client.executed_on("rubric_standards")[0]
        assert standards_query.called("in_") == [("domain_id", ["d1", "d2"])]


# ── staff ──────────────────────────────────────────────────────────────────────

class TestStaff:
    def test_active_staff_by_default(self, client):
        fetch_staff(client=client)
        assert client.executed[0].filters() == {"is_active": True}

    def test_caseload_and_archived(self, client):
        fetch_staff(evaluator_id="eval-1", include_inactive=True, client=client)
        assert client.executed[0].filters() == {"evaluator_id": "eval-1"}

    def test_evaluators_include_admins(self, client):
        fetch_evaluators(client)
        assert client.executed[0].called("or_") == [("is_evaluator.eq.true,role.eq.district_admin",)]

    def test_archive(self, client):
        assert set_profile_active("p1", False, client) is None
        (update,) = client.executed_on("profiles", "update")
        assert update.payload == {"is_active": False}
        assert update.filters() == {"id": "p1"}

    def test_archive_error(self, client):
        client.fail = RuntimeError("rls")
        assert set_profile_active("p1", True, client) == "rls"

    def test_role_label(self):
        assert role_label("district_admin") == "District Admin"
        assert role_label("classified_staff") == "Classified Staff"
        assert role_label("custom") == "custom"
        assert role_label(None) == "—"
