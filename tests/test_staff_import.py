"""
Unit tests for staff provisioning in stafftrak/staff.py.

Tests cover:
  - create_profile / update_profile payloads (staff_type, evaluator, dates)
  - roster name, staff type, position and hire date parsing
  - prepare_import: header aliases, duplicate and missing emails
  - import_profiles: inserts, unique-violation skips, other errors
"""
import io
from datetime import date

import pytest

from stafftrak.staff import (
    create_profile,
    fetch_existing_emails,
    import_profiles,
    map_position_type,
    map_staff_type,
    parse_hire_date,
    parse_name,
    position_label,
    prepare_import,
    update_profile,
)


# ── helpers ────────────────────────────────────────────────────────────────────

def roster(text):
    return io.StringIO(text.strip() + "\n")


ROSTER = """
Name,Email,Type,Position,Hire Date
"SMITH, MARY J",Mary.Smith@summitlc.org,Certified,Secondary Teacher,8/15/19
john doe,jdoe@summitlc.org,Classified,Registrar,2021-07-01
"LEE, ANN",,Classified,Receptionist,
"JONES, PAT",existing@summitlc.org,Licensed,School Counselor,1/2/99
"KIM, SAM",mary.smith@summitlc.org,Classified,Paraprofessional,13/45/20
"""


# ── create / update ────────────────────────────────────────────────────────────

class TestCreateProfile:
    def test_defaults_and_derived_fields(self, client):
        created, error = create_profile(
            {"full_name": "  Pat Teacher ", "email": " Pat@SummitLC.org", "evaluator_id": "",
             "hire_date": date(2024, 8, 1)},
            client,
        )
        assert error is None
        (insert,) = client.executed_on("profiles", "insert")
        assert insert.payload == {
            "full_name": "Pat Teacher",
            "email": "pat@summitlc.org",
            "role": "licensed_staff",
            "staff_type": "licensed",
            "position_type": "teacher",
            "years_at_school": 1,
            "evaluator_id": None,
            "hire_date": "2024-08-01",
            "is_active": True,
        }
        assert created["id"] == "new-id"

    def test_classified_role_sets_classified_staff_type(self, client):
        create_profile({"full_name": "Ray", "email": "ray@summitlc.org", "role": "classified_staff",
                        "position_type": "registrar"}, client)
        (insert,) = client.executed_on("profiles", "insert")
        assert insert.payload["staff_type"] == "classified"

    @pytest.mark.parametrize("fields", [{"full_name": "No Email"}, {"email": "x@summitlc.org"},
                                        {"full_name": " ", "email": "x@summitlc.org"}])
    def test_name_and_email_required(self, client, fields):
        created, error = create_profile(fields, client)
        assert created is None
        assert error
        assert client.executed == []

    def test_insert_error(self, client):
        client.fail = RuntimeError("duplicate key value")
        created, error = create_profile({"full_name": "A", "email": "a@summitlc.org"}, client)
        assert created is None
        assert error == "duplicate key value"


class TestUpdateProfile:
    def test_assigns_evaluator_and_rederives_staff_type(self, client):
        error = update_profile(
            "p1", {"full_name": "Pat", "role": "classified_staff", "evaluator_id": "eval-9"}, client,
        )
        assert error is None
        (update,) = client.executed_on("profiles", "update")
        assert update.filters() == {"id": "p1"}
        assert update.payload == {
            "full_name": "Pat", "role": "classified_staff", "staff_type": "classified",
            "evaluator_id": "eval-9",
        }

    def test_unassign_evaluator(self, client):
        update_profile("p1", {"evaluator_id": ""}, client)
        (update,) = client.executed_on("profiles", "update")
        assert update.payload == {"evaluator_id": None}

    def test_email_is_not_editable(self, client):
        update_profile("p1", {"email": "new@summitlc.org", "years_at_school": 3}, client)
        (update,) = client.executed_on("profiles", "update")
        assert update.payload == {"years_at_school": 3}

    def test_blank_name_rejected(self, client):
        assert update_profile("p1", {"full_name": "  "}, client) == "Name is required."
        assert client.executed == []


def test_existing_emails_are_lowercased(client):
    client.queue("profiles", [{"email": "A@SummitLC.org"}, {"email": None}])
    assert fetch_existing_emails(client) == {"a@summitlc.org"}


# ── parsing ────────────────────────────────────────────────────────────────────

class TestParsing:
    @pytest.mark.parametrize("raw, expected", [
        ("SMITH, MARY J", ("Mary Smith", "J")),
        ("O'BRIEN, SEAN P.", ("Sean O'Brien", "P")),
        ("GARCIA-LOPEZ, ANA", ("Ana Garcia-Lopez", "")),
        ("mary jo smith", ("Mary Smith", "")),
        ("CHER", ("Cher", "")),
        ("", ("", "")),
        (None, ("", "")),
    ])
    def test_parse_name(self, raw, expected):
        assert parse_name(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("Certified", ("licensed_staff", "licensed")),
        (" licensed ", ("licensed_staff", "licensed")),
        ("Classified", ("classified_staff", "classified")),
        ("Confidential", ("classified_staff", "classified")),
        ("", ("classified_staff", "classified")),
    ])
    def test_map_staff_type(self, raw, expected):
        assert map_staff_type(raw) == expected

    @pytest.mark.parametrize("raw, staff_type, expected", [
        ("Secondary Teacher", "licensed", "teacher"),
        ("School Counselor", "licensed", "school_counselor"),
        ("Assistant Principal", "licensed", "principal"),
        ("Educational Assistant", "classified", "paraprofessional"),
        ("Business Office Manager", "classified", "office_manager"),
        ("IT Support", "classified", "technology_lead"),
        ("Community Outreach", "classified", "community_partnerships"),
        ("Facilities", "classified", "advisor"),
        ("Facilities", "licensed", "teacher"),
        ("", "licensed", "teacher"),
    ])
    def test_map_position_type(self, raw, staff_type, expected):
        assert map_position_type(raw, staff_type) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("8/15/19", "2019-08-15"),
        ("1/2/99", "1999-01-02"),
        ("12/31/2020", "2020-12-31"),
        ("2021-07-01", "2021-07-01"),
        ("13/45/20", None),
        ("next fall", None),
        ("", None),
    ])
    def test_parse_hire_date(self, raw, expected):
        assert parse_hire_date(raw) == expected

    def test_position_label(self):
        assert position_label("school_counselor") == "School Counselor"
        assert position_label(None) == "—"


# ── prepare_import ─────────────────────────────────────────────────────────────

class TestPrepareImport:
    def test_rows_are_normalised(self):
        prepared = prepare_import(roster(ROSTER), {"existing@summitlc.org"})
        first = prepared.iloc[0]
        assert first["row"] == 2
        assert first["full_name"] == "Mary Smith"
        assert first["email"] == "mary.smith@summitlc.org"
        assert first["role"] == "licensed_staff"
        assert first["position_type"] == "teacher"
        assert first["hire_date"] == "2019-08-15"
        assert bool(first["include"])

        second = prepared.iloc[1]
        assert second["full_name"] == "John Doe"
        assert second["position_type"] == "registrar"
        assert second["hire_date"] == "2021-07-01"

    def test_missing_and_duplicate_emails_are_excluded(self):
        prepared = prepare_import(roster(ROSTER), {"EXISTING@summitlc.org"})
        assert list(prepared["issue"]) == [
            "", "", "Missing email", "Duplicate email", "Duplicate email",
        ]
        assert list(prepared["include"]) == [True, True, False, False, False]
        assert prepared.iloc[4]["hire_date"] is None

    def test_full_name_header_alias(self):
        prepared = prepare_import(
            roster("full_name,email,staff_type,position_type\nAnn Lee,ann@summitlc.org,,"), set(),
        )
        assert prepared.iloc[0]["full_name"] == "Ann Lee"
        assert prepared.iloc[0]["position_type"] == "advisor"

    def test_header_only_file(self):
        assert prepare_import(roster("name,email"), set()).empty


# ── import_profiles ────────────────────────────────────────────────────────────

class TestImportProfiles:
    def test_included_rows_are_inserted(self, client):
        prepared = prepare_import(roster(ROSTER), set())
        prepared.loc[1, "include"] = False
        client.queue("profiles", [{"id": "a"}], RuntimeError('duplicate key value violates unique constraint'))

        results = import_profiles(prepared, client)

        inserts = client.executed_on("profiles", "insert")
        assert [q.payload["email"] for q in inserts] == [
            "mary.smith@summitlc.org", "existing@summitlc.org",
        ]
        assert inserts[0].payload["is_active"] is True
        assert inserts[0].payload["is_evaluator"] is False
        assert inserts[0].payload["years_at_school"] == 1
        assert results["success"] == 1
        assert results["skipped"] == 1
        assert results["errors"] == [("Pat Jones", "Already exists (duplicate email)")]

    def test_other_errors_are_reported(self, client):
        prepared = prepare_import(roster("name,email\nAnn Lee,ann@summitlc.org"), set())
        client.queue("profiles", RuntimeError("permission denied"))
        results = import_profiles(prepared, client)
        assert results == {"success": 0, "skipped": 0, "errors": [("Ann Lee", "permission denied")]}

    def test_nothing_to_import(self, client):
        assert import_profiles(prepare_import(roster("name,email"), set()), client)["success"] == 0
        assert client.executed == []
