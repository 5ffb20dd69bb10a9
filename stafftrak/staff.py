"""
stafftrak/staff.py
Staff directory queries, provisioning (single add / edit and CSV import) and
soft deactivation.

Profiles are created here before their owner ever signs in; the auth
callback later rebinds the row to the Google identity by email.
"""

import logging
import re
from datetime import date

import pandas as pd

from stafftrak.db import first_row, get_supabase_client, rows
from stafftrak.roles import Role

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    Role.DISTRICT_ADMIN: "District Admin",
    Role.HR:             "HR",
    Role.LICENSED_STAFF: "Licensed Staff",
    Role.CLASSIFIED_STAFF: "Classified Staff",
}

POSITION_OPTIONS = {
    "licensed": (
        "teacher", "school_counselor", "ec_counselor", "administrator", "principal",
        "assistant_principal", "director", "case_manager", "curriculum_specialist",
        "instructional_coach", "special_education_director", "student_support_specialist",
    ),
    "classified": (
        "secretary", "registrar", "va_advisor", "student_advisor", "student_support",
        "cultural_liaison", "paraprofessional", "receptionist", "translator",
        "community_partnerships", "technology_lead", "executive_assistant",
    ),
}


def role_label(role) -> str:
    parsed = Role.parse(role)
    return ROLE_LABELS.get(parsed, str(role or "—"))


def fetch_staff(evaluator_id: str | None = None, include_inactive: bool = False,
                client=None) -> list[dict]:
    """
    Return staff profiles ordered by name.

    With evaluator_id, only that evaluator's assigned staff are returned.
    """
    client = client or get_supabase_client()
    try:
        query = client.table("profiles").select("*")
        if evaluator_id is not None:
            query = query.eq("evaluator_id", evaluator_id)
        if not include_inactive:
            query = query.eq("is_active", True)
        return rows(query.order("full_name").execute())
    except Exception as exc:
        logger.error("Failed to load staff: %s", exc, exc_info=True)
        return []


def fetch_evaluators(client=None) -> list[dict]:
    """Active profiles that can evaluate: flagged evaluators plus district admins."""
    client = client or get_supabase_client()
    try:
        response = (
            client.table("profiles")
            .select("id, full_name, role, is_evaluator")
            .eq("is_active", True)
            .or_("is_evaluator.eq.true,role.eq.district_admin")
            .order("full_name")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load evaluators: %s", exc, exc_info=True)
        return []


def set_profile_active(profile_id: str, active: bool, client=None) -> str | None:
    """Archive or reactivate a profile.  Returns None on success or the error."""
    client = client or get_supabase_client()
    try:
        client.table("profiles").update({"is_active": active}).eq("id", profile_id).execute()
    except Exception as exc:
        logger.error("Failed to set is_active=%s on %s: %s", active, profile_id, exc, exc_info=True)
        return str(exc)
    return None


def position_label(position: str | None) -> str:
    """'school_counselor' → 'School Counselor'."""
    if not position:
        return "—"
    return position.replace("_", " ").title()


def staff_type_for_role(role) -> str:
    """Licensed staff are evaluated on the licensed rubric; everyone else on classified."""
    return "licensed" if Role.parse(role) is Role.LICENSED_STAFF else "classified"


# ─── Provisioning ────────────────────────────────────────────────────────────

PROFILE_FIELDS = (
    "full_name", "role", "position_type", "hire_date", "years_at_school",
    "evaluator_id", "is_evaluator", "is_active",
)


def _profile_payload(fields: dict) -> dict:
    payload = {key: fields[key] for key in PROFILE_FIELDS if key in fields}
    if "full_name" in payload:
        payload["full_name"] = (payload["full_name"] or "").strip()
    if "role" in payload:
        payload["staff_type"] = staff_type_for_role(payload["role"])
    if "evaluator_id" in payload:
        payload["evaluator_id"] = payload["evaluator_id"] or None
    if isinstance(payload.get("hire_date"), date):
        payload["hire_date"] = payload["hire_date"].isoformat()
    return payload


def create_profile(fields: dict, client=None) -> tuple[dict | None, str | None]:
    """
    Provision one staff member.  Returns (profile, None) or (None, error).

    Email and full name are required; role defaults to licensed staff and
    position to teacher.  The row stays unlinked until its owner signs in.
    """
    email = (fields.get("email") or "").strip().lower()
    if not email or not (fields.get("full_name") or "").strip():
        return None, "Name and email are required."

    payload = _profile_payload({
        "role": Role.LICENSED_STAFF.value,
        "position_type": "teacher",
        "years_at_school": 1,
        "is_active": True,
        **fields,
    })
    payload["email"] = email
    client = client or get_supabase_client()
    try:
        response = client.table("profiles").insert(payload).execute()
    except Exception as exc:
        logger.error("Failed to create profile for %s: %s", email, exc, exc_info=True)
        return None, str(exc)
    return first_row(response) or payload, None


def update_profile(profile_id: str, fields: dict, client=None) -> str | None:
    """Edit a staff member's profile, including their evaluator.  Returns None or the error."""
    payload = _profile_payload(fields)
    if "full_name" in payload and not payload["full_name"]:
        return "Name is required."
    client = client or get_supabase_client()
    try:
        client.table("profiles").update(payload).eq("id", profile_id).execute()
    except Exception as exc:
        logger.error("Failed to update profile %s: %s", profile_id, exc, exc_info=True)
        return str(exc)
    return None


def fetch_existing_emails(client=None) -> set[str]:
    client = client or get_supabase_client()
    try:
        response = client.table("profiles").select("email").execute()
    except Exception as exc:
        logger.error("Failed to load profile emails: %s", exc, exc_info=True)
        return set()
    return {(row.get("email") or "").lower() for row in rows(response) if row.get("email")}


# ─── CSV import ──────────────────────────────────────────────────────────────

# Substring → position_type, first match wins.
POSITION_KEYWORDS = (
    (("teacher",), "teacher"),
    (("counselor",), "school_counselor"),
    (("case manager",), "case_manager"),
    (("principal",), "principal"),
    (("director",), "director"),
    (("instructional coach",), "instructional_coach"),
    (("curriculum",), "curriculum_specialist"),
    (("advisor",), "advisor"),
    (("student support",), "student_support"),
    (("educational assistant", "para"), "paraprofessional"),
    (("registrar", "regis"), "registrar"),
    (("receptionist",), "receptionist"),
    (("secretary", "administrative support"), "secretary"),
    (("business office", "bookkeep"), "office_manager"),
    (("technology",), "technology_lead"),
    (("translator", "school support"), "translator"),
    (("community",), "community_partnerships"),
)

IMPORT_COLUMNS = [
    "row", "full_name", "email", "role", "staff_type", "position_type", "hire_date",
    "include", "issue",
]


def _title(text: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text.lower())


def parse_name(raw: str | None) -> tuple[str, str]:
    """
    Return (full_name, middle_initial) from a roster name.

    'SMITH, MARY J' → ('Mary Smith', 'J'); 'mary jo smith' → ('Mary Smith', '').
    """
    text = (raw or "").strip()
    if not text:
        return "", ""
    if "," in text:
        last, first = (part.strip() for part in text.split(",", 1))
        tokens = first.split()
        middle = ""
        if len(tokens) > 1:
            candidate = tokens[-1].replace(".", "")
            if 0 < len(candidate) <= 2:
                middle = candidate[0].upper()
        first_name = _title(tokens[0]) if tokens else ""
        return " ".join(filter(None, [first_name, _title(last)])), middle

    tokens = text.split()
    if len(tokens) == 1:
        return _title(tokens[0]), ""
    return f"{_title(tokens[0])} {_title(tokens[-1])}", ""


def map_staff_type(raw: str | None) -> tuple[str, str]:
    """Return (role, staff_type).  Certified or licensed rows are licensed staff."""
    if (raw or "").strip().lower() in ("certified", "licensed"):
        return Role.LICENSED_STAFF.value, "licensed"
    return Role.CLASSIFIED_STAFF.value, "classified"


def map_position_type(raw: str | None, staff_type: str) -> str:
    """Map a roster job title to a position_type, defaulting by staff type."""
    default = "teacher" if staff_type == "licensed" else "advisor"
    text = (raw or "").strip().lower()
    if not text:
        return default
    for keywords, position in POSITION_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return position
    # "IT" only as a word; as a substring it matches "facilities", "community", ...
    if re.search(r"\bit\b", text):
        return "technology_lead"
    return default


def parse_hire_date(raw: str | None) -> str | None:
    """M/D/YY, M/D/YYYY or YYYY-MM-DD → 'YYYY-MM-DD'.  Two-digit years above 50 are 19xx."""
    text = (raw or "").strip()
    match = re.fullmatch(r"(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})", text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        if year < 100:
            year = 1900 + year if year > 50 else 2000 + year
    elif re.fullmatch(r"\d{4}-\d{2}-\d{2}", text):
        year, month, day = (int(part) for part in text.split("-"))
    else:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _column(row: pd.Series, *names: str) -> str:
    for name in names:
        value = row.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def prepare_import(csv_file, existing_emails) -> pd.DataFrame:
    """
    Parse a roster CSV into rows ready to import, one per staff member.

    Headers are matched case-insensitively with spaces read as underscores
    (full_name/name, email, staff_type/type, position_type/position,
    hire_date/date).  Rows with no email, or an email already on file or earlier in the sheet, are kept
    for review with include=False and the reason in 'issue'.
    """
    if hasattr(csv_file, "seek"):
        csv_file.seek(0)
    raw = pd.read_csv(csv_file, dtype=str, keep_default_na=False, skipinitialspace=True)
    raw.columns = [str(column).strip().lower().replace(" ", "_") for column in raw.columns]

    seen = {email.lower() for email in existing_emails}
    prepared = []
    for index, row in raw.iterrows():
        full_name, _middle = parse_name(_column(row, "full_name", "name"))
        role, staff_type = map_staff_type(_column(row, "staff_type", "type"))
        email = _column(row, "email").lower()
        if not email:
            issue = "Missing email"
        elif email in seen:
            issue = "Duplicate email"
        else:
            issue = ""
            seen.add(email)
        prepared.append({
            "row": index + 2,  # 1-based, after the header line
            "full_name": full_name,
            "email": email,
            "role": role,
            "staff_type": staff_type,
            "position_type": map_position_type(_column(row, "position_type", "position"), staff_type),
            "hire_date": parse_hire_date(_column(row, "hire_date", "date")),
            "include": not issue,
            "issue": issue,
        })
    return pd.DataFrame(prepared, columns=IMPORT_COLUMNS)


def import_profiles(prepared: pd.DataFrame, client=None) -> dict:
    """
    Insert every included row as a new active profile.

    Returns {'success': n, 'skipped': n, 'errors': [(name, message), ...]};
    unique-constraint failures count as skipped.
    """
    results = {"success": 0, "skipped": 0, "errors": []}
    if prepared.empty:
        return results
    client = client or get_supabase_client()
    for record in prepared[prepared["include"]].to_dict("records"):
        payload = {
            "full_name": record["full_name"],
            "email": record["email"],
            "role": record["role"],
            "staff_type": record["staff_type"],
            "position_type": record["position_type"],
            "hire_date": record["hire_date"] if pd.notna(record["hire_date"]) else None,
            "years_at_school": 1,
            "is_evaluator": False,
            "is_active": True,
        }
        try:
            client.table("profiles").insert(payload).execute()
        except Exception as exc:
            message = str(exc)
            if "duplicate" in message.lower() or "unique" in message.lower():
                results["skipped"] += 1
                results["errors"].append((record["full_name"], "Already exists (duplicate email)"))
            else:
                logger.error("Import failed for %s: %s", record["email"], exc, exc_info=True)
                results["errors"].append((record["full_name"], message))
            continue
        results["success"] += 1
    logger.info("Staff import: %d added, %d skipped, %d errors",
                results["success"], results["skipped"],
                len(results["errors"]) - results["skipped"])
    return results
