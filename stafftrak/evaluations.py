"""
stafftrak/evaluations.py
Summative evaluation drafting, submission and sign-off.

Lifecycle: draft → pending_staff_signature (evaluator signs on submit) →
completed (staff signs).  Once both signatures exist the record is treated
as locked by the pages; nothing here re-opens it.
"""

import logging
import re
from datetime import datetime, timezone

from stafftrak.db import _get_secret, first_row, get_supabase_client, rows
from stafftrak.notify import notify_evaluation_ready
from stafftrak.scoring import calculate_overall_score, overall_rating
from stafftrak.status import EvaluationStatus, derive_evaluation_status, is_locked

logger = logging.getLogger(__name__)

EVALUATIONS_TABLE = "summative_evaluations"

NARRATIVE_FIELDS = (
    ("areas_of_strength",   "Areas of Strength"),
    ("areas_for_growth",    "Areas for Growth"),
    ("recommended_support", "Recommended Support"),
    ("additional_comments", "Additional Comments"),
)


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def evaluations_table() -> str:
    """
    Return the evaluations table name, honouring the EVALUATIONS_TABLE secret.

    The name is also spliced into reporting SQL, so anything that is not a
    plain identifier is rejected in favour of the default.
    """
    name = (_get_secret("EVALUATIONS_TABLE", EVALUATIONS_TABLE) or EVALUATIONS_TABLE).strip()
    if not _IDENTIFIER.match(name):
        logger.error("Ignoring invalid EVALUATIONS_TABLE %r; using %s", name, EVALUATIONS_TABLE)
        return EVALUATIONS_TABLE
    return name


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ─── Reads ───────────────────────────────────────────────────────────────────

def fetch_staff_profile(staff_id: str, client=None) -> dict | None:
    client = client or get_supabase_client()
    try:
        return first_row(
            client.table("profiles").select("*").eq("id", staff_id).limit(1).execute()
        )
    except Exception as exc:
        logger.error("Failed to load profile %s: %s", staff_id, exc, exc_info=True)
        return None


def fetch_rubric_for_staff(staff: dict, client=None) -> dict | None:
    """Return the active rubric matching the staff member's staff_type."""
    client = client or get_supabase_client()
    try:
        return first_row(
            client.table("rubrics")
            .select("*")
            .eq("staff_type", staff.get("staff_type"))
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to load rubric for %s: %s", staff.get("id"), exc, exc_info=True)
        return None


def fetch_evaluation(staff_id: str, evaluator_id: str | None = None, client=None) -> dict | None:
    """
    Return the newest evaluation for a staff member.

    With evaluator_id only that evaluator's evaluations are considered;
    without it (district admins) the newest by any evaluator is returned.
    """
    client = client or get_supabase_client()
    try:
        query = client.table(evaluations_table()).select("*").eq("staff_id", staff_id)
        if evaluator_id is not None:
            query = query.eq("evaluator_id", evaluator_id)
        return first_row(query.order("created_at", desc=True).limit(1).execute())
    except Exception as exc:
        logger.error("Failed to load evaluation for %s: %s", staff_id, exc, exc_info=True)
        return None


def fetch_latest_evaluation_for_staff(staff_id: str, client=None) -> dict | None:
    """
    Return the newest evaluation a staff member may see.

    Drafts stay private to the evaluator; only submitted or completed
    evaluations are returned.
    """
    client = client or get_supabase_client()
    try:
        return first_row(
            client.table(evaluations_table())
            .select("*, evaluator:evaluator_id (id, full_name)")
            .eq("staff_id", staff_id)
            .in_("status", [
                EvaluationStatus.PENDING_STAFF_SIGNATURE.value,
                EvaluationStatus.COMPLETED.value,
            ])
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to load evaluation for staff %s: %s", staff_id, exc, exc_info=True)
        return None


def fetch_evaluations_for_staff_ids(staff_ids: list, client=None) -> dict:
    """staff_id → newest evaluation, for the summatives overview."""
    if not staff_ids:
        return {}
    client = client or get_supabase_client()
    try:
        response = (
            client.table(evaluations_table())
            .select("*")
            .in_("staff_id", list(staff_ids))
            .order("created_at", desc=True)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to load evaluations: %s", exc, exc_info=True)
        return {}

    latest: dict = {}
    for evaluation in rows(response):
        latest.setdefault(evaluation.get("staff_id"), evaluation)
    return latest


def fetch_domains_by_ids(domain_ids: list, client=None) -> list[dict]:
    if not domain_ids:
        return []
    client = client or get_supabase_client()
    try:
        return rows(
            client.table("rubric_domains")
            .select("*")
            .in_("id", list(domain_ids))
            .order("sort_order")
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to load domains: %s", exc, exc_info=True)
        return []


# ─── Writes ──────────────────────────────────────────────────────────────────

def build_evaluation_payload(staff_id: str, evaluator_id: str, domain_scores: dict,
                             narrative: dict) -> dict:
    """Assemble the stored evaluation fields, deriving the overall score and rating."""
    overall_score = calculate_overall_score(domain_scores)
    payload = {
        "staff_id": staff_id,
        "evaluator_id": evaluator_id,
        "domain_scores": domain_scores,
        "overall_score": overall_score,
        "overall_rating": overall_rating(overall_score),
    }
    for key, _label in NARRATIVE_FIELDS:
        payload[key] = narrative.get(key) or ""
    return payload


def _upsert(evaluation: dict | None, payload: dict, client) -> tuple[dict | None, str | None]:
    try:
        if evaluation and evaluation.get("id"):
            client.table(evaluations_table()).update(payload).eq("id", evaluation["id"]).execute()
            return {**evaluation, **payload}, None
        response = client.table(evaluations_table()).insert(payload).execute()
        return first_row(response) or payload, None
    except Exception as exc:
        logger.error("Failed to save evaluation for %s: %s", payload.get("staff_id"), exc, exc_info=True)
        return None, str(exc)


def _author_id(evaluation: dict | None, evaluator_id: str) -> str:
    # A district admin editing someone else's draft does not take it over.
    return (evaluation or {}).get("evaluator_id") or evaluator_id


def save_evaluation(evaluation: dict | None, staff_id: str, evaluator_id: str,
                    domain_scores: dict, narrative: dict,
                    client=None) -> tuple[dict | None, str | None]:
    """
    Save a draft.  Returns (saved evaluation, None) or (None, error).

    Only unsigned drafts can be saved; once the evaluator has signed, the
    scores and narrative are frozen.
    """
    if derive_evaluation_status(evaluation) is not EvaluationStatus.DRAFT:
        return None, "This evaluation has been signed and can no longer be edited."
    client = client or get_supabase_client()
    payload = build_evaluation_payload(
        staff_id, _author_id(evaluation, evaluator_id), domain_scores, narrative
    )
    payload["status"] = EvaluationStatus.DRAFT.value
    return _upsert(evaluation, payload, client)


def submit_evaluation(evaluation: dict | None, staff: dict, evaluator: dict,
                      domain_scores: dict, narrative: dict,
                      client=None) -> tuple[dict | None, str | None]:
    """
    Sign the evaluation as evaluator and hand it to the staff member.

    The staff member is emailed once the record is stored; a failed email
    does not undo the submission.
    """
    if derive_evaluation_status(evaluation) is not EvaluationStatus.DRAFT:
        return None, "This evaluation has already been submitted."
    payload = build_evaluation_payload(
        staff["id"], _author_id(evaluation, evaluator["id"]), domain_scores, narrative
    )
    if payload["overall_score"] is None:
        return None, "Score at least one domain before submitting."

    client = client or get_supabase_client()
    payload["status"] = EvaluationStatus.PENDING_STAFF_SIGNATURE.value
    payload["evaluator_signature_at"] = _now_iso()
    saved, error = _upsert(evaluation, payload, client)
    if error is None and staff.get("email"):
        notify_evaluation_ready(
            staff["email"], staff.get("full_name"), evaluator.get("full_name"), client=client
        )
    return saved, error


def save_staff_comments(evaluation: dict, comments: str, client=None) -> str | None:
    if is_locked(evaluation):
        return "This evaluation has been signed and can no longer be edited."
    client = client or get_supabase_client()
    try:
        (
            client.table(evaluations_table())
            .update({"staff_comments": comments})
            .eq("id", evaluation["id"])
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to save comments on %s: %s", evaluation.get("id"), exc, exc_info=True)
        return str(exc)
    return None


def staff_sign_evaluation(evaluation: dict, comments: str,
                          client=None) -> tuple[dict | None, str | None]:
    """Record the staff signature, completing the evaluation."""
    if not evaluation.get("evaluator_signature_at"):
        return None, "The evaluator has not signed this evaluation yet."
    if is_locked(evaluation):
        return None, "This evaluation has already been signed."

    now = _now_iso()
    updates = {
        "staff_comments": comments,
        "staff_signature_at": now,
        "status": EvaluationStatus.COMPLETED.value,
        "completed_at": now,
    }
    client = client or get_supabase_client()
    try:
        client.table(evaluations_table()).update(updates).eq("id", evaluation["id"]).execute()
    except Exception as exc:
        logger.error("Failed to sign evaluation %s: %s", evaluation.get("id"), exc, exc_info=True)
        return None, str(exc)
    return {**evaluation, **updates}, None
