"""
stafftrak/meetings.py
Meeting scheduling and sign-off for StaffTrak.

Read helpers return an empty list / None when the store reports an error so
pages can render an empty state.  Write helpers return None on success and
the error message on failure.
"""

import logging
from datetime import datetime, timezone

from stafftrak.db import first_row, get_supabase_client, rows

logger = logging.getLogger(__name__)

MEETING_TYPES = {
    "initial_goals":    "Initial Goals Meeting",
    "mid_year_review":  "Mid-Year Review",
    "end_year_review":  "End-of-Year Review",
    "post_observation": "Post-Observation",
}

MEETING_TYPE_DESCRIPTIONS = {
    "initial_goals":   "Discuss self-reflection results and finalize your goals for the year.",
    "mid_year_review": "Review goal progress, discuss observations, and adjust strategies as needed.",
    "end_year_review": "Final review of goal outcomes before summative evaluation.",
}

MEETING_TYPE_COLOURS = {
    "initial_goals":    "#2C3E7E",
    "mid_year_review":  "#477FC1",
    "end_year_review":  "#F3843E",
    "post_observation": "#6B7280",
}

_MEETING_SELECT = (
    "*, staff:staff_id (id, full_name, position_type, staff_type, email), "
    "evaluator:evaluator_id (id, full_name, email)"
)


def meeting_type_label(meeting_type: str | None) -> str:
    return MEETING_TYPES.get(meeting_type or "", meeting_type or "")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ─── Reads ───────────────────────────────────────────────────────────────────

def fetch_evaluator_meetings(evaluator_id: str, client=None) -> list[dict]:
    """Return every meeting the evaluator runs, soonest first."""
    client = client or get_supabase_client()
    try:
        response = (
            client.table("meetings")
            .select(_MEETING_SELECT)
            .eq("evaluator_id", evaluator_id)
            .order("scheduled_at")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load meetings for evaluator %s: %s", evaluator_id, exc, exc_info=True)
        return []


def fetch_staff_meetings(staff_id: str, client=None) -> list[dict]:
    """Return the meetings a staff member is invited to, soonest first."""
    client = client or get_supabase_client()
    try:
        response = (
            client.table("meetings")
            .select("*, evaluator:evaluator_id (id, full_name)")
            .eq("staff_id", staff_id)
            .order("scheduled_at")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load meetings for staff %s: %s", staff_id, exc, exc_info=True)
        return []


def fetch_meeting(meeting_id: str, client=None) -> dict | None:
    client = client or get_supabase_client()
    try:
        response = (
            client.table("meetings")
            .select(_MEETING_SELECT)
            .eq("id", meeting_id)
            .limit(1)
            .execute()
        )
        return first_row(response)
    except Exception as exc:
        logger.error("Failed to load meeting %s: %s", meeting_id, exc, exc_info=True)
        return None


def fetch_assigned_staff(evaluator_id: str, client=None) -> list[dict]:
    """Return active staff whose assigned evaluator is evaluator_id, by name."""
    client = client or get_supabase_client()
    try:
        response = (
            client.table("profiles")
            .select("id, full_name, email, position_type, staff_type")
            .eq("evaluator_id", evaluator_id)
            .eq("is_active", True)
            .order("full_name")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load staff for evaluator %s: %s", evaluator_id, exc, exc_info=True)
        return []


# ─── Writes ──────────────────────────────────────────────────────────────────

def schedule_meeting(
    evaluator_id: str,
    staff_id: str,
    meeting_type: str,
    scheduled_at,
    location: str = "",
    agenda: str = "",
    client=None,
) -> tuple[dict | None, str | None]:
    """
    Create a meeting in the 'scheduled' state.

    Returns (meeting, None) on success and (None, error) on failure.
    """
    if meeting_type not in MEETING_TYPES:
        return None, f"Unknown meeting type: {meeting_type}"
    if not staff_id or not scheduled_at:
        return None, "Staff member and date/time are required."

    if isinstance(scheduled_at, datetime):
        if scheduled_at.tzinfo is None:
            scheduled_at = scheduled_at.replace(tzinfo=timezone.utc)
        scheduled_at = scheduled_at.isoformat()

    client = client or get_supabase_client()
    try:
        response = (
            client.table("meetings")
            .insert(
                {
                    "staff_id": staff_id,
                    "evaluator_id": evaluator_id,
                    "meeting_type": meeting_type,
                    "scheduled_at": scheduled_at,
                    "location": location,
                    "agenda": agenda,
                    "status": "scheduled",
                }
            )
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to schedule meeting for %s: %s", staff_id, exc, exc_info=True)
        return None, str(exc)
    return first_row(response), None


def _update_meeting(meeting_id: str, updates: dict, client=None) -> str | None:
    client = client or get_supabase_client()
    try:
        client.table("meetings").update(updates).eq("id", meeting_id).execute()
    except Exception as exc:
        logger.error("Failed to update meeting %s: %s", meeting_id, exc, exc_info=True)
        return str(exc)
    return None


def save_meeting_notes(meeting: dict, notes: str, action_items: str, client=None) -> tuple[dict, str | None]:
    """
    Save notes and action items.  A scheduled meeting moves to in_progress.

    Returns (updates, error); updates is the set of fields written so the
    caller can merge them into its local copy.
    """
    status = meeting.get("status")
    updates = {
        "notes": notes,
        "action_items": action_items,
        "status": "in_progress" if status == "scheduled" else status,
    }
    return updates, _update_meeting(meeting["id"], updates, client)


def complete_meeting(meeting: dict, notes: str, action_items: str, client=None) -> tuple[dict, str | None]:
    """Mark a meeting completed; completing it also records the evaluator's sign-off."""
    now = _now_iso()
    updates = {
        "notes": notes,
        "action_items": action_items,
        "status": "completed",
        "completed_at": now,
        "evaluator_signed_at": now,
    }
    return updates, _update_meeting(meeting["id"], updates, client)


def staff_sign_off(meeting: dict, client=None) -> tuple[dict, str | None]:
    """Record the staff member's acknowledgement of a completed meeting."""
    if not meeting.get("completed_at"):
        return {}, "Only completed meetings can be signed."
    updates = {"staff_signed_at": _now_iso()}
    return updates, _update_meeting(meeting["id"], updates, client)
