"""
stafftrak/observations.py
Classroom observations: scheduling, the live note-taking session, and the
staff member's pre- and post-observation forms.

Lifecycle: scheduled → in_progress (observer starts the session) →
completed (observer ends it, with feedback and the choice to share notes).
Read helpers return [] / None on error; write helpers return
(updates, error) like the meeting helpers.
"""

import logging
from datetime import datetime, timezone

from stafftrak.db import first_row, get_supabase_client, rows
from stafftrak.status import ObservationStatus, derive_observation_status

logger = logging.getLogger(__name__)

OBSERVATION_TYPES = {
    "informal": "Informal",
    "formal":   "Formal",
}

NOTE_TYPES = {
    "general":     "General",
    "strength":    "Strength",
    "growth_area": "Growth Area",
    "question":    "Question",
}

NOTE_TYPE_ICONS = {
    "general":     "📝",
    "strength":    "💪",
    "growth_area": "🌱",
    "question":    "❓",
}

PRE_OBSERVATION_FIELDS = (
    ("lesson_objective",         "Lesson objective"),
    ("standards_addressed",      "Standards addressed"),
    ("student_context",          "Student context"),
    ("instructional_strategies", "Instructional strategies"),
    ("assessment_plan",          "Assessment plan"),
    ("support_needed",           "Support needed"),
    ("focus_areas",              "Focus areas for the observer"),
)

POST_OBSERVATION_FIELDS = (
    ("lesson_reflection",       "How did the lesson go?"),
    ("student_engagement",      "Student engagement"),
    ("what_worked",             "What worked"),
    ("what_to_change",          "What you would change"),
    ("questions_for_evaluator", "Questions for your evaluator"),
)

_FORMS = {
    "pre":  ("pre_observation_form", "pre_observation_submitted_at", PRE_OBSERVATION_FIELDS),
    "post": ("post_observation_form", "post_observation_submitted_at", POST_OBSERVATION_FIELDS),
}

_OBSERVATION_SELECT = (
    "*, staff:staff_id (id, full_name, position_type, staff_type, email), "
    "observer:observer_id (id, full_name)"
)


def observation_type_label(observation_type: str | None) -> str:
    return OBSERVATION_TYPES.get(observation_type or "", observation_type or "")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ─── Reads ───────────────────────────────────────────────────────────────────

def fetch_observer_observations(observer_id: str, client=None) -> list[dict]:
    """Every observation this evaluator conducts, soonest first."""
    client = client or get_supabase_client()
    try:
        response = (
            client.table("observations")
            .select(_OBSERVATION_SELECT)
            .eq("observer_id", observer_id)
            .order("scheduled_at")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load observations for %s: %s", observer_id, exc, exc_info=True)
        return []


def fetch_staff_observations(staff_id: str, client=None) -> list[dict]:
    client = client or get_supabase_client()
    try:
        response = (
            client.table("observations")
            .select("*, observer:observer_id (id, full_name)")
            .eq("staff_id", staff_id)
            .order("scheduled_at")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load observations of %s: %s", staff_id, exc, exc_info=True)
        return []


def fetch_observation(observation_id: str, client=None) -> dict | None:
    client = client or get_supabase_client()
    try:
        return first_row(
            client.table("observations")
            .select(_OBSERVATION_SELECT)
            .eq("id", observation_id)
            .limit(1)
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to load observation %s: %s", observation_id, exc, exc_info=True)
        return None


def fetch_notes(observation_id: str, client=None) -> list[dict]:
    """Timestamped notes for one observation, in the order they were taken."""
    client = client or get_supabase_client()
    try:
        response = (
            client.table("observation_notes")
            .select("*")
            .eq("observation_id", observation_id)
            .order("timestamp")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load notes for %s: %s", observation_id, exc, exc_info=True)
        return []


def notes_visible_to_staff(observation: dict) -> bool:
    """Staff see the observer's notes once the observation is completed, unless withheld."""
    return (derive_observation_status(observation) is ObservationStatus.COMPLETED
            and observation.get("share_notes_with_staff") is not False)


# ─── Writes ──────────────────────────────────────────────────────────────────

def schedule_observation(
    observer_id: str,
    staff_id: str,
    observation_type: str,
    scheduled_at,
    location: str = "",
    subject_topic: str = "",
    client=None,
) -> tuple[dict | None, str | None]:
    """Create an observation in the 'scheduled' state.  Returns (observation, error)."""
    if observation_type not in OBSERVATION_TYPES:
        return None, f"Unknown observation type: {observation_type}"
    if not staff_id or not scheduled_at:
        return None, "Staff member and date/time are required."

    if isinstance(scheduled_at, datetime):
        if scheduled_at.tzinfo is None:
            scheduled_at = scheduled_at.replace(tzinfo=timezone.utc)
        scheduled_at = scheduled_at.isoformat()

    client = client or get_supabase_client()
    try:
        response = (
            client.table("observations")
            .insert(
                {
                    "observer_id": observer_id,
                    "staff_id": staff_id,
                    "observation_type": observation_type,
                    "scheduled_at": scheduled_at,
                    "location": location,
                    "subject_topic": subject_topic,
                    "status": ObservationStatus.SCHEDULED.value,
                }
            )
            .execute()
        )
    except Exception as exc:
        logger.error("Failed to schedule observation of %s: %s", staff_id, exc, exc_info=True)
        return None, str(exc)
    return first_row(response), None


def _update_observation(observation_id: str, updates: dict, client=None) -> str | None:
    client = client or get_supabase_client()
    try:
        client.table("observations").update(updates).eq("id", observation_id).execute()
    except Exception as exc:
        logger.error("Failed to update observation %s: %s", observation_id, exc, exc_info=True)
        return str(exc)
    return None


def start_observation(observation: dict, client=None) -> tuple[dict, str | None]:
    """Open the note-taking session.  Only scheduled (or overdue) observations can start."""
    status = derive_observation_status(observation)
    if status not in (ObservationStatus.SCHEDULED, ObservationStatus.OVERDUE):
        return {}, f"This observation is {status.label.lower()}."
    updates = {"status": ObservationStatus.IN_PROGRESS.value, "started_at": _now_iso()}
    return updates, _update_observation(observation["id"], updates, client)


def add_note(observation: dict, text: str, note_type: str = "general",
             client=None) -> tuple[dict | None, str | None]:
    """Record a timestamped note during an in-progress observation."""
    text = (text or "").strip()
    if not text:
        return None, "Write a note first."
    if note_type not in NOTE_TYPES:
        return None, f"Unknown note type: {note_type}"
    if derive_observation_status(observation) is not ObservationStatus.IN_PROGRESS:
        return None, "Notes can only be added while the observation is in progress."

    client = client or get_supabase_client()
    payload = {
        "observation_id": observation["id"],
        "note_text": text,
        "note_type": note_type,
        "timestamp": _now_iso(),
    }
    try:
        response = client.table("observation_notes").insert(payload).execute()
    except Exception as exc:
        logger.error("Failed to add note to %s: %s", observation["id"], exc, exc_info=True)
        return None, str(exc)
    return first_row(response) or payload, None


def complete_observation(observation: dict, feedback: str, next_steps: str,
                         share_notes: bool = True, client=None) -> tuple[dict, str | None]:
    """End the session with feedback.  share_notes controls what the staff member sees."""
    if derive_observation_status(observation) is ObservationStatus.COMPLETED:
        return {}, "This observation is already completed."
    updates = {
        "status": ObservationStatus.COMPLETED.value,
        "ended_at": _now_iso(),
        "feedback": feedback,
        "next_steps": next_steps,
        "share_notes_with_staff": bool(share_notes),
    }
    return updates, _update_observation(observation["id"], updates, client)


def submit_observation_form(observation: dict, kind: str, answers: dict,
                            client=None) -> tuple[dict, str | None]:
    """
    Store the staff member's pre- ('pre') or post- ('post') observation form.

    Only formal observations carry these forms; the pre form closes once
    the observation starts and the post form opens once it is completed.
    """
    if kind not in _FORMS:
        return {}, f"Unknown form: {kind}"
    if observation.get("observation_type") != "formal":
        return {}, "Only formal observations have pre- and post-observation forms."
    status = derive_observation_status(observation)
    if kind == "pre" and status not in (ObservationStatus.SCHEDULED, ObservationStatus.OVERDUE):
        return {}, "The pre-observation form closes once the observation starts."
    if kind == "post" and status is not ObservationStatus.COMPLETED:
        return {}, "The post-observation form opens once the observation is completed."

    form_column, submitted_column, fields = _FORMS[kind]
    updates = {
        form_column: {key: (answers.get(key) or "").strip() for key, _label in fields},
        submitted_column: _now_iso(),
    }
    return updates, _update_observation(observation["id"], updates, client)
