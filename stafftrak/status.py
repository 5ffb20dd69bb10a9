"""
stafftrak/status.py
Status derivation for meetings, observations and summative evaluations.

All functions are pure: they take rows as dicts plus an optional "now" and
never touch the database.  Stored timestamps are normalised to UTC before any
comparison; naive timestamps are assumed to already be UTC.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

import pandas as pd

THIS_WEEK_WINDOW = timedelta(days=7)


class MeetingStatus(str, Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    OVERDUE = "overdue"
    SCHEDULED = "scheduled"

    @property
    def label(self) -> str:
        return _MEETING_LABELS[self]


_MEETING_LABELS = {
    MeetingStatus.COMPLETED:   "Completed",
    MeetingStatus.IN_PROGRESS: "In Progress",
    MeetingStatus.OVERDUE:     "Overdue",
    MeetingStatus.SCHEDULED:   "Scheduled",
}

# Staff see an overdue meeting as waiting on their evaluator, not as late.
STAFF_MEETING_LABELS = {**_MEETING_LABELS, MeetingStatus.OVERDUE: "Pending"}


class EvaluationStatus(str, Enum):
    DRAFT = "draft"
    PENDING_STAFF_SIGNATURE = "pending_staff_signature"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        return {
            EvaluationStatus.DRAFT: "Draft",
            EvaluationStatus.PENDING_STAFF_SIGNATURE: "Awaiting Staff Signature",
            EvaluationStatus.COMPLETED: "Completed",
        }[self]


# ─── Timestamp helpers ───────────────────────────────────────────────────────

def parse_timestamp(value) -> datetime | None:
    """
    Parse a stored timestamp into a UTC-aware datetime.

    Accepts ISO strings (with or without offset, 'Z' suffix, any fractional
    precision), datetimes and pandas Timestamps.  Returns None for empty or
    unparseable values.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _resolve_now(now) -> datetime:
    if now is None:
        return utc_now()
    resolved = parse_timestamp(now)
    if resolved is None:
        raise ValueError(f"Invalid reference time: {now!r}")
    return resolved


# ─── Meetings ────────────────────────────────────────────────────────────────

def derive_meeting_status(meeting: dict, now=None) -> MeetingStatus:
    """
    Classify a meeting for display.

    completed_at set → COMPLETED, explicit in_progress status → IN_PROGRESS,
    scheduled_at strictly before now → OVERDUE, otherwise SCHEDULED.  A
    meeting scheduled exactly at "now" is still SCHEDULED.
    """
    if parse_timestamp(meeting.get("completed_at")) is not None:
        return MeetingStatus.COMPLETED
    if meeting.get("status") == MeetingStatus.IN_PROGRESS.value:
        return MeetingStatus.IN_PROGRESS
    scheduled_at = parse_timestamp(meeting.get("scheduled_at"))
    if scheduled_at is not None and scheduled_at < _resolve_now(now):
        return MeetingStatus.OVERDUE
    return MeetingStatus.SCHEDULED


def is_completed(meeting: dict) -> bool:
    return parse_timestamp(meeting.get("completed_at")) is not None


def is_upcoming(meeting: dict, now=None) -> bool:
    """Not completed and scheduled at or after now."""
    if is_completed(meeting):
        return False
    scheduled_at = parse_timestamp(meeting.get("scheduled_at"))
    return scheduled_at is not None and scheduled_at >= _resolve_now(now)


def is_this_week(meeting: dict, now=None) -> bool:
    """Not completed and scheduled within the 7 days starting now (inclusive)."""
    if is_completed(meeting):
        return False
    scheduled_at = parse_timestamp(meeting.get("scheduled_at"))
    if scheduled_at is None:
        return False
    now = _resolve_now(now)
    return now <= scheduled_at <= now + THIS_WEEK_WINDOW


def meeting_stats(meetings: list[dict], now=None) -> dict:
    """Return total / upcoming / completed / this_week counts."""
    now = _resolve_now(now)
    return {
        "total":     len(meetings),
        "upcoming":  sum(1 for m in meetings if is_upcoming(m, now)),
        "completed": sum(1 for m in meetings if is_completed(m)),
        "this_week": sum(1 for m in meetings if is_this_week(m, now)),
    }


def filter_meetings(meetings: list[dict], key: str, now=None) -> list[dict]:
    """
    Filter meetings by a tab key.

    'all', 'upcoming' (scheduled in the future), 'pending' (any meeting not
    completed), 'completed', or a meeting_type value.
    """
    now = _resolve_now(now)
    if key == "all":
        return list(meetings)
    if key == "upcoming":
        return [m for m in meetings if is_upcoming(m, now)]
    if key == "pending":
        return [m for m in meetings if not is_completed(m)]
    if key == "completed":
        return [m for m in meetings if is_completed(m)]
    return [m for m in meetings if m.get("meeting_type") == key]


def time_until(scheduled_at, now=None) -> str | None:
    """
    Return a relative label such as 'in 3 days' for a future timestamp.

    Returns None when the timestamp is missing or already in the past.
    """
    target = parse_timestamp(scheduled_at)
    if target is None:
        return None
    diff = target - _resolve_now(now)
    if diff < timedelta(0):
        return None

    days = diff.days
    hours = diff.seconds // 3600
    if days > 0:
        return f"in {days} day{'s' if days > 1 else ''}"
    if hours > 0:
        return f"in {hours} hour{'s' if hours > 1 else ''}"
    return "starting soon"


# ─── Observations ────────────────────────────────────────────────────────────

class ObservationStatus(str, Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    CANCELLED = "cancelled"
    OVERDUE = "overdue"
    SCHEDULED = "scheduled"

    @property
    def label(self) -> str:
        return _OBSERVATION_LABELS[self]


_OBSERVATION_LABELS = {
    ObservationStatus.COMPLETED:   "Completed",
    ObservationStatus.IN_PROGRESS: "In Progress",
    ObservationStatus.CANCELLED:   "Cancelled",
    ObservationStatus.OVERDUE:     "Overdue",
    ObservationStatus.SCHEDULED:   "Scheduled",
}

# Staff are not told their evaluator is running late.
STAFF_OBSERVATION_LABELS = {**_OBSERVATION_LABELS, ObservationStatus.OVERDUE: "Scheduled"}


def derive_observation_status(observation: dict, now=None) -> ObservationStatus:
    """
    Classify an observation for display.

    Stored completed status or ended_at → COMPLETED; cancelled and
    in_progress are taken as stored; a scheduled observation whose time has
    passed without being started → OVERDUE; otherwise SCHEDULED.
    """
    stored = observation.get("status")
    if stored == ObservationStatus.COMPLETED.value or parse_timestamp(observation.get("ended_at")):
        return ObservationStatus.COMPLETED
    if stored == ObservationStatus.CANCELLED.value:
        return ObservationStatus.CANCELLED
    if stored == ObservationStatus.IN_PROGRESS.value:
        return ObservationStatus.IN_PROGRESS
    scheduled_at = parse_timestamp(observation.get("scheduled_at"))
    if scheduled_at is not None and scheduled_at < _resolve_now(now):
        return ObservationStatus.OVERDUE
    return ObservationStatus.SCHEDULED


_OPEN_OBSERVATION = (
    ObservationStatus.SCHEDULED, ObservationStatus.OVERDUE, ObservationStatus.IN_PROGRESS,
)


def observation_stats(observations: list[dict], now=None) -> dict:
    """Counts per derived status, keyed by status value."""
    now = _resolve_now(now)
    counts = {status.value: 0 for status in ObservationStatus}
    for observation in observations:
        counts[derive_observation_status(observation, now).value] += 1
    return counts


def filter_observations(observations: list[dict], key: str, now=None) -> list[dict]:
    """'upcoming' (scheduled, overdue or in progress), 'completed', or 'all'."""
    now = _resolve_now(now)
    if key == "upcoming":
        return [o for o in observations if derive_observation_status(o, now) in _OPEN_OBSERVATION]
    if key == "completed":
        return [o for o in observations
                if derive_observation_status(o, now) is ObservationStatus.COMPLETED]
    return list(observations)


def duration_text(started_at, ended_at) -> str:
    """'45 min' or '1 hr 5 min' between two timestamps, '' if either is missing."""
    start, end = parse_timestamp(started_at), parse_timestamp(ended_at)
    if start is None or end is None or end < start:
        return ""
    minutes = int((end - start).total_seconds() // 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours} hr {minutes} min" if hours else f"{minutes} min"


# ─── Summative evaluations ───────────────────────────────────────────────────

def derive_evaluation_status(evaluation: dict | None) -> EvaluationStatus:
    """
    Classify a summative evaluation from its signature timestamps.

    Both parties signed → COMPLETED; evaluator only → PENDING_STAFF_SIGNATURE;
    otherwise DRAFT.  A missing evaluation counts as DRAFT.
    """
    if not evaluation:
        return EvaluationStatus.DRAFT
    evaluator_signed = parse_timestamp(evaluation.get("evaluator_signature_at"))
    staff_signed = parse_timestamp(evaluation.get("staff_signature_at"))
    if evaluator_signed is not None and staff_signed is not None:
        return EvaluationStatus.COMPLETED
    if evaluator_signed is not None:
        return EvaluationStatus.PENDING_STAFF_SIGNATURE
    return EvaluationStatus.DRAFT


def is_locked(evaluation: dict | None) -> bool:
    """An evaluation signed by both parties is no longer editable."""
    return derive_evaluation_status(evaluation) is EvaluationStatus.COMPLETED


# ─── Display formatting ──────────────────────────────────────────────────────

def format_date(value) -> str:
    """'October 19, 2026' for a timestamp, '' when missing."""
    ts = parse_timestamp(value)
    if ts is None:
        return ""
    return f"{ts.strftime('%B')} {ts.day}, {ts.year}"


def format_datetime(value) -> str:
    """'Mon, Oct 19, 2:30 PM' for a timestamp, '' when missing."""
    ts = parse_timestamp(value)
    if ts is None:
        return ""
    hour = ts.hour % 12 or 12
    meridiem = "AM" if ts.hour < 12 else "PM"
    return f"{ts.strftime('%a, %b')} {ts.day}, {hour}:{ts.minute:02d} {meridiem}"


def signature_text(value) -> str:
    """'Signed: October 19, 2026' when signed, 'Not signed' otherwise."""
    if parse_timestamp(value) is None:
        return "Not signed"
    return f"Signed: {format_date(value)}"
