"""
pages/dashboard.py
Role-aware landing page: evaluator caseload or personal evaluation progress.
"""

import streamlit as st

from stafftrak.auth import require_auth
from stafftrak.evaluations import (
    fetch_evaluations_for_staff_ids,
    fetch_latest_evaluation_for_staff,
)
from stafftrak.meetings import (
    fetch_assigned_staff,
    fetch_evaluator_meetings,
    fetch_staff_meetings,
    meeting_type_label,
)
from stafftrak.roles import NavTier, has_evaluator_access, page_for, resolve_tier
from stafftrak.staff import fetch_staff
from stafftrak.status import (
    EvaluationStatus,
    MeetingStatus,
    derive_evaluation_status,
    derive_meeting_status,
    filter_meetings,
    format_datetime,
    meeting_stats,
    time_until,
    utc_now,
)
from stafftrak.ui import page_header, render_sidebar

st.set_page_config(page_title="StaffTrak · Dashboard", layout="wide")

profile = require_auth()
render_sidebar("/dashboard", key="dashboard")

role = profile.get("role")
is_evaluator = profile.get("is_evaluator")
tier = resolve_tier(role, is_evaluator)
now = utc_now()

page_header(f"Welcome, {profile.get('full_name') or 'there'}", "Your evaluation cycle at a glance")
st.divider()

# ─── Evaluator caseload ──────────────────────────────────────────────────────

if has_evaluator_access(role, is_evaluator) and tier is not NavTier.HR:
    staff = fetch_assigned_staff(profile["id"])
    meetings = fetch_evaluator_meetings(profile["id"])
    stats = meeting_stats(meetings, now)
    latest = fetch_evaluations_for_staff_ids([s["id"] for s in staff])
    awaiting_staff = sum(
        1 for e in latest.values()
        if derive_evaluation_status(e) is EvaluationStatus.PENDING_STAFF_SIGNATURE
    )
    overdue = sum(1 for m in meetings if derive_meeting_status(m, now) is MeetingStatus.OVERDUE)

    st.markdown("### My Caseload")
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Staff Assigned", len(staff))
    c2.metric("Upcoming Meetings", stats["upcoming"])
    c3.metric("This Week", stats["this_week"])
    c4.metric("Overdue Meetings", overdue)
    c5.metric("Awaiting Staff Signature", awaiting_staff)

    upcoming = filter_meetings(meetings, "upcoming", now)[:5]
    if upcoming:
        st.markdown("#### Next Meetings")
        for meeting in upcoming:
            staff_name = (meeting.get("staff") or {}).get("full_name", "")
            st.markdown(
                f"- **{meeting_type_label(meeting.get('meeting_type'))}** with {staff_name} · "
                f"{format_datetime(meeting.get('scheduled_at'))} "
                f"({time_until(meeting.get('scheduled_at'), now)})"
            )
    st.page_link(page_for("/meetings"), label="Go to Meetings →")
    st.divider()

# ─── HR / admin district view ────────────────────────────────────────────────

if tier in (NavTier.ADMIN, NavTier.HR):
    all_staff = fetch_staff(include_inactive=True)
    active = [s for s in all_staff if s.get("is_active") is not False]
    st.markdown("### District")
    d1, d2, d3 = st.columns(3)
    d1.metric("Active Staff", len(active))
    d2.metric("Evaluators", sum(1 for s in active if has_evaluator_access(s.get("role"), s.get("is_evaluator"))))
    d3.metric("Archived", len(all_staff) - len(active))
    st.page_link(page_for("/reports"), label="Open Reports →")
    st.divider()

# ─── Personal evaluation progress ────────────────────────────────────────────

if tier in (NavTier.EVALUATOR, NavTier.STAFF):
    my_meetings = fetch_staff_meetings(profile["id"])
    my_evaluation = fetch_latest_evaluation_for_staff(profile["id"])
    my_stats = meeting_stats(my_meetings, now)

    st.markdown("### My Evaluation")
    m1, m2, m3 = st.columns(3)
    m1.metric("Upcoming Meetings", my_stats["upcoming"])
    m2.metric("Completed Meetings", my_stats["completed"])
    m3.metric("Summative", derive_evaluation_status(my_evaluation).label if my_evaluation else "Not started")

    action_items = []
    unsigned = [
        m for m in filter_meetings(my_meetings, "completed", now)
        if not m.get("staff_signed_at")
    ]
    if unsigned:
        action_items.append(
            (f"{len(unsigned)} meeting{'s' if len(unsigned) > 1 else ''} awaiting your sign-off",
             page_for("/my-meetings"))
        )
    if derive_evaluation_status(my_evaluation) is EvaluationStatus.PENDING_STAFF_SIGNATURE:
        action_items.append(("Your summative evaluation is ready to review and sign",
                             page_for("/my-summative")))

    if action_items:
        st.markdown("#### Action Items")
        for text, page in action_items:
            st.warning(text)
            st.page_link(page, label="Open →")
    else:
        st.success("You're all caught up.")

st.page_link(page_for("/rubrics"), label="Browse evaluation rubrics →")
