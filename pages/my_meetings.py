"""
pages/my_meetings.py
Staff view of their own meetings.
"""

import html

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.meetings import (
    MEETING_TYPE_COLOURS,
    MEETING_TYPE_DESCRIPTIONS,
    fetch_staff_meetings,
    meeting_type_label,
)
from stafftrak.roles import page_for
from stafftrak.status import (
    STAFF_MEETING_LABELS,
    MeetingStatus,
    derive_meeting_status,
    filter_meetings,
    format_datetime,
    meeting_stats,
    time_until,
    utc_now,
)
from stafftrak.ui import page_header, pill_html, render_sidebar

STATUS_COLOURS = {
    MeetingStatus.COMPLETED:   "#27AE60",
    MeetingStatus.IN_PROGRESS: "#477FC1",
    MeetingStatus.OVERDUE:     "#D4A017",
    MeetingStatus.SCHEDULED:   "#477FC1",
}

st.set_page_config(page_title="StaffTrak · My Meetings", layout="wide")

profile = require_access("/my-meetings")
render_sidebar("/my-meetings", key="my_meetings")

page_header("My Meetings")

meetings = fetch_staff_meetings(profile["id"])
now = utc_now()
stats = meeting_stats(meetings, now)

c1, c2 = st.columns(2)
c1.metric("Upcoming Meetings", stats["total"] - stats["completed"])
c2.metric("Completed Meetings", stats["completed"])

_TABS = {"pending": "Upcoming", "completed": "Completed", "all": "All"}
_EMPTY = {
    "pending":   "No upcoming meetings scheduled.",
    "completed": "No completed meetings yet.",
    "all":       "No meetings found.",
}

tab = st.radio(
    "Show",
    options=list(_TABS),
    format_func=_TABS.get,
    horizontal=True,
    label_visibility="collapsed",
)
visible = filter_meetings(meetings, tab, now)

if not visible:
    st.info(_EMPTY[tab])
else:
    for meeting in visible:
        status = derive_meeting_status(meeting, now)
        meeting_type = meeting.get("meeting_type")
        with st.container(border=True):
            badges = (
                pill_html(meeting_type_label(meeting_type), MEETING_TYPE_COLOURS.get(meeting_type, "#6B7280"))
                + " "
                + pill_html(STAFF_MEETING_LABELS[status], STATUS_COLOURS[status])
            )
            countdown = None if status is MeetingStatus.COMPLETED else time_until(meeting.get("scheduled_at"), now)
            if countdown:
                badges += f' <span style="color:#477FC1;font-weight:600;">{html.escape(countdown)}</span>'
            st.markdown(badges, unsafe_allow_html=True)

            description = MEETING_TYPE_DESCRIPTIONS.get(meeting_type)
            if description:
                st.caption(description)

            left, right = st.columns(2)
            left.markdown(f"**When:** {format_datetime(meeting.get('scheduled_at'))}")
            if meeting.get("location"):
                left.markdown(f"**Where:** {meeting['location']}")
            right.markdown(f"**With:** {(meeting.get('evaluator') or {}).get('full_name', '')}")

            if meeting.get("agenda"):
                st.markdown(f"**Agenda:** {meeting['agenda']}")

            if status is MeetingStatus.COMPLETED:
                if meeting.get("action_items"):
                    st.markdown("**Action Items:**")
                    st.text(meeting["action_items"])
                if meeting.get("notes"):
                    st.markdown("**Meeting Notes:**")
                    st.text(meeting["notes"])
                s1, s2 = st.columns(2)
                s1.caption("✓ Evaluator signed" if meeting.get("evaluator_signed_at") else "○ Evaluator not signed")
                s2.caption("✓ You signed" if meeting.get("staff_signed_at") else "○ Awaiting your sign-off")

            if st.button("View Full Details →", key=f"my_meeting_{meeting['id']}"):
                st.session_state["meeting_id"] = meeting["id"]
                st.query_params["id"] = meeting["id"]
                st.switch_page(page_for("/meetings/:id"))

if tab == "pending" and visible:
    st.info(
        "**Prepare for your meeting**\n\n"
        "- Complete your self-reflection if you haven't already\n"
        "- Review your goals and note any questions\n"
        "- Gather evidence of progress on your goals\n"
        "- Think about areas where you'd like support"
    )
