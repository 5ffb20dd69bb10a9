"""
pages/meetings.py
Evaluator meeting list: stats, filters and the schedule form.
"""

import html
from datetime import date, datetime, time, timedelta, timezone

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.meetings import (
    MEETING_TYPE_COLOURS,
    MEETING_TYPES,
    fetch_assigned_staff,
    fetch_evaluator_meetings,
    meeting_type_label,
    schedule_meeting,
)
from stafftrak.notify import notify_meeting_scheduled
from stafftrak.roles import page_for
from stafftrak.status import (
    MeetingStatus,
    derive_meeting_status,
    filter_meetings,
    format_datetime,
    meeting_stats,
    utc_now,
)
from stafftrak.ui import page_header, pill_html, render_sidebar

STATUS_COLOURS = {
    MeetingStatus.COMPLETED:   "#27AE60",
    MeetingStatus.IN_PROGRESS: "#477FC1",
    MeetingStatus.OVERDUE:     "#F39C12",
    MeetingStatus.SCHEDULED:   "#6B7280",
}

st.set_page_config(page_title="StaffTrak · Meetings", layout="wide")

profile = require_access("/meetings")
render_sidebar("/meetings", key="meetings")

page_header("Meetings", "Goal-setting and review meetings with your staff")

meetings = fetch_evaluator_meetings(profile["id"])
staff = fetch_assigned_staff(profile["id"])
now = utc_now()

# ─── Summary strip ────────────────────────────────────────────────────────────

stats = meeting_stats(meetings, now)
m1, m2, m3, m4 = st.columns(4)
m1.metric("Total", stats["total"])
m2.metric("Upcoming", stats["upcoming"])
m3.metric("This Week", stats["this_week"])
m4.metric("Completed", stats["completed"])

st.divider()

# ─── Schedule form ────────────────────────────────────────────────────────────

with st.expander("+ Schedule Meeting", expanded=False):
    if not staff:
        st.info("No staff are assigned to you yet.")
    else:
        staff_by_id = {s["id"]: s for s in staff}
        with st.form("schedule_meeting_form", clear_on_submit=True):
            staff_id = st.selectbox(
                "Staff member",
                options=list(staff_by_id),
                format_func=lambda sid: staff_by_id[sid].get("full_name") or sid,
            )
            meeting_type = st.selectbox(
                "Meeting type",
                options=list(MEETING_TYPES),
                format_func=meeting_type_label,
            )
            d_col, t_col = st.columns(2)
            with d_col:
                meeting_date = st.date_input("Date", value=date.today() + timedelta(days=1))
            with t_col:
                meeting_time = st.time_input("Time", value=time(15, 0))
            location = st.text_input("Location")
            agenda = st.text_area("Agenda")
            submitted = st.form_submit_button("Schedule")

        if submitted:
            scheduled_at = datetime.combine(meeting_date, meeting_time, tzinfo=timezone.utc)
            meeting, error = schedule_meeting(
                profile["id"], staff_id, meeting_type, scheduled_at, location, agenda,
            )
            if error:
                st.error(error)
            else:
                member = staff_by_id[staff_id]
                notify_meeting_scheduled(
                    member.get("email"),
                    member.get("full_name"),
                    profile.get("full_name"),
                    meeting_type_label(meeting_type),
                    format_datetime(scheduled_at),
                    location,
                )
                st.success("Meeting scheduled.")
                st.rerun()

# ─── Filter row ───────────────────────────────────────────────────────────────

_FILTERS = {"all": "All", "upcoming": "Upcoming", "completed": "Completed", **MEETING_TYPES}

filter_key = st.radio(
    "Show",
    options=list(_FILTERS),
    format_func=_FILTERS.get,
    horizontal=True,
    label_visibility="collapsed",
)
visible = filter_meetings(meetings, filter_key, now)

if not visible:
    st.info("No meetings match this filter." if meetings else "No meetings scheduled yet.")
    st.stop()

# ─── Meeting list ─────────────────────────────────────────────────────────────

for meeting in visible:
    status = derive_meeting_status(meeting, now)
    meeting_staff = meeting.get("staff") or {}
    with st.container(border=True):
        left, right = st.columns([4, 1])
        with left:
            st.markdown(
                pill_html(meeting_type_label(meeting.get("meeting_type")),
                          MEETING_TYPE_COLOURS.get(meeting.get("meeting_type"), "#6B7280"))
                + " "
                + pill_html(status.label, STATUS_COLOURS[status]),
                unsafe_allow_html=True,
            )
            st.markdown(f"**{html.escape(meeting_staff.get('full_name') or 'Unknown staff')}**")
            details = format_datetime(meeting.get("scheduled_at"))
            if meeting.get("location"):
                details += f" · {meeting['location']}"
            st.caption(details)
        with right:
            label = "View" if status is MeetingStatus.COMPLETED else "Open Session"
            if st.button(label, key=f"open_meeting_{meeting['id']}", use_container_width=True):
                st.session_state["meeting_id"] = meeting["id"]
                st.query_params["id"] = meeting["id"]
                st.switch_page(page_for("/meetings/:id"))
