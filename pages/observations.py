"""
pages/observations.py
Evaluator observation list: stats, filters and the schedule form.
"""

import html
from datetime import date, datetime, time, timedelta, timezone

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.notify import notify_observation_scheduled
from stafftrak.observations import (
    OBSERVATION_TYPES,
    fetch_observer_observations,
    observation_type_label,
    schedule_observation,
)
from stafftrak.roles import Role, page_for
from stafftrak.staff import fetch_staff
from stafftrak.status import (
    ObservationStatus,
    derive_observation_status,
    duration_text,
    filter_observations,
    format_datetime,
    observation_stats,
    utc_now,
)
from stafftrak.ui import page_header, pill_html, render_sidebar

STATUS_COLOURS = {
    ObservationStatus.COMPLETED:   "#27AE60",
    ObservationStatus.IN_PROGRESS: "#477FC1",
    ObservationStatus.CANCELLED:   "#9CA3AF",
    ObservationStatus.OVERDUE:     "#F39C12",
    ObservationStatus.SCHEDULED:   "#6B7280",
}

TYPE_COLOURS = {"informal": "#477FC1", "formal": "#7C3AED"}

st.set_page_config(page_title="StaffTrak · Observations", layout="wide")

profile = require_access("/observations")
render_sidebar("/observations", key="observations")

page_header("Observations", "Classroom walkthroughs and formal observations")

observations = fetch_observer_observations(profile["id"])
if Role.parse(profile.get("role")) is Role.DISTRICT_ADMIN:
    staff = fetch_staff()
else:
    staff = fetch_staff(evaluator_id=profile["id"])
now = utc_now()

# ─── Summary strip ────────────────────────────────────────────────────────────

stats = observation_stats(observations, now)
m1, m2, m3, m4 = st.columns(4)
m1.metric("Scheduled", stats["scheduled"] + stats["overdue"])
m2.metric("In Progress", stats["in_progress"])
m3.metric("Completed", stats["completed"])
m4.metric("Overdue", stats["overdue"])

st.divider()

# ─── Schedule form ────────────────────────────────────────────────────────────

with st.expander("+ Schedule Observation", expanded=False):
    if not staff:
        st.info("No staff are assigned to you yet.")
    else:
        staff_by_id = {s["id"]: s for s in staff}
        with st.form("schedule_observation_form", clear_on_submit=True):
            staff_id = st.selectbox(
                "Staff member",
                options=list(staff_by_id),
                format_func=lambda sid: staff_by_id[sid].get("full_name") or sid,
            )
            observation_type = st.radio(
                "Observation type",
                options=list(OBSERVATION_TYPES),
                format_func=observation_type_label,
                horizontal=True,
            )
            d_col, t_col = st.columns(2)
            with d_col:
                observation_date = st.date_input("Date", value=date.today() + timedelta(days=1))
            with t_col:
                observation_time = st.time_input("Time", value=time(9, 0))
            location = st.text_input("Location", placeholder="Room 12")
            subject_topic = st.text_input("Subject / topic")
            submitted = st.form_submit_button("Schedule")

        if submitted:
            scheduled_at = datetime.combine(observation_date, observation_time, tzinfo=timezone.utc)
            observation, error = schedule_observation(
                profile["id"], staff_id, observation_type, scheduled_at, location, subject_topic,
            )
            if error:
                st.error(error)
            else:
                member = staff_by_id[staff_id]
                notify_observation_scheduled(
                    member.get("email"),
                    member.get("full_name"),
                    profile.get("full_name"),
                    observation_type_label(observation_type),
                    scheduled_at.strftime("%a, %b %d"),
                    scheduled_at.strftime("%I:%M %p").lstrip("0"),
                )
                st.success("Observation scheduled.")
                st.rerun()

# ─── Filter row ───────────────────────────────────────────────────────────────

_FILTERS = {"upcoming": "Upcoming", "completed": "Completed", "all": "All"}

filter_key = st.radio(
    "Show",
    options=list(_FILTERS),
    format_func=_FILTERS.get,
    horizontal=True,
    label_visibility="collapsed",
)
visible = filter_observations(observations, filter_key, now)

if not visible:
    st.info("No observations match this filter." if observations else "No observations scheduled yet.")
    st.stop()

# ─── Observation list ─────────────────────────────────────────────────────────

for observation in visible:
    status = derive_observation_status(observation, now)
    observed = observation.get("staff") or {}
    with st.container(border=True):
        left, right = st.columns([4, 1])
        with left:
            observation_type = observation.get("observation_type")
            st.markdown(
                pill_html(observation_type_label(observation_type),
                          TYPE_COLOURS.get(observation_type, "#6B7280"))
                + " "
                + pill_html(status.label, STATUS_COLOURS[status]),
                unsafe_allow_html=True,
            )
            st.markdown(f"**{html.escape(observed.get('full_name') or 'Unknown staff')}**")
            details = format_datetime(observation.get("scheduled_at"))
            if observation.get("location"):
                details += f" · {observation['location']}"
            if observation.get("subject_topic"):
                details += f" · {observation['subject_topic']}"
            duration = duration_text(observation.get("started_at"), observation.get("ended_at"))
            if duration:
                details += f" · {duration}"
            st.caption(details)
        with right:
            label = {
                ObservationStatus.COMPLETED:   "View",
                ObservationStatus.IN_PROGRESS: "Continue",
                ObservationStatus.CANCELLED:   "View",
            }.get(status, "Start")
            if st.button(label, key=f"open_observation_{observation['id']}", use_container_width=True):
                st.session_state["observation_id"] = observation["id"]
                st.query_params["id"] = observation["id"]
                st.switch_page(page_for("/observations/:id"))
