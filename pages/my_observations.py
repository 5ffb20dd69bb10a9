"""
pages/my_observations.py
Staff view of their own observations, with the pre- and post-observation
forms for formal observations.
"""

import html

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.observations import (
    NOTE_TYPE_ICONS,
    NOTE_TYPES,
    POST_OBSERVATION_FIELDS,
    PRE_OBSERVATION_FIELDS,
    fetch_notes,
    fetch_staff_observations,
    notes_visible_to_staff,
    observation_type_label,
    submit_observation_form,
)
from stafftrak.status import (
    STAFF_OBSERVATION_LABELS,
    ObservationStatus,
    derive_observation_status,
    filter_observations,
    format_datetime,
    observation_stats,
    time_until,
    utc_now,
)
from stafftrak.ui import page_header, pill_html, render_sidebar

STATUS_COLOURS = {
    ObservationStatus.COMPLETED:   "#27AE60",
    ObservationStatus.IN_PROGRESS: "#477FC1",
    ObservationStatus.CANCELLED:   "#9CA3AF",
    ObservationStatus.OVERDUE:     "#477FC1",
    ObservationStatus.SCHEDULED:   "#477FC1",
}

st.set_page_config(page_title="StaffTrak · My Observations", layout="wide")

profile = require_access("/my-observations")
render_sidebar("/my-observations", key="my_observations")

page_header("My Observations")

observations = fetch_staff_observations(profile["id"])
now = utc_now()
stats = observation_stats(observations, now)

c1, c2 = st.columns(2)
c1.metric("Upcoming", stats["scheduled"] + stats["overdue"] + stats["in_progress"])
c2.metric("Completed", stats["completed"])

_TABS = {"upcoming": "Upcoming", "completed": "Completed", "all": "All"}
_EMPTY = {
    "upcoming":  "No upcoming observations scheduled.",
    "completed": "No completed observations yet.",
    "all":       "No observations found.",
}

tab = st.radio(
    "Show",
    options=list(_TABS),
    format_func=_TABS.get,
    horizontal=True,
    label_visibility="collapsed",
)
visible = filter_observations(observations, tab, now)


def observation_form(observation: dict, kind: str, fields) -> None:
    """Pre ('pre') or post ('post') form; read-only once submitted."""
    column = f"{kind}_observation_form"
    title = "Pre-Observation Form" if kind == "pre" else "Post-Observation Reflection"
    answers = observation.get(column) or {}
    submitted_at = observation.get(f"{kind}_observation_submitted_at")

    with st.expander(f"{title} {'✓' if submitted_at else ''}".strip(), expanded=not submitted_at):
        if submitted_at:
            st.caption(f"Submitted {format_datetime(submitted_at)}")
            for key, label in fields:
                if answers.get(key):
                    st.markdown(f"**{label}**")
                    st.write(answers[key])
            return
        with st.form(f"{kind}_form_{observation['id']}"):
            values = {key: st.text_area(label, value=answers.get(key) or "") for key, label in fields}
            if st.form_submit_button("Submit"):
                _updates, error = submit_observation_form(observation, kind, values)
                if error:
                    st.error(error)
                else:
                    st.success("Submitted.")
                    st.rerun()


if not visible:
    st.info(_EMPTY[tab])
else:
    for observation in visible:
        status = derive_observation_status(observation, now)
        observation_type = observation.get("observation_type")
        with st.container(border=True):
            badges = (
                pill_html(observation_type_label(observation_type), "#7C3AED")
                + " "
                + pill_html(STAFF_OBSERVATION_LABELS[status], STATUS_COLOURS[status])
            )
            countdown = (time_until(observation.get("scheduled_at"), now)
                         if status is ObservationStatus.SCHEDULED else None)
            if countdown:
                badges += f' <span style="color:#477FC1;font-weight:600;">{html.escape(countdown)}</span>'
            st.markdown(badges, unsafe_allow_html=True)

            left, right = st.columns(2)
            left.markdown(f"**When:** {format_datetime(observation.get('scheduled_at'))}")
            if observation.get("location"):
                left.markdown(f"**Where:** {observation['location']}")
            right.markdown(f"**Observer:** {(observation.get('observer') or {}).get('full_name', '')}")
            if observation.get("subject_topic"):
                right.markdown(f"**Subject:** {observation['subject_topic']}")

            is_formal = observation_type == "formal"
            if is_formal and status in (ObservationStatus.SCHEDULED, ObservationStatus.OVERDUE):
                observation_form(observation, "pre", PRE_OBSERVATION_FIELDS)

            if status is ObservationStatus.COMPLETED:
                if observation.get("feedback"):
                    st.markdown("**Feedback:**")
                    st.text(observation["feedback"])
                if observation.get("next_steps"):
                    st.markdown("**Next Steps:**")
                    st.text(observation["next_steps"])
                if notes_visible_to_staff(observation):
                    notes = fetch_notes(observation["id"])
                    if notes:
                        with st.expander(f"Observer notes ({len(notes)})"):
                            for note in notes:
                                icon = NOTE_TYPE_ICONS.get(note.get("note_type"), "📝")
                                label = NOTE_TYPES.get(note.get("note_type"), "Note")
                                st.markdown(f"{icon} **{label}**: {note.get('note_text') or ''}")
                if is_formal:
                    observation_form(observation, "post", POST_OBSERVATION_FIELDS)
