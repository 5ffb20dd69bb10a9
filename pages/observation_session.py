"""
pages/observation_session.py
A single observation: start, timestamped notes, and completion with feedback.

The observer runs the session.  The observed staff member may open the
completed record; notes are shown to them only when shared.
"""

import html

import streamlit as st

from stafftrak.auth import require_auth
from stafftrak.observations import (
    NOTE_TYPE_ICONS,
    NOTE_TYPES,
    POST_OBSERVATION_FIELDS,
    PRE_OBSERVATION_FIELDS,
    add_note,
    complete_observation,
    fetch_notes,
    fetch_observation,
    notes_visible_to_staff,
    observation_type_label,
    start_observation,
)
from stafftrak.roles import can_access, page_for
from stafftrak.status import (
    STAFF_OBSERVATION_LABELS,
    ObservationStatus,
    derive_observation_status,
    duration_text,
    format_datetime,
)
from stafftrak.ui import page_header, render_sidebar

st.set_page_config(page_title="StaffTrak · Observation", layout="wide")

profile = require_auth()

observation_id = st.query_params.get("id", None) or st.session_state.get("observation_id")
if isinstance(observation_id, list):
    observation_id = observation_id[0] if observation_id else None
if not observation_id:
    st.error("No observation specified.")
    st.stop()

observation = fetch_observation(observation_id)
if observation is None:
    st.error("Observation not found.")
    st.stop()

is_observer = observation.get("observer_id") == profile["id"]
is_observed = observation.get("staff_id") == profile["id"]
can_manage = is_observer or can_access("/observations/:id", profile.get("role"), profile.get("is_evaluator"))
if not (can_manage or is_observed):
    st.error("You don't have access to this observation.")
    st.stop()

render_sidebar("/my-observations" if is_observed else "/observations", key="observation_session")

status = derive_observation_status(observation)
observed = observation.get("staff") or {}
observer = observation.get("observer") or {}

page_header(
    f"{observation_type_label(observation.get('observation_type'))} Observation",
    f"{observed.get('full_name', '')} · observed by {observer.get('full_name', '')} · "
    f"{format_datetime(observation.get('scheduled_at'))}",
)
caption = f"Status: {STAFF_OBSERVATION_LABELS[status] if is_observed else status.label}"
duration = duration_text(observation.get("started_at"), observation.get("ended_at"))
if duration:
    caption += f" · {duration}"
st.caption(caption)

details = []
if observation.get("location"):
    details.append(f"**Where:** {observation['location']}")
if observation.get("subject_topic"):
    details.append(f"**Subject:** {observation['subject_topic']}")
if details:
    st.markdown(" · ".join(details))


def show_form(title: str, answers: dict | None, fields) -> None:
    if not answers:
        return
    with st.expander(title, expanded=False):
        for key, label in fields:
            if answers.get(key):
                st.markdown(f"**{label}**")
                st.write(answers[key])


if not is_observed:
    show_form("Pre-observation form", observation.get("pre_observation_form"), PRE_OBSERVATION_FIELDS)
    show_form("Post-observation reflection", observation.get("post_observation_form"), POST_OBSERVATION_FIELDS)

st.divider()

# ─── Start ────────────────────────────────────────────────────────────────────

runs_session = can_manage and not is_observed

if runs_session and status in (ObservationStatus.SCHEDULED, ObservationStatus.OVERDUE):
    if status is ObservationStatus.OVERDUE:
        st.warning("This observation's scheduled time has passed.")
    if st.button("Start Observation", type="primary"):
        _updates, error = start_observation(observation)
        if error:
            st.error(error)
        else:
            st.rerun()

# ─── Notes ────────────────────────────────────────────────────────────────────

notes = fetch_notes(observation["id"])
show_notes = not is_observed or notes_visible_to_staff(observation)

if runs_session and status is ObservationStatus.IN_PROGRESS:
    with st.form("add_note_form", clear_on_submit=True):
        note_type = st.radio(
            "Note type", options=list(NOTE_TYPES), format_func=NOTE_TYPES.get, horizontal=True,
        )
        note_text = st.text_area("Note", placeholder="What are you seeing?")
        if st.form_submit_button("Add Note"):
            _note, error = add_note(observation, note_text, note_type)
            if error:
                st.error(error)
            else:
                st.rerun()

if show_notes and notes:
    st.markdown(f"### Notes ({len(notes)})")
    for note in notes:
        icon = NOTE_TYPE_ICONS.get(note.get("note_type"), "📝")
        label = NOTE_TYPES.get(note.get("note_type"), "Note")
        st.markdown(
            f"{icon} **{label}** · <span style='color:#6B7280'>"
            f"{html.escape(format_datetime(note.get('timestamp')))}</span>",
            unsafe_allow_html=True,
        )
        st.write(note.get("note_text") or "")
elif status is not ObservationStatus.SCHEDULED and not notes and not is_observed:
    st.caption("No notes recorded.")

# ─── Completion ───────────────────────────────────────────────────────────────

if runs_session and status is ObservationStatus.IN_PROGRESS:
    st.divider()
    st.markdown("### Complete Observation")
    with st.form("complete_observation_form"):
        feedback = st.text_area("Feedback", height=150)
        next_steps = st.text_area("Next steps", height=100)
        share_notes = st.checkbox("Share my notes with the staff member", value=True)
        if st.form_submit_button("Complete Observation", type="primary"):
            _updates, error = complete_observation(observation, feedback, next_steps, share_notes)
            if error:
                st.error(error)
            else:
                st.success("Observation completed.")
                st.rerun()

if status is ObservationStatus.COMPLETED:
    st.divider()
    if observation.get("feedback"):
        st.markdown("### Feedback")
        st.write(observation["feedback"])
    if observation.get("next_steps"):
        st.markdown("### Next Steps")
        st.write(observation["next_steps"])
    if not is_observed and observation.get("share_notes_with_staff") is False:
        st.caption("Notes are not shared with the staff member.")

st.page_link(
    page_for("/my-observations") if is_observed else page_for("/observations"),
    label="← Back to observations",
)
