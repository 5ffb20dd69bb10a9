"""
pages/meeting_session.py
A single meeting: notes and action items, completion, and sign-off.

Evaluators run the session; the staff member sees the record and signs it
once the meeting is completed.
"""

import streamlit as st

from stafftrak.auth import require_auth
from stafftrak.meetings import (
    MEETING_TYPE_DESCRIPTIONS,
    complete_meeting,
    fetch_meeting,
    meeting_type_label,
    save_meeting_notes,
    staff_sign_off,
)
from stafftrak.roles import can_access, page_for
from stafftrak.status import (
    MeetingStatus,
    derive_meeting_status,
    format_datetime,
    signature_text,
)
from stafftrak.ui import page_header, render_sidebar

st.set_page_config(page_title="StaffTrak · Meeting", layout="wide")

profile = require_auth()

meeting_id = st.query_params.get("id", None) or st.session_state.get("meeting_id")
if isinstance(meeting_id, list):
    meeting_id = meeting_id[0] if meeting_id else None
if not meeting_id:
    st.error("No meeting specified.")
    st.stop()

meeting = fetch_meeting(meeting_id)
if meeting is None:
    st.error("Meeting not found.")
    st.stop()

is_meeting_evaluator = meeting.get("evaluator_id") == profile["id"]
is_meeting_staff = meeting.get("staff_id") == profile["id"]
if not (is_meeting_evaluator or is_meeting_staff
        or can_access("/meetings/:id", profile.get("role"), profile.get("is_evaluator"))):
    st.error("You don't have access to this meeting.")
    st.stop()

render_sidebar("/meetings" if is_meeting_evaluator else "/my-meetings", key="meeting_session")

status = derive_meeting_status(meeting)
staff = meeting.get("staff") or {}
evaluator = meeting.get("evaluator") or {}

page_header(
    meeting_type_label(meeting.get("meeting_type")),
    f"{staff.get('full_name', '')} with {evaluator.get('full_name', '')} · "
    f"{format_datetime(meeting.get('scheduled_at'))}",
)
st.caption(f"Status: {status.label}")
description = MEETING_TYPE_DESCRIPTIONS.get(meeting.get("meeting_type"))
if description:
    st.info(description)

if meeting.get("location"):
    st.markdown(f"**Where:** {meeting['location']}")
if meeting.get("agenda"):
    st.markdown("**Agenda**")
    st.write(meeting["agenda"])

st.divider()

# ─── Notes ────────────────────────────────────────────────────────────────────

editable = is_meeting_evaluator and status is not MeetingStatus.COMPLETED

if editable:
    notes = st.text_area("Meeting notes", value=meeting.get("notes") or "", height=200)
    action_items = st.text_area("Action items", value=meeting.get("action_items") or "", height=150)

    save_col, complete_col = st.columns(2)
    with save_col:
        if st.button("Save Notes", use_container_width=True):
            _updates, error = save_meeting_notes(meeting, notes, action_items)
            if error:
                st.error(error)
            else:
                st.success("Notes saved.")
                st.rerun()
    with complete_col:
        confirm = st.checkbox("I have reviewed the notes with the staff member")
        if st.button("Complete Meeting", use_container_width=True, disabled=not confirm):
            _updates, error = complete_meeting(meeting, notes, action_items)
            if error:
                st.error(error)
            else:
                st.success("Meeting completed and signed.")
                st.rerun()
else:
    if meeting.get("notes"):
        st.markdown("**Meeting Notes**")
        st.write(meeting["notes"])
    if meeting.get("action_items"):
        st.markdown("**Action Items**")
        st.write(meeting["action_items"])

# ─── Sign-off ─────────────────────────────────────────────────────────────────

if status is MeetingStatus.COMPLETED:
    st.divider()
    st.markdown("### Sign-off")
    s1, s2 = st.columns(2)
    s1.markdown(f"**Evaluator:** {signature_text(meeting.get('evaluator_signed_at'))}")
    s2.markdown(f"**Staff:** {signature_text(meeting.get('staff_signed_at'))}")

    if is_meeting_staff and not meeting.get("staff_signed_at"):
        if st.button("Sign off on this meeting"):
            _updates, error = staff_sign_off(meeting)
            if error:
                st.error(error)
            else:
                st.success("Thank you. Your sign-off has been recorded.")
                st.rerun()

st.page_link(
    page_for("/meetings") if is_meeting_evaluator else page_for("/my-meetings"),
    label="← Back to meetings",
)
