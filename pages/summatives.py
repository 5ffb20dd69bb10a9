"""
pages/summatives.py
Evaluator overview of summative evaluations for assigned staff.
"""

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.evaluations import fetch_evaluations_for_staff_ids
from stafftrak.roles import Role, page_for
from stafftrak.scoring import format_score
from stafftrak.staff import fetch_staff
from stafftrak.status import derive_evaluation_status, format_date
from stafftrak.ui import page_header, render_sidebar

st.set_page_config(page_title="StaffTrak · Summatives", layout="wide")

profile = require_access("/summatives")
render_sidebar("/summatives", key="summatives")

page_header("Summative Evaluations", "End-of-cycle evaluations for your staff")

# District admins see every active staff member; evaluators see their caseload.
if Role.parse(profile.get("role")) is Role.DISTRICT_ADMIN:
    staff = [s for s in fetch_staff() if s["id"] != profile["id"]]
else:
    staff = fetch_staff(evaluator_id=profile["id"])

if not staff:
    st.info("No staff are assigned to you.")
    st.stop()

latest = fetch_evaluations_for_staff_ids([s["id"] for s in staff])

header = st.columns([3, 2, 1, 2, 2, 1])
for col, title in zip(header, ["Staff Member", "Position", "Score", "Rating", "Status", ""]):
    col.markdown(f"**{title}**")

for member in staff:
    evaluation = latest.get(member["id"])
    row = st.columns([3, 2, 1, 2, 2, 1])
    row[0].write(member.get("full_name") or member.get("email"))
    row[1].write(member.get("position_type") or "—")
    row[2].write(format_score((evaluation or {}).get("overall_score")))
    row[3].write((evaluation or {}).get("overall_rating") or "—")
    if evaluation:
        status_text = derive_evaluation_status(evaluation).label
        completed = format_date(evaluation.get("completed_at"))
        row[4].write(f"{status_text} ({completed})" if completed else status_text)
    else:
        row[4].write("Not started")
    if row[5].button("Open", key=f"open_summative_{member['id']}"):
        st.session_state["summative_staff_id"] = member["id"]
        st.query_params["staff"] = member["id"]
        st.switch_page(page_for("/summatives/:id"))
