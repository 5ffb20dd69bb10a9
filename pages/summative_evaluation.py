"""
pages/summative_evaluation.py
Evaluator form for one staff member's summative evaluation.

Scores each rubric domain 1–4 with feedback, captures the narrative sections,
and saves as draft or submits for the staff member's signature.
"""

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.evaluations import (
    NARRATIVE_FIELDS,
    fetch_evaluation,
    fetch_rubric_for_staff,
    fetch_staff_profile,
    save_evaluation,
    submit_evaluation,
)
from stafftrak.pdf import build_summative_pdf, pdf_filename
from stafftrak.roles import Role, page_for
from stafftrak.rubrics import fetch_domains
from stafftrak.scoring import calculate_overall_score, format_score, rating_colour, rating_for_score
from stafftrak.status import EvaluationStatus, derive_evaluation_status, is_locked, signature_text
from stafftrak.ui import page_header, pill_html, render_sidebar

SCORE_LABELS = {
    None: "Not scored",
    1: "1 - Needs Improvement",
    2: "2 - Developing",
    3: "3 - Effective",
    4: "4 - Highly Effective",
}

st.set_page_config(page_title="StaffTrak · Summative Evaluation", layout="wide")

profile = require_access("/summatives/:id")
render_sidebar("/summatives", key="summative_evaluation")

staff_id = st.query_params.get("staff", None) or st.session_state.get("summative_staff_id")
if not staff_id:
    st.error("No staff member specified.")
    st.page_link(page_for("/summatives"), label="← Back to summatives")
    st.stop()

staff = fetch_staff_profile(staff_id)
if staff is None:
    st.error("Staff member not found.")
    st.stop()

is_admin = Role.parse(profile.get("role")) is Role.DISTRICT_ADMIN
if staff.get("evaluator_id") != profile["id"] and not is_admin:
    st.error("You are not the assigned evaluator for this staff member.")
    st.stop()

# Admins review whichever evaluator wrote the newest evaluation.
evaluation = fetch_evaluation(staff_id, None if is_admin else profile["id"])
author_id = (evaluation or {}).get("evaluator_id") or staff.get("evaluator_id") or profile["id"]
evaluator = profile if author_id == profile["id"] else (fetch_staff_profile(author_id) or profile)
rubric = fetch_rubric_for_staff(staff)
domains = fetch_domains(rubric["id"]) if rubric else []
status = derive_evaluation_status(evaluation)
locked = status is not EvaluationStatus.DRAFT

page_header(
    f"Summative Evaluation: {staff.get('full_name', '')}",
    " · ".join(filter(None, [staff.get("position_type"), rubric.get("name") if rubric else None])),
)
st.markdown(pill_html(status.label, "#27AE60" if locked else "#6B7280"), unsafe_allow_html=True)
if evaluator is not profile:
    st.caption(f"Evaluator: {evaluator.get('full_name', '')}")

if rubric is None:
    st.warning("No active rubric matches this staff member's staff type.")
    st.stop()

# ─── Domain scores ────────────────────────────────────────────────────────────

stored_scores = (evaluation or {}).get("domain_scores") or {}
domain_scores: dict = {}

st.markdown("### Domain Scores")
for domain in domains:
    key = str(domain["id"])
    stored = stored_scores.get(key) or {}
    with st.container(border=True):
        st.markdown(f"**{domain.get('name', '')}**")
        if domain.get("description"):
            st.caption(domain["description"])
        options = list(SCORE_LABELS)
        current = stored.get("score")
        current = int(current) if current in (1, 2, 3, 4, "1", "2", "3", "4") else None
        score = st.radio(
            "Score",
            options=options,
            index=options.index(current),
            format_func=SCORE_LABELS.get,
            horizontal=True,
            key=f"score_{key}",
            disabled=locked,
        )
        feedback = st.text_area(
            "Feedback",
            value=stored.get("feedback") or "",
            key=f"feedback_{key}",
            disabled=locked,
        )
    domain_scores[key] = {"score": score, "feedback": feedback}

overall = calculate_overall_score(domain_scores)
rating = rating_for_score(overall)
st.markdown(
    f"**Overall score:** {format_score(overall, 'N/A')} &nbsp; "
    + pill_html(rating, rating_colour(rating)),
    unsafe_allow_html=True,
)

# ─── Narrative ────────────────────────────────────────────────────────────────

st.markdown("### Evaluator Feedback")
narrative = {}
for field, label in NARRATIVE_FIELDS:
    narrative[field] = st.text_area(
        label,
        value=(evaluation or {}).get(field) or "",
        key=f"narrative_{field}",
        disabled=locked,
    )

# ─── Actions ──────────────────────────────────────────────────────────────────

if not locked:
    save_col, submit_col = st.columns(2)
    with save_col:
        if st.button("Save Draft", use_container_width=True):
            _saved, error = save_evaluation(evaluation, staff_id, evaluator["id"], domain_scores, narrative)
            if error:
                st.error(error)
            else:
                st.success("Draft saved.")
                st.rerun()
    with submit_col:
        confirm = st.checkbox("I have reviewed this evaluation and sign it as evaluator")
        if st.button("Submit for Staff Signature", use_container_width=True, disabled=not confirm):
            _saved, error = submit_evaluation(evaluation, staff, evaluator, domain_scores, narrative)
            if error:
                st.error(error)
            else:
                st.success("Evaluation submitted. The staff member has been notified.")
                st.rerun()
else:
    st.divider()
    st.markdown("### Signatures")
    s1, s2 = st.columns(2)
    s1.markdown(f"**Evaluator:** {signature_text(evaluation.get('evaluator_signature_at'))}")
    s2.markdown(f"**Staff:** {signature_text(evaluation.get('staff_signature_at'))}")
    if evaluation.get("staff_comments"):
        st.markdown("**Employee Comments**")
        st.write(evaluation["staff_comments"])
    if is_locked(evaluation):
        st.caption("Both parties have signed. This evaluation is final.")

if evaluation:
    st.download_button(
        "Download PDF",
        data=build_summative_pdf(evaluation, staff, evaluator, domains),
        file_name=pdf_filename(staff),
        mime="application/pdf",
    )

st.page_link(page_for("/summatives"), label="← Back to summatives")
