"""
pages/my_summative.py
Staff view of their own summative evaluation: review, comment, sign, download.
"""

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.evaluations import (
    NARRATIVE_FIELDS,
    fetch_domains_by_ids,
    fetch_latest_evaluation_for_staff,
    save_staff_comments,
    staff_sign_evaluation,
)
from stafftrak.pdf import build_summative_pdf, pdf_filename
from stafftrak.scoring import format_score, rating_colour, rating_for_score
from stafftrak.status import EvaluationStatus, derive_evaluation_status, signature_text
from stafftrak.ui import page_header, pill_html, render_sidebar

st.set_page_config(page_title="StaffTrak · My Evaluation", layout="wide")

profile = require_access("/my-summative")
render_sidebar("/my-summative", key="my_summative")

page_header("My Summative Evaluation")

evaluation = fetch_latest_evaluation_for_staff(profile["id"])
if evaluation is None:
    st.info("Your summative evaluation has not been shared with you yet.")
    st.stop()

status = derive_evaluation_status(evaluation)
evaluator = evaluation.get("evaluator") or {}
domain_scores = evaluation.get("domain_scores") or {}
domains = fetch_domains_by_ids(list(domain_scores))

c1, c2, c3 = st.columns(3)
c1.metric("Overall Score", format_score(evaluation.get("overall_score"), "N/A"))
rating = evaluation.get("overall_rating") or rating_for_score(evaluation.get("overall_score"))
c2.markdown(f"**Rating**<br>{pill_html(rating, rating_colour(rating))}", unsafe_allow_html=True)
c3.markdown(f"**Status**<br>{status.label}", unsafe_allow_html=True)
st.caption(f"Evaluator: {evaluator.get('full_name', '')}")

# ─── Domain scores ────────────────────────────────────────────────────────────

st.markdown("### Domain Scores")
for domain in domains:
    entry = domain_scores.get(str(domain["id"])) or {}
    with st.container(border=True):
        left, right = st.columns([4, 1])
        left.markdown(f"**{domain.get('name', '')}**")
        right.markdown(f"**{format_score(entry.get('score'))}** · {rating_for_score(entry.get('score'))}")
        if entry.get("feedback"):
            st.caption(entry["feedback"])

st.markdown("### Evaluator Feedback")
for field, label in NARRATIVE_FIELDS:
    if (evaluation.get(field) or "").strip():
        st.markdown(f"**{label}**")
        st.write(evaluation[field])

# ─── Sign-off ─────────────────────────────────────────────────────────────────

st.divider()
st.markdown("### Signatures")
s1, s2 = st.columns(2)
s1.markdown(f"**Evaluator:** {signature_text(evaluation.get('evaluator_signature_at'))}")
s2.markdown(f"**You:** {signature_text(evaluation.get('staff_signature_at'))}")

if status is EvaluationStatus.PENDING_STAFF_SIGNATURE:
    comments = st.text_area(
        "Your comments (optional)",
        value=evaluation.get("staff_comments") or "",
        height=150,
    )
    save_col, sign_col = st.columns(2)
    with save_col:
        if st.button("Save Comments", use_container_width=True):
            error = save_staff_comments(evaluation, comments)
            if error:
                st.error(error)
            else:
                st.success("Comments saved.")
                st.rerun()
    with sign_col:
        acknowledged = st.checkbox(
            "I acknowledge that I have received and reviewed this evaluation"
        )
        if st.button("Sign Evaluation", use_container_width=True, disabled=not acknowledged):
            _signed, error = staff_sign_evaluation(evaluation, comments)
            if error:
                st.error(error)
            else:
                st.success("Thank you. Your signature has been recorded.")
                st.rerun()
elif evaluation.get("staff_comments"):
    st.markdown("**Your Comments**")
    st.write(evaluation["staff_comments"])

st.download_button(
    "Download PDF",
    data=build_summative_pdf(evaluation, profile, evaluator, domains),
    file_name=pdf_filename(profile),
    mime="application/pdf",
)
