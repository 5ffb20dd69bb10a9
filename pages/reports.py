"""
pages/reports.py
District reporting: rating distribution, meeting completion, CSV export.
"""

import plotly.express as px
import streamlit as st

from stafftrak.auth import require_access
from stafftrak.reports import (
    RATING_ORDER,
    evaluation_export,
    load_evaluation_overview,
    load_meetings,
    meeting_completion_by_evaluator,
    rating_distribution,
)
from stafftrak.scoring import RATING_COLOURS
from stafftrak.ui import page_header, render_sidebar

st.set_page_config(page_title="StaffTrak · Reports", layout="wide")

require_access("/reports")
render_sidebar("/reports", key="reports")

page_header("Reports", "Summative ratings and meeting completion across the district")

try:
    df_evals = load_evaluation_overview()
    df_meetings = load_meetings()
except Exception as error:
    st.error(f"Database error: {error}")
    st.stop()

# ─── Summative ratings ────────────────────────────────────────────────────────

st.markdown("## Summative Ratings")

if df_evals.empty:
    st.info("No staff data available yet.")
else:
    signed = df_evals["staff_signature_at"].notna().sum()
    submitted = df_evals["evaluator_signature_at"].notna().sum()
    m1, m2, m3 = st.columns(3)
    m1.metric("Active Staff", len(df_evals))
    m2.metric("Submitted by Evaluator", int(submitted))
    m3.metric("Signed by Staff", int(signed))

    dist = rating_distribution(df_evals)
    fig = px.bar(
        dist,
        x="rating",
        y="count",
        color="rating",
        category_orders={"rating": RATING_ORDER},
        color_discrete_map={**RATING_COLOURS, "N/A": "#888888"},
        labels={"rating": "Rating", "count": "Staff"},
        text="count",
    )
    fig.update_layout(
        height=380,
        showlegend=False,
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        margin=dict(t=30, b=40, l=40, r=20),
    )
    st.plotly_chart(fig, use_container_width=True)
    st.caption("Staff without a rated evaluation are counted under N/A.")

    export = evaluation_export(df_evals)
    st.dataframe(export, use_container_width=True, hide_index=True)
    st.download_button(
        "Download CSV",
        data=export.to_csv(index=False).encode("utf-8"),
        file_name="summative_ratings.csv",
        mime="text/csv",
    )

st.divider()

# ─── Meeting completion ───────────────────────────────────────────────────────

st.markdown("## Meeting Completion by Evaluator")

if df_meetings.empty:
    st.info("No meetings scheduled yet.")
else:
    completion = meeting_completion_by_evaluator(df_meetings)
    st.dataframe(completion, use_container_width=True, hide_index=True)
