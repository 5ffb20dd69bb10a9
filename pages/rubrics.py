"""
pages/rubrics.py
Read-only rubric browser: rubric → domains → standards.
"""

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.rubrics import fetch_rubrics, group_rubrics_by_staff_type, load_rubric_detail
from stafftrak.ui import page_header, render_sidebar

st.set_page_config(page_title="StaffTrak · Rubrics", layout="wide")

require_access("/rubrics")
render_sidebar("/rubrics", key="rubrics")

page_header("Evaluation Rubrics")

rubrics = fetch_rubrics()
if not rubrics:
    st.info("No rubrics found.")
    st.stop()

for heading, group in group_rubrics_by_staff_type(rubrics).items():
    st.markdown(f"### {heading}")
    for rubric in group:
        with st.expander(rubric.get("name") or "Untitled rubric", expanded=False):
            if rubric.get("description"):
                st.caption(rubric["description"])
            domains, standards = load_rubric_detail(rubric["id"])
            if not domains:
                st.info("This rubric has no domains yet.")
                continue
            for domain in domains:
                st.markdown(f"#### {domain.get('name', '')}")
                if domain.get("description"):
                    st.write(domain["description"])
                for standard in standards.get(domain["id"], []):
                    code = standard.get("code")
                    title = f"**{code}** {standard.get('name', '')}" if code else f"**{standard.get('name', '')}**"
                    st.markdown(f"- {title}")
                    if standard.get("description"):
                        st.caption(standard["description"])
