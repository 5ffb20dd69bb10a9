"""
app.py
StaffTrak: Staff Evaluation Management
Entry point. Handles routing and session initialisation.
"""

import streamlit as st
from stafftrak.auth import is_authenticated
from stafftrak.roles import page_for

st.set_page_config(
    page_title   = "StaffTrak",
    page_icon    = "📋",
    layout       = "wide",
    initial_sidebar_state = "expanded",
)

# ── Session state initialisation ─────────────────────────────────────────────
for _key in ("user", "session", "profile"):
    if _key not in st.session_state:
        st.session_state[_key] = None

# ── OAuth redirect landing on the root URL ───────────────────────────────────
if "code" in st.query_params or "error" in st.query_params:
    st.session_state["oauth_params"] = dict(st.query_params)
    st.switch_page(page_for("/auth/callback"))

# ── Routing ───────────────────────────────────────────────────────────────────
if not is_authenticated():
    st.switch_page(page_for("/login"))
else:
    st.switch_page(page_for("/dashboard"))
