"""
pages/auth_callback.py
OAuth landing page: links the Google identity to a StaffTrak profile.
"""

import streamlit as st

from stafftrak.auth import handle_auth_callback, set_session
from stafftrak.db import _get_secret, get_supabase_admin, get_supabase_client
from stafftrak.roles import page_for

st.set_page_config(page_title="StaffTrak", page_icon="📋", layout="centered")

params = st.session_state.pop("oauth_params", None) or dict(st.query_params)

client = get_supabase_client()
# Account linking rewrites a row the new identity does not own yet.
profiles_client = get_supabase_admin() if _get_secret("SUPABASE_SERVICE_ROLE_KEY") else client

with st.spinner("Verifying authentication..."):
    result = handle_auth_callback(client, params, profiles_client=profiles_client)

st.query_params.clear()

if result.ok:
    set_session(result.user, result.session, result.profile)
    st.switch_page(page_for("/dashboard"))
else:
    st.session_state["login_error"] = result.error_code
    st.switch_page(page_for("/login"))
