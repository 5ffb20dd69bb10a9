"""
pages/login.py
Sign-in page: password, Google and password reset.
"""

import streamlit as st

from stafftrak.auth import (
    get_google_sign_in_url,
    login_error_message,
    send_password_reset,
    sign_in_with_password,
    sign_up,
)
from stafftrak.roles import page_for

st.set_page_config(page_title="StaffTrak · Sign In", page_icon="📋", layout="centered")

for _key in ("user", "session", "profile"):
    if _key not in st.session_state:
        st.session_state[_key] = None

if st.session_state["user"] is not None:
    st.switch_page(page_for("/dashboard"))

# Errors arrive either as ?error=<code> or from a page that signed the user out.
error_code = st.query_params.get("error", None)
if isinstance(error_code, list):
    error_code = error_code[0] if error_code else None
error_code = st.session_state.pop("login_error", None) or error_code

st.markdown(
    """
    <style>
        .stButton > button {
            background-color: #2C3E7E;
            color: #FFFFFF;
            border: 1px solid #2C3E7E;
            font-weight: 600;
        }
        .stButton > button:hover {
            color: #FFFFFF;
            background-color: #1E2A5E;
        }
    </style>
    <div style="text-align:center;margin-bottom:1rem;">
      <h1 style="color:#2C3E7E;margin-bottom:0;">StaffTrak</h1>
      <p style="color:#666666;">Sign in to your account</p>
    </div>
    """,
    unsafe_allow_html=True,
)

message = login_error_message(error_code)
if message:
    st.error(message)

sign_in_tab, create_account_tab, reset_tab = st.tabs(["Sign In", "Create Account", "Forgot Password"])

with sign_in_tab:
    google_url = get_google_sign_in_url()
    if google_url:
        st.link_button("Sign in with Google", google_url, use_container_width=True)
        st.caption("or sign in with your email")

    email = st.text_input("Email", placeholder="you@school.org", key="sign_in_email")
    password = st.text_input("Password", type="password", key="sign_in_password")

    if st.button("Sign In", use_container_width=True):
        if not email or not password:
            st.warning("Email and password are required.")
        else:
            error = sign_in_with_password(email.strip(), password)
            if error is None:
                st.switch_page(page_for("/dashboard"))
            else:
                st.error(error)

with create_account_tab:
    register_email = st.text_input("Email", key="register_email")
    register_password = st.text_input("Password", type="password", key="register_password")
    confirm_password = st.text_input("Confirm password", type="password", key="confirm_password")

    if st.button("Create Account", use_container_width=True):
        if not all([register_email, register_password, confirm_password]):
            st.warning("All fields are required.")
        elif register_password != confirm_password:
            st.warning("Passwords must match.")
        else:
            error = sign_up(register_email.strip(), register_password)
            if error is None:
                st.success("Check your email for a confirmation link!")
            else:
                st.error(error)

with reset_tab:
    reset_email = st.text_input("Email", key="reset_email")
    if st.button("Send Reset Link", use_container_width=True):
        if not reset_email:
            st.warning("Enter the email address on your account.")
        else:
            error = send_password_reset(reset_email.strip())
            if error is None:
                st.success("If an account exists for that email, a reset link is on its way.")
            else:
                st.error(error)
