"""
stafftrak/ui.py
Shared page chrome: the role-aware sidebar navigation.
"""

import html

import streamlit as st

from stafftrak.auth import get_current_profile, get_current_user, logout
from stafftrak.roles import get_badges, get_nav_links, page_for

C_NAVY   = "#2C3E7E"
C_BLUE   = "#477FC1"
C_ORANGE = "#F3843E"

_BADGE_COLOURS = {
    "Admin":     C_ORANGE,
    "Evaluator": C_ORANGE,
    "HR":        C_BLUE,
}


def badge_html(label: str, colour: str) -> str:
    return (
        f'<span style="background:{colour};color:#FFFFFF;padding:2px 8px;'
        f'border-radius:4px;font-size:0.75rem;margin-right:4px;">{html.escape(label)}</span>'
    )


def render_sidebar(current_path: str, key: str) -> None:
    """
    Render the navigation sidebar for the signed-in profile.

    Links come from the role table; links whose page is not part of this app
    are listed but not clickable.  key keeps the Sign Out button unique per
    page.
    """
    profile = get_current_profile() or {}
    role = profile.get("role")
    is_evaluator = profile.get("is_evaluator")

    with st.sidebar:
        st.markdown("### StaffTrak")
        for link in get_nav_links(role, is_evaluator):
            page = page_for(link.path)
            if page is None:
                st.caption(f"{link.label} (unavailable)")
                continue
            label = f"**{link.label}**" if link.path == current_path else link.label
            st.page_link(page, label=label)
        st.page_link(page_for("/rubrics"), label="Rubrics")

        st.divider()
        user = get_current_user()
        display_name = profile.get("full_name") or getattr(user, "email", "")
        if display_name:
            st.markdown(f"**{display_name}**")
        badges = sorted(get_badges(role, is_evaluator))
        if badges:
            st.markdown(
                "".join(badge_html(b, _BADGE_COLOURS[b]) for b in badges),
                unsafe_allow_html=True,
            )
        if st.button("Sign Out", key=f"sidebar_signout_{key}"):
            logout()


def page_header(title: str, subtitle: str = "") -> None:
    st.markdown(
        f"""
        <div style="margin-bottom:8px;">
          <h1 style="margin:0;font-size:2rem;font-weight:700;color:{C_NAVY};">{html.escape(title)}</h1>
          <p style="margin:4px 0 0;color:#666666;font-size:0.95rem;">{html.escape(subtitle)}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def pill_html(label: str, colour: str) -> str:
    return (
        f'<span style="background:{colour};color:#FFFFFF;padding:2px 8px;'
        f'border-radius:10px;font-size:0.75rem;">{html.escape(label)}</span>'
    )
