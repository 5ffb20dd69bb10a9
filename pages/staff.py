"""
pages/staff.py
Staff directory.  Admins and HR can add, edit, import, archive and
reactivate staff; evaluators see their assigned caseload.
"""

from datetime import date

import streamlit as st

from stafftrak.auth import require_access
from stafftrak.roles import Role
from stafftrak.staff import (
    POSITION_OPTIONS,
    ROLE_LABELS,
    create_profile,
    fetch_evaluators,
    fetch_existing_emails,
    fetch_staff,
    import_profiles,
    position_label,
    prepare_import,
    role_label,
    set_profile_active,
    staff_type_for_role,
    update_profile,
)
from stafftrak.ui import page_header, render_sidebar

st.set_page_config(page_title="StaffTrak · Staff", layout="wide")

profile = require_access("/staff")
render_sidebar("/staff", key="staff")

role = Role.parse(profile.get("role"))
can_manage = role in (Role.DISTRICT_ADMIN, Role.HR)

page_header("Staff", "District directory" if can_manage else "Your assigned staff")

evaluators = fetch_evaluators()
evaluator_names = {e["id"]: e.get("full_name") for e in evaluators}
evaluator_options = [None] + [e["id"] for e in evaluators]
role_options = [r.value for r in ROLE_LABELS]


def _position_options(selected_role: str) -> list[str]:
    return list(POSITION_OPTIONS[staff_type_for_role(selected_role)])


def _index(options: list, value) -> int:
    return options.index(value) if value in options else 0


def profile_form(key: str, member: dict | None = None) -> dict | None:
    """Add / edit form.  Returns the submitted fields, or None."""
    member = member or {}
    # Role sits outside the form so the position list follows it.
    selected_role = st.selectbox(
        "Role",
        role_options,
        index=_index(role_options, member.get("role") or Role.LICENSED_STAFF.value),
        format_func=role_label,
        key=f"{key}_role",
    )
    positions = _position_options(selected_role)
    with st.form(f"{key}_form"):
        full_name = st.text_input("Full name *", value=member.get("full_name") or "")
        email = st.text_input(
            "Email *", value=member.get("email") or "", disabled=bool(member),
            placeholder="name@summitlc.org",
        )
        col_pos, col_eval = st.columns(2)
        with col_pos:
            position = st.selectbox(
                "Position", positions,
                index=_index(positions, member.get("position_type")),
                format_func=position_label,
            )
        with col_eval:
            evaluator_id = st.selectbox(
                "Evaluator", evaluator_options,
                index=_index(evaluator_options, member.get("evaluator_id")),
                format_func=lambda eid: "Unassigned" if eid is None else evaluator_names.get(eid, eid),
            )
        col_hire, col_years = st.columns(2)
        with col_hire:
            hire_date = st.date_input(
                "Hire date",
                value=date.fromisoformat(member["hire_date"]) if member.get("hire_date") else None,
            )
        with col_years:
            years = st.number_input(
                "Years at school", min_value=0, step=1, value=int(member.get("years_at_school") or 1),
            )
        is_evaluator = st.checkbox("Can evaluate staff", value=bool(member.get("is_evaluator")))
        submitted = st.form_submit_button("Save" if member else "Add Staff Member",
                                          use_container_width=True)
    if not submitted:
        return None
    return {
        "full_name": full_name,
        "email": email,
        "role": selected_role,
        "position_type": position,
        "evaluator_id": evaluator_id,
        "hire_date": hire_date,
        "years_at_school": int(years),
        "is_evaluator": is_evaluator,
    }


# ─── Provisioning (admins and HR) ────────────────────────────────────────────

if can_manage:
    add_tab, import_tab = st.tabs(["Add Staff Member", "Import from CSV"])

    with add_tab:
        fields = profile_form("add_staff")
        if fields is not None:
            _created, error = create_profile(fields)
            if error:
                st.error(error)
            else:
                st.success(f"{fields['full_name'].strip()} added.")
                st.rerun()

    with import_tab:
        st.caption(
            "Columns: full_name (or name), email, staff_type (Certified / Classified), "
            "position, hire_date. Names like 'SMITH, MARY J' are reformatted."
        )
        upload = st.file_uploader("Roster CSV", type=["csv"], key="staff_import_file")
        if upload is not None:
            try:
                prepared = prepare_import(upload, fetch_existing_emails())
            except Exception as exc:
                st.error(f"Could not read {upload.name}: {exc}")
                prepared = None

            if prepared is not None:
                included = int(prepared["include"].sum()) if not prepared.empty else 0
                c1, c2, c3 = st.columns(3)
                c1.metric("Ready to import", included)
                c2.metric("Duplicate emails", int((prepared["issue"] == "Duplicate email").sum()))
                c3.metric("Missing emails", int((prepared["issue"] == "Missing email").sum()))

                edited = st.data_editor(
                    prepared,
                    use_container_width=True,
                    hide_index=True,
                    disabled=["row", "staff_type", "issue"],
                    column_config={
                        "include": st.column_config.CheckboxColumn("Import"),
                        "role": st.column_config.SelectboxColumn("Role", options=role_options),
                    },
                    key="staff_import_preview",
                )
                if st.button(f"Import {int(edited['include'].sum())} staff", disabled=edited.empty,
                             use_container_width=True):
                    edited["staff_type"] = edited["role"].map(staff_type_for_role)
                    with st.spinner("Importing..."):
                        results = import_profiles(edited)
                    st.success(f"Imported {results['success']} staff. Skipped {results['skipped']}.")
                    for name, message in results["errors"]:
                        st.warning(f"{name}: {message}")

    st.divider()

# ─── Directory ───────────────────────────────────────────────────────────────

if can_manage:
    show_archived = st.toggle("Show archived staff", value=False)
    staff = fetch_staff(include_inactive=show_archived)
else:
    staff = fetch_staff(evaluator_id=profile["id"])

search = st.text_input("Search", placeholder="Name or email", label_visibility="collapsed")
if search:
    needle = search.lower()
    staff = [
        s for s in staff
        if needle in (s.get("full_name") or "").lower() or needle in (s.get("email") or "").lower()
    ]

if not staff:
    st.info("No staff found.")
    st.stop()

widths = [3, 3, 2, 2, 2, 1, 1] if can_manage else [3, 3, 2, 2, 2]
header = st.columns(widths)
titles = ["Name", "Email", "Role", "Position", "Evaluator"] + (["", ""] if can_manage else [])
for col, title in zip(header, titles):
    col.markdown(f"**{title}**")

editing_id = st.session_state.get("editing_staff_id")

for member in staff:
    row = st.columns(widths)
    name = member.get("full_name") or "—"
    if not member.get("is_active", True):
        name += " (archived)"
    row[0].write(name)
    row[1].write(member.get("email") or "—")
    row[2].write(role_label(member.get("role")))
    row[3].write(position_label(member.get("position_type")))
    row[4].write(evaluator_names.get(member.get("evaluator_id")) or "—")
    if not can_manage:
        continue

    if row[5].button("Edit", key=f"edit_{member['id']}"):
        st.session_state["editing_staff_id"] = None if editing_id == member["id"] else member["id"]
        st.rerun()
    if member["id"] != profile["id"]:
        active = member.get("is_active", True)
        label = "Archive" if active else "Reactivate"
        if row[6].button(label, key=f"toggle_active_{member['id']}"):
            error = set_profile_active(member["id"], not active)
            if error:
                st.error(error)
            else:
                st.rerun()

    if editing_id == member["id"]:
        with st.container(border=True):
            fields = profile_form(f"edit_{member['id']}", member)
            if fields is not None:
                fields.pop("email")
                error = update_profile(member["id"], fields)
                if error:
                    st.error(error)
                else:
                    st.session_state["editing_staff_id"] = None
                    st.rerun()
