"""
stafftrak/roles.py
Role-based navigation and route authorization for StaffTrak.

Everything here is a pure function of a profile's role and is_evaluator
fields, so pages and tests can call it without a session or a database.
"""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    DISTRICT_ADMIN = "district_admin"
    HR = "hr"
    LICENSED_STAFF = "licensed_staff"
    CLASSIFIED_STAFF = "classified_staff"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Return the Role for a stored role string, or None if unrecognised."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class NavTier(Enum):
    ADMIN = "admin"
    HR = "hr"
    EVALUATOR = "evaluator"
    STAFF = "staff"


@dataclass(frozen=True)
class NavLink:
    path: str
    label: str


# ─── Link sets ───────────────────────────────────────────────────────────────

_DASHBOARD        = NavLink("/dashboard", "Dashboard")
_STAFF            = NavLink("/staff", "Staff")
_OBSERVATIONS     = NavLink("/observations", "Observations")
_MEETINGS         = NavLink("/meetings", "Meetings")
_SUMMATIVES       = NavLink("/summatives", "Summatives")
_GOAL_APPROVALS   = NavLink("/goal-approvals", "Goal Approvals")
_LEAVE_TRACKER    = NavLink("/leave-tracker", "Leave Tracker")
_ODE_POSITION     = NavLink("/ode-staff-position", "ODE Position File")
_REPORTS          = NavLink("/reports", "Reports")
_MY_GOALS         = NavLink("/goals", "My Goals")
_SELF_REFLECTION  = NavLink("/self-reflection", "Self-Reflection")
_MY_OBSERVATIONS  = NavLink("/my-observations", "My Observations")
_MY_MEETINGS      = NavLink("/my-meetings", "My Meetings")
_MY_EVALUATION    = NavLink("/my-summative", "My Evaluation")

_SELF_SERVICE = (
    _MY_GOALS,
    _SELF_REFLECTION,
    _MY_OBSERVATIONS,
    _MY_MEETINGS,
    _MY_EVALUATION,
)

NAV_LINKS: dict[NavTier, tuple[NavLink, ...]] = {
    NavTier.ADMIN: (
        _DASHBOARD,
        _STAFF,
        _OBSERVATIONS,
        _MEETINGS,
        _SUMMATIVES,
        _GOAL_APPROVALS,
        _LEAVE_TRACKER,
        _ODE_POSITION,
        _REPORTS,
    ),
    NavTier.HR: (
        _DASHBOARD,
        _STAFF,
        _LEAVE_TRACKER,
        _ODE_POSITION,
        _REPORTS,
    ),
    NavTier.EVALUATOR: (
        _DASHBOARD,
        _STAFF,
        _OBSERVATIONS,
        _MEETINGS,
        _SUMMATIVES,
        _GOAL_APPROVALS,
        _REPORTS,
    ) + _SELF_SERVICE,
    NavTier.STAFF: (_DASHBOARD,) + _SELF_SERVICE,
}

# Routes every signed-in profile may open regardless of tier.
ALWAYS_ALLOWED = frozenset({"/dashboard", "/rubrics"})

# Logical route → Streamlit page script.  Routes missing here have no page in
# this app and render as unavailable in the sidebar.
PAGE_FILES = {
    "/login":        "pages/login.py",
    "/auth/callback": "pages/auth_callback.py",
    "/dashboard":    "pages/dashboard.py",
    "/staff":        "pages/staff.py",
    "/observations": "pages/observations.py",
    "/observations/:id": "pages/observation_session.py",
    "/my-observations": "pages/my_observations.py",
    "/meetings":     "pages/meetings.py",
    "/meetings/:id": "pages/meeting_session.py",
    "/my-meetings":  "pages/my_meetings.py",
    "/summatives":   "pages/summatives.py",
    "/summatives/:id": "pages/summative_evaluation.py",
    "/my-summative": "pages/my_summative.py",
    "/rubrics":      "pages/rubrics.py",
    "/reports":      "pages/reports.py",
}


# ─── Policy ──────────────────────────────────────────────────────────────────

def resolve_tier(role, is_evaluator: bool) -> NavTier:
    """
    Map a role and evaluator flag to a navigation tier.

    Precedence, first match wins:
      1. district_admin                 → ADMIN
      2. hr                             → HR
      3. is_evaluator or district_admin → EVALUATOR
      4. anything else                  → STAFF
    """
    role = Role.parse(role)
    if role is Role.DISTRICT_ADMIN:
        return NavTier.ADMIN
    if role is Role.HR:
        return NavTier.HR
    if is_evaluator or role is Role.DISTRICT_ADMIN:
        return NavTier.EVALUATOR
    return NavTier.STAFF


def get_nav_links(role, is_evaluator: bool) -> list[NavLink]:
    """Return the ordered navigation links for a role/evaluator combination."""
    return list(NAV_LINKS[resolve_tier(role, bool(is_evaluator))])


def has_evaluator_access(role, is_evaluator: bool) -> bool:
    """Admins always carry evaluator access; everyone else needs the flag."""
    return bool(is_evaluator) or Role.parse(role) is Role.DISTRICT_ADMIN


def get_badges(role, is_evaluator: bool) -> set[str]:
    """
    Return the badge labels shown next to the user's name.

    Admins get 'Admin' but never 'Evaluator', even though they have evaluator
    access.  HR staff who are also flagged evaluators carry both badges.
    """
    role = Role.parse(role)
    badges = set()
    if role is Role.DISTRICT_ADMIN:
        badges.add("Admin")
    elif has_evaluator_access(role, is_evaluator):
        badges.add("Evaluator")
    if role is Role.HR:
        badges.add("HR")
    return badges


def _parent_route(path: str) -> str:
    """'/meetings/42' → '/meetings'; top-level paths are returned unchanged."""
    parts = [p for p in path.split("/") if p]
    if len(parts) <= 1:
        return "/" + "/".join(parts)
    return "/" + parts[0]


def can_access(path: str, role, is_evaluator: bool) -> bool:
    """
    Return True if a profile with this role may open the given route.

    Detail routes inherit the access of their parent list route.
    """
    route = _parent_route(path)
    if route in ALWAYS_ALLOWED:
        return True
    return any(link.path == route for link in get_nav_links(role, is_evaluator))


def page_for(path: str) -> str | None:
    """Return the page script for a logical route, or None if not built."""
    return PAGE_FILES.get(path)
