"""
stafftrak/auth.py
Session management, sign-in helpers and the OAuth callback flow for StaffTrak.
Wraps Supabase Auth so the rest of the app never calls it directly.
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote

import streamlit as st

from stafftrak.db import _get_secret, first_row, get_supabase_client
from stafftrak.roles import can_access, page_for

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_DOMAINS = ("summitlc.org", "scholarpathsystems.org")

# Error codes carried to the login page as ?error=<code>.
LOGIN_ERROR_MESSAGES = {
    "domain_not_allowed": (
        "Please sign in with your school email address. "
        "Personal accounts are not allowed."
    ),
    "account_not_found": (
        "No StaffTrak account exists for this email. "
        "Contact your district administrator to be added."
    ),
    "session_failed":   "We couldn't verify your session. Please try again.",
    "auth_failed":      "Sign-in could not be completed. Please try again.",
    "no_session":       "Your sign-in session has expired. Please sign in again.",
    "unexpected_error": "Something went wrong during sign-in. Please try again.",
    "inactive_account": "Your account has been deactivated. Contact your administrator.",
}


def login_error_message(code: str | None) -> str | None:
    """
    Return the human-readable message for a login error code.

    Known codes map to fixed text; anything else (e.g. a provider's own
    error description) is shown as-is.
    """
    if not code:
        return None
    return LOGIN_ERROR_MESSAGES.get(code, code)


# ─── Session accessors ────────────────────────────────────────────────────────

def get_current_user():
    """
    Return the current authenticated Supabase user from session state.

    The object carries at minimum 'id' and 'email'.  Returns None if no
    active session exists.
    """
    return st.session_state.get("user", None)


def get_current_user_id() -> str | None:
    """Return the current user's UUID string, or None if not authenticated."""
    user = get_current_user()
    return getattr(user, "id", None) if user is not None else None


def get_current_profile() -> dict | None:
    """Return the signed-in user's profiles row, or None."""
    return st.session_state.get("profile", None)


def is_authenticated() -> bool:
    """Return True if a user session is currently active."""
    return get_current_user() is not None


def set_session(user, session, profile: dict | None) -> None:
    """Store the authenticated user, session and profile for this browser session."""
    st.session_state["user"] = user
    st.session_state["session"] = session
    st.session_state["profile"] = profile


# ─── Auth guards ──────────────────────────────────────────────────────────────

def require_auth() -> dict:
    """
    Guard for pages that require authentication.

    Redirects to the login page when no session is active.  When the user is
    signed in but has no loaded profile, the profile is fetched once; an
    unprovisioned or deactivated account is signed out.  Returns the profile.
    """
    if not is_authenticated():
        st.switch_page(page_for("/login"))

    profile = get_current_profile()
    if profile is None:
        profile = load_profile(get_current_user_id())
        if profile is None:
            logout(error="account_not_found")
        st.session_state["profile"] = profile

    if profile.get("is_active") is False:
        logout(error="inactive_account")
    return profile


def require_access(path: str) -> dict:
    """
    Guard for role-restricted pages.

    Unauthorised users are sent back to the dashboard, matching what the
    navigation would have shown them.
    """
    profile = require_auth()
    if not can_access(path, profile.get("role"), profile.get("is_evaluator")):
        st.warning("You don't have permission to view this page.")
        st.switch_page(page_for("/dashboard"))
    return profile


# ─── Sign-in helpers ─────────────────────────────────────────────────────────

def allowed_domains() -> tuple[str, ...]:
    """Return the accepted email domains, honouring ALLOWED_EMAIL_DOMAINS."""
    configured = _get_secret("ALLOWED_EMAIL_DOMAINS")
    if not configured:
        return DEFAULT_ALLOWED_DOMAINS
    return tuple(d.strip().lower() for d in configured.split(",") if d.strip())


def is_email_allowed(email: str | None, domains=None) -> bool:
    """
    Return True if the email's domain is on the allow-list.

    An empty allow-list accepts every address.
    """
    domains = tuple(d.lower() for d in (allowed_domains() if domains is None else domains))
    if not domains:
        return True
    if not email or "@" not in email:
        return False
    return email.lower().rsplit("@", 1)[1] in domains


def app_url(path: str = "") -> str:
    base = (_get_secret("APP_URL") or "http://localhost:8501").rstrip("/")
    return f"{base}/{path.lstrip('/')}" if path else base


def load_profile(user_id: str | None, client=None) -> dict | None:
    """Fetch a profiles row by auth identity id.  Returns None on miss or error."""
    if user_id is None:
        return None
    client = client or get_supabase_client()
    try:
        response = (
            client.table("profiles")
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        return first_row(response)
    except Exception as exc:
        logger.error("Profile lookup failed for %s: %s", user_id, exc, exc_info=True)
        return None


def sign_in_with_password(email: str, password: str, client=None) -> str | None:
    """
    Sign in with email and password and populate session state.

    Returns None on success, otherwise the error message to display.
    """
    client = client or get_supabase_client()
    try:
        response = client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as exc:
        logger.info("Password sign-in rejected for %s: %s", email, exc)
        return str(exc) or "Invalid email or password. Please try again."

    if not (response and response.user and response.session):
        return "Invalid email or password. Please try again."

    profile = load_profile(response.user.id, client)
    if profile is None:
        _safe_sign_out(client)
        return login_error_message("account_not_found")
    if profile.get("is_active") is False:
        _safe_sign_out(client)
        return login_error_message("inactive_account")

    set_session(response.user, response.session, profile)
    return None


def sign_up(email: str, password: str, client=None) -> str | None:
    """
    Create an auth identity.  Returns None on success or an error message.

    Accounts still need a pre-provisioned profile to get past sign-in.
    """
    if not is_email_allowed(email):
        return login_error_message("domain_not_allowed")
    client = client or get_supabase_client()
    try:
        client.auth.sign_up({"email": email, "password": password})
    except Exception as exc:
        logger.info("Sign-up failed for %s: %s", email, exc)
        return str(exc) or "Could not create account. Please try again."
    return None


LOGIN_STATE_PARAM = "login_state"
LOGIN_STATE_TTL = 600  # seconds a started Google sign-in stays redeemable


@st.cache_resource
def _pending_logins() -> dict:
    """
    Process-wide map of login state → (PKCE code verifier, created).

    The callback runs on a different client (often a different browser
    session) than the one that started sign-in, so the verifier cannot stay
    in that client's auth storage.
    """
    return {}


def _stored_code_verifier(client) -> str | None:
    storage = getattr(client.auth, "_storage", None)
    storage_key = getattr(client.auth, "_storage_key", None)
    if storage is None or storage_key is None:
        return None
    return storage.get_item(f"{storage_key}-code-verifier")


def remember_code_verifier(state: str, verifier: str, store=None) -> None:
    """Keep a verifier for the callback, dropping expired entries."""
    store = _pending_logins() if store is None else store
    now = time.time()
    for key, (_verifier, created) in list(store.items()):
        if now - created > LOGIN_STATE_TTL:
            store.pop(key, None)
    store[state] = (verifier, now)


def take_code_verifier(state: str | None, store=None) -> str | None:
    """Pop the verifier saved for a login state.  Each state is redeemable once."""
    if not state:
        return None
    store = _pending_logins() if store is None else store
    entry = store.pop(state, None)
    if entry is None:
        return None
    verifier, created = entry
    if time.time() - created > LOGIN_STATE_TTL:
        return None
    return verifier


def get_google_sign_in_url(client=None, store=None) -> str | None:
    """
    Return the provider URL that starts Google sign-in, or None on failure.

    A random login state travels in the redirect URL so the callback can
    find the PKCE code verifier generated here.
    """
    client = client or get_supabase_client()
    state = secrets.token_urlsafe(16)
    redirect_to = f"{app_url('auth_callback')}?{LOGIN_STATE_PARAM}={state}"
    try:
        response = client.auth.sign_in_with_oauth(
            {
                "provider": "google",
                "options": {"redirect_to": redirect_to},
            }
        )
    except Exception as exc:
        logger.error("Could not start Google sign-in: %s", exc, exc_info=True)
        return None

    verifier = _stored_code_verifier(client)
    if verifier:
        remember_code_verifier(state, verifier, store)
    return getattr(response, "url", None)


def send_password_reset(email: str, client=None) -> str | None:
    """Dispatch a password reset email.  Returns None on success or an error message."""
    client = client or get_supabase_client()
    try:
        client.auth.reset_password_for_email(
            email, {"redirect_to": app_url("login")}
        )
    except Exception as exc:
        logger.error("Password reset failed for %s: %s", email, exc, exc_info=True)
        return "Could not send reset email. Please try again."
    return None


# ─── OAuth callback ──────────────────────────────────────────────────────────

class CallbackOutcome(Enum):
    PROVIDER_ERROR = "provider_error"
    SESSION_ERROR = "session_error"
    DOMAIN_NOT_ALLOWED = "domain_not_allowed"
    EXISTING_PROFILE = "existing_profile"
    LINKED_PROFILE = "linked_profile"
    ACCOUNT_NOT_FOUND = "account_not_found"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class CallbackResult:
    outcome: CallbackOutcome
    redirect_to: str
    error_code: str | None = None
    user: object = None
    session: object = None
    profile: dict | None = field(default=None)

    @property
    def ok(self) -> bool:
        return self.outcome in (CallbackOutcome.EXISTING_PROFILE, CallbackOutcome.LINKED_PROFILE)


def _login_redirect(code: str) -> str:
    return f"/login?error={quote(code, safe='')}"


def _failure(outcome: CallbackOutcome, code: str) -> CallbackResult:
    return CallbackResult(outcome=outcome, redirect_to=_login_redirect(code), error_code=code)


def _safe_sign_out(client) -> None:
    try:
        client.auth.sign_out()
    except Exception as exc:
        logger.warning("Sign-out during rejection failed: %s", exc)


def _param(params, key: str) -> str | None:
    value = params.get(key) if params else None
    if isinstance(value, list):
        value = value[0] if value else None
    return value or None


def _provider_name(user) -> str | None:
    metadata = getattr(user, "user_metadata", None) or {}
    return metadata.get("full_name") or metadata.get("name")


def _exchange_params(params, store=None) -> dict | None:
    code = _param(params, "code")
    if not code:
        return None
    exchange = {"auth_code": code}
    verifier = take_code_verifier(_param(params, LOGIN_STATE_PARAM), store)
    if verifier:
        exchange["code_verifier"] = verifier
    return exchange


def _resolve_session(client, params, store=None):
    """
    Return (session, error_code).

    Reads the current session and, if there is none, exchanges the callback
    code (with its saved PKCE verifier) for one before reading it again.
    """
    try:
        session = client.auth.get_session()
    except Exception as exc:
        logger.error("Session lookup failed: %s", exc, exc_info=True)
        return None, "session_failed"

    if session is None:
        exchange = _exchange_params(params, store)
        try:
            response = client.auth.exchange_code_for_session(exchange) if exchange else None
        except Exception as exc:
            logger.error("Code exchange failed: %s", exc, exc_info=True)
            response = None
        if response is None or getattr(response, "session", None) is None:
            return None, "auth_failed"

    try:
        session = client.auth.get_session()
    except Exception as exc:
        logger.error("Session re-read after exchange failed: %s", exc, exc_info=True)
        return None, "no_session"
    if session is None:
        return None, "no_session"
    return session, None


def handle_auth_callback(client, params, profiles_client=None, allowed=None,
                         store=None) -> CallbackResult:
    """
    Reconcile an OAuth redirect with a StaffTrak profile.

    client owns the auth session; profiles_client (default: client) is used
    for the profiles table so account linking can run with elevated rights.
    store holds the PKCE verifiers saved by get_google_sign_in_url.
    Terminal outcomes:
      provider error      → /login?error=<provider description or code>
      no usable session   → /login?error=session_failed|auth_failed|no_session
      domain not allowed  → signed out, /login?error=domain_not_allowed
      profile by id       → /dashboard
      profile by email    → id rebound to the identity, name backfilled, /dashboard
      no profile          → signed out, /login?error=account_not_found
    """
    profiles_client = profiles_client or client
    try:
        provider_error = _param(params, "error")
        if provider_error:
            description = _param(params, "error_description")
            logger.warning("OAuth provider error: %s (%s)", provider_error, description)
            return _failure(CallbackOutcome.PROVIDER_ERROR, description or provider_error)

        session, error_code = _resolve_session(client, params, store)
        if session is None:
            return _failure(CallbackOutcome.SESSION_ERROR, error_code)

        user = session.user
        email = (user.email or "").lower()

        if not is_email_allowed(email, allowed):
            logger.info("Rejected sign-in from disallowed domain: %s", email)
            _safe_sign_out(client)
            return _failure(CallbackOutcome.DOMAIN_NOT_ALLOWED, "domain_not_allowed")

        profile = first_row(
            profiles_client.table("profiles").select("*").eq("id", user.id).limit(1).execute()
        )
        if profile:
            return CallbackResult(
                outcome=CallbackOutcome.EXISTING_PROFILE,
                redirect_to="/dashboard",
                user=user,
                session=session,
                profile=profile,
            )

        # Pre-provisioned accounts (CSV import) exist only by email until first login.
        email_profile = first_row(
            profiles_client.table("profiles").select("*").eq("email", email).limit(1).execute()
        )
        if email_profile:
            updates = {
                "id": user.id,
                "full_name": email_profile.get("full_name") or _provider_name(user),
            }
            try:
                profiles_client.table("profiles").update(updates).eq("email", email).execute()
            except Exception as exc:
                logger.error("Profile link failed for %s: %s", email, exc, exc_info=True)
            return CallbackResult(
                outcome=CallbackOutcome.LINKED_PROFILE,
                redirect_to="/dashboard",
                user=user,
                session=session,
                profile={**email_profile, **updates},
            )

        logger.info("No provisioned profile for %s", email)
        _safe_sign_out(client)
        return _failure(CallbackOutcome.ACCOUNT_NOT_FOUND, "account_not_found")

    except Exception as exc:
        logger.error("Auth callback failed: %s", exc, exc_info=True)
        return _failure(CallbackOutcome.UNEXPECTED_ERROR, "unexpected_error")


# ─── Session teardown ─────────────────────────────────────────────────────────

def logout(error: str | None = None) -> None:
    """
    Sign the current user out and redirect to the login page.

    Clears the user, session, profile and cached client from
    st.session_state, calls Supabase Auth sign_out to invalidate the
    server-side session token, then redirects.  Any error from sign_out is ignored; the local session is
    always cleared.  When error is given it is passed to the login page as
    ?error=<code>.
    """
    client = None
    try:
        client = get_supabase_client()
    except Exception as exc:
        logger.warning("Could not build client for sign-out: %s", exc)
    for key in ("user", "session", "profile", "supabase_client"):
        st.session_state.pop(key, None)
    if client is not None:
        _safe_sign_out(client)
    if error:
        st.session_state["login_error"] = error
    st.switch_page(page_for("/login"))
