"""
Unit tests for the OAuth callback and sign-in helpers in stafftrak/auth.py.

Tests cover:
  - provider and session failures
  - domain allow-list rejection (no profile lookup, signed out)
  - profile found by id, linked by email, or missing
  - profiles_client routing and unexpected errors
  - Google sign-in: the PKCE verifier survives the redirect to a new client
"""
from urllib.parse import parse_qs, urlsplit

from tests.fakes import FakeClient, make_session, make_user

from stafftrak.auth import (
    LOGIN_STATE_TTL,
    CallbackOutcome,
    get_google_sign_in_url,
    handle_auth_callback,
    is_email_allowed,
    login_error_message,
    remember_code_verifier,
    take_code_verifier,
)

ALLOWED = ("summitlc.org", "scholarpathsystems.org")


# ── helpers ────────────────────────────────────────────────────────────────────

def signed_in_client(**user_kwargs):
    return FakeClient(session=make_session(make_user(**user_kwargs)))


# ── failures before a session exists ───────────────────────────────────────────

class TestSessionFailures:
    def test_provider_error_uses_description(self):
        client = FakeClient()
        result = handle_auth_callback(
            client, {"error": "access_denied", "error_description": "User cancelled"}, allowed=ALLOWED,
        )
        assert result.outcome is CallbackOutcome.PROVIDER_ERROR
        assert result.redirect_to == "/login?error=User%20cancelled"
        assert not result.ok
        assert client.executed == []

    def test_provider_error_without_description(self):
        result = handle_auth_callback(FakeClient(), {"error": "access_denied"}, allowed=ALLOWED)
        assert result.error_code == "access_denied"

    def test_no_session_and_no_code_is_auth_failed(self):
        result = handle_auth_callback(FakeClient(), {}, allowed=ALLOWED)
        assert result.outcome is CallbackOutcome.SESSION_ERROR
        assert result.redirect_to == "/login?error=auth_failed"

    def test_session_lookup_error_is_session_failed(self):
        client = FakeClient()
        client.auth.get_session_error = RuntimeError("boom")
        result = handle_auth_callback(client, {"code": "abc"}, allowed=ALLOWED)
        assert result.error_code == "session_failed"

    def test_reread_error_after_exchange_is_no_session(self):
        client = FakeClient(exchange_session=make_session(make_user()))
        client.auth.error_after_exchange = RuntimeError("storage gone")
        result = handle_auth_callback(client, {"code": "abc"}, allowed=ALLOWED)
        assert result.outcome is CallbackOutcome.SESSION_ERROR
        assert result.error_code == "no_session"
        assert client.executed == []

    def test_code_is_exchanged_when_no_session(self):
        session = make_session(make_user())
        client = FakeClient(exchange_session=session)
        client.queue("profiles", [{"id": "user-1", "email": "teacher@summitlc.org"}])
        result = handle_auth_callback(client, {"code": ["abc"]}, allowed=ALLOWED)
        assert client.auth.exchanged_with == {"auth_code": "abc"}
        assert result.outcome is CallbackOutcome.EXISTING_PROFILE
        assert result.session is session


# ── domain allow-list ──────────────────────────────────────────────────────────

class TestDomainRejection:
    def test_disallowed_domain_never_queries_profiles(self):
        client = signed_in_client(email="someone@gmail.com")
        result = handle_auth_callback(client, {"code": "abc"}, allowed=ALLOWED)
        assert result.outcome is CallbackOutcome.DOMAIN_NOT_ALLOWED
        assert result.redirect_to == "/login?error=domain_not_allowed"
        assert client.auth.signed_out
        assert client.executed == []

    def test_domain_match_is_case_insensitive(self):
        client = signed_in_client(email="Teacher@SummitLC.org")
        client.queue("profiles", [{"id": "user-1"}])
        result = handle_auth_callback(client, {}, allowed=ALLOWED)
        assert result.ok

    def test_subdomain_is_not_the_domain(self):
        assert not is_email_allowed("a@mail.summitlc.org", ALLOWED)
        assert not is_email_allowed("not-an-email", ALLOWED)
        assert is_email_allowed("anyone@example.com", ())

    def test_allow_list_from_environment(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_EMAIL_DOMAINS", "example.org, Other.org")
        assert is_email_allowed("x@other.org")
        assert not is_email_allowed("x@summitlc.org")


# ── profile resolution ─────────────────────────────────────────────────────────

class TestProfileResolution:
    def test_existing_profile_goes_to_dashboard(self):
        client = signed_in_client()
        profile = {"id": "user-1", "email": "teacher@summitlc.org", "role": "licensed_staff"}
        client.queue("profiles", [profile])
        result = handle_auth_callback(client, {}, allowed=ALLOWED)
        assert result.outcome is CallbackOutcome.EXISTING_PROFILE
        assert result.redirect_to == "/dashboard"
        assert result.profile == profile
        assert client.executed_on("profiles", "update") == []

    def test_email_profile_is_linked_to_identity(self):
        client = signed_in_client(user_id="google-42", full_name="Pat Teacher")
        provisioned = {"id": "csv-7", "email": "teacher@summitlc.org", "full_name": None}
        client.queue("profiles", [], [provisioned])

        result = handle_auth_callback(client, {}, allowed=ALLOWED)

        assert result.outcome is CallbackOutcome.LINKED_PROFILE
        assert result.redirect_to == "/dashboard"
        assert result.profile["id"] == "google-42"
        assert result.profile["full_name"] == "Pat Teacher"
        (update,) = client.executed_on("profiles", "update")
        assert update.payload == {"id": "google-42", "full_name": "Pat Teacher"}
        assert update.filters() == {"email": "teacher@summitlc.org"}

    def test_linking_keeps_existing_name(self):
        client = signed_in_client(user_id="google-42", name="Provider Name")
        client.queue("profiles", [], [{"id": "csv-7", "email": "teacher@summitlc.org",
                                       "full_name": "Stored Name"}])
        result = handle_auth_callback(client, {}, allowed=ALLOWED)
        assert result.profile["full_name"] == "Stored Name"

    def test_lookup_by_email_uses_lowercase(self):
        client = signed_in_client(email="Teacher@SummitLC.org")
        client.queue("profiles", [], [])
        handle_auth_callback(client, {}, allowed=ALLOWED)
        by_email = client.executed_on("profiles")[1]
        assert by_email.filters() == {"email": "teacher@summitlc.org"}

    def test_no_profile_signs_out(self):
        client = signed_in_client()
        result = handle_auth_callback(client, {}, allowed=ALLOWED)
        assert result.outcome is CallbackOutcome.ACCOUNT_NOT_FOUND
        assert result.redirect_to == "/login?error=account_not_found"
        assert client.auth.signed_out

    def test_profiles_client_handles_table_queries(self):
        client = signed_in_client()
        admin = FakeClient()
        admin.queue("profiles", [{"id": "user-1"}])
        result = handle_auth_callback(client, {}, profiles_client=admin, allowed=ALLOWED)
        assert result.ok
        assert client.executed == []
        assert len(admin.executed) == 1

    def test_unexpected_error(self):
        client = signed_in_client()
        client.fail = RuntimeError("connection reset")
        result = handle_auth_callback(client, {}, allowed=ALLOWED)
        assert result.outcome is CallbackOutcome.UNEXPECTED_ERROR
        assert result.redirect_to == "/login?error=unexpected_error"


# ── messages ───────────────────────────────────────────────────────────────────

def test_login_error_messages():
    assert "school email" in login_error_message("domain_not_allowed")
    assert login_error_message("Some provider text") == "Some provider text"
    assert login_error_message(None) is None


# ── Google sign-in across the redirect ─────────────────────────────────────────

def login_state_of(credentials):
    redirect_to = credentials["options"]["redirect_to"]
    return parse_qs(urlsplit(redirect_to).query)["login_state"][0]


class TestGoogleSignIn:
    def test_redirect_carries_login_state(self):
        client, store = FakeClient(), {}
        url = get_google_sign_in_url(client, store=store)
        assert url == "https://auth.example/authorize"
        (credentials,) = client.auth.oauth_requests
        assert credentials["provider"] == "google"
        assert credentials["options"]["redirect_to"].startswith("http://localhost:8501/auth_callback?")
        state = login_state_of(credentials)
        assert store[state][0] == "verifier-1"

    def test_callback_on_a_new_client_sends_the_verifier(self):
        store = {}
        starting_client = FakeClient()
        get_google_sign_in_url(starting_client, store=store)
        state = login_state_of(starting_client.auth.oauth_requests[0])

        session = make_session(make_user())
        callback_client = FakeClient(exchange_session=session)
        callback_client.queue("profiles", [{"id": "user-1"}])
        result = handle_auth_callback(
            callback_client, {"code": "abc", "login_state": state}, allowed=ALLOWED, store=store,
        )

        assert result.ok
        assert callback_client.auth.exchanged_with == {"auth_code": "abc", "code_verifier": "verifier-1"}
        assert store == {}

    def test_unknown_state_exchanges_without_verifier(self):
        client = FakeClient(exchange_session=make_session(make_user()))
        client.queue("profiles", [{"id": "user-1"}])
        handle_auth_callback(client, {"code": "abc", "login_state": "nope"}, allowed=ALLOWED, store={})
        assert client.auth.exchanged_with == {"auth_code": "abc"}

    def test_verifier_is_single_use(self):
        store = {}
        remember_code_verifier("s1", "v1", store)
        assert take_code_verifier("s1", store) == "v1"
        assert take_code_verifier("s1", store) is None
        assert take_code_verifier(None, store) is None

    def test_expired_verifiers_are_dropped(self, monkeypatch):
        store = {"old": ("v0", 0.0)}
        monkeypatch.setattr("stafftrak.auth.time.time", lambda: LOGIN_STATE_TTL + 10.0)
        remember_code_verifier("new", "v1", store)
        assert list(store) == ["new"]

    def test_provider_failure_returns_none(self):
        def unavailable(credentials):
            raise RuntimeError("down")

        client = FakeClient()
        client.auth.sign_in_with_oauth = unavailable
        store = {}
        assert get_google_sign_in_url(client, store=store) is None
        assert store == {}
