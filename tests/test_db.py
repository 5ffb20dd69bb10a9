"""
Unit tests for the per-session client in stafftrak/db.py.

Tests cover:
  - one client per browser session, the stored session attached once
  - refreshed tokens written back to session state
  - anonymous sessions and auth failures
"""
from types import SimpleNamespace

from tests.fakes import FakeClient

from stafftrak.db import first_row, rows, session_client


# ── helpers ────────────────────────────────────────────────────────────────────

def stored_session(refresh_token="refresh-1"):
    return SimpleNamespace(user=None, access_token="access-1", refresh_token=refresh_token)


class Factory:
    def __init__(self):
        self.built = []

    def __call__(self):
        client = FakeClient()
        self.built.append(client)
        return client


# ── session_client ─────────────────────────────────────────────────────────────

class TestSessionClient:
    def test_client_is_reused_within_a_session(self):
        state, factory = {"session": stored_session()}, Factory()
        first = session_client(state, factory)
        second = session_client(state, factory)
        assert first is second
        assert len(factory.built) == 1
        assert first.auth.set_session_calls == [("access-1", "refresh-1")]

    def test_refreshed_session_is_written_back(self):
        state, factory = {"session": stored_session()}, Factory()
        client = session_client(state, factory)

        # supabase-py rotates the refresh token when the access token expires
        client.auth.session = SimpleNamespace(user=None, access_token="access-2", refresh_token="refresh-2")
        session_client(state, factory)

        assert state["session"].refresh_token == "refresh-2"
        assert client.auth.set_session_calls == [("access-1", "refresh-1")]

    def test_anonymous_session_is_left_alone(self):
        state = {"session": None}
        client = session_client(state, Factory())
        assert client.auth.set_session_calls == []
        assert state["session"] is None

    def test_failed_refresh_keeps_the_stored_session(self):
        state, factory = {"session": stored_session()}, Factory()
        client = session_client(state, factory)
        client.auth.get_session_error = RuntimeError("refresh rejected")
        assert session_client(state, factory) is client
        assert state["session"].refresh_token == "refresh-1"

    def test_separate_sessions_get_separate_clients(self):
        factory = Factory()
        a = session_client({"session": None}, factory)
        b = session_client({"session": None}, factory)
        assert a is not b


# ── response helpers ───────────────────────────────────────────────────────────

def test_rows_and_first_row():
    assert rows(SimpleNamespace(data=None)) == []
    assert rows(SimpleNamespace(data={"id": 1})) == [{"id": 1}]
    assert first_row(SimpleNamespace(data=[])) is None
    assert first_row(SimpleNamespace(data=[{"id": 1}, {"id": 2}])) == {"id": 1}
