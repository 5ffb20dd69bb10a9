"""
stafftrak/db.py
Supabase connection helpers for StaffTrak.
All database access goes through this module.

WARNING: get_supabase_admin() returns a service-role client that bypasses
Row Level Security.  It must NEVER be passed to or called from frontend code.
"""

import logging
import os

import pandas as pd
import psycopg2
import streamlit as st
from psycopg2 import sql as pg_sql
from psycopg2.extras import RealDictCursor
from supabase import create_client, Client
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


# ─── Private helpers ─────────────────────────────────────────────────────────

def _get_secret(key: str, default: str | None = None) -> str | None:
    """
    Resolve a secret by name.

    Tries st.secrets first (Streamlit Cloud), then falls back to os.environ
    (local development via .env loaded above).  Returns default if the key is
    absent in both sources.
    """
    try:
        return st.secrets[key]
    except Exception:
        return os.environ.get(key, default)


# ─── Supabase client (used for Auth and table queries) ───────────────────────

def _new_anon_client() -> Client:
    url = _get_secret("SUPABASE_URL")
    key = _get_secret("SUPABASE_ANON_KEY")
    return create_client(url, key)


def session_client(state, factory=_new_anon_client) -> Client:
    """
    Return the Supabase client kept in one browser session's state.

    The client is built once per session and stored under
    'supabase_client'; the stored auth session is attached only then.
    Refresh tokens are single-use, so after every call the client's current
    session (refreshed by supabase-py when the access token expired) is
    written back to state['session'].
    """
    client = state.get("supabase_client")
    if client is None:
        client = factory()
        state["supabase_client"] = client
        session = state.get("session")
        access_token = getattr(session, "access_token", None)
        refresh_token = getattr(session, "refresh_token", None)
        if access_token and refresh_token:
            try:
                client.auth.set_session(access_token, refresh_token)
            except Exception as exc:
                logger.warning("Could not restore auth session on client: %s", exc)

    if state.get("session") is not None:
        try:
            current = client.auth.get_session()
        except Exception as exc:
            logger.warning("Could not refresh auth session: %s", exc)
            current = None
        if current is not None:
            state["session"] = current
    return client


def get_supabase_client() -> Client:
    """
    Return a Supabase client authenticated with the anon key.

    Inside a Streamlit run the client belongs to the browser session (see
    session_client), so auth state never bleeds between users.  Outside one
    a fresh anonymous client is returned.
    """
    if not _has_script_context():
        return _new_anon_client()
    return session_client(st.session_state)


# WARNING: the client returned below bypasses Row Level Security.
# Never pass it to frontend code or expose it in any user-facing path.

def get_supabase_admin() -> Client:
    """
    Return a Supabase client authenticated with the service-role key.

    Used ONLY for account linking in the auth callback, where the profile row
    must be rebound to a new identity id before the user owns it.
    """
    url = _get_secret("SUPABASE_URL")
    key = _get_secret("SUPABASE_SERVICE_ROLE_KEY")
    return create_client(url, key)


def _has_script_context() -> bool:
    """Return True when running inside a Streamlit script run."""
    try:
        from streamlit.runtime.scriptrunner import get_script_run_ctx
        return get_script_run_ctx() is not None
    except Exception:
        return False


# ─── Direct psycopg2 connection (used by reporting) ──────────────────────────

def get_pg_connection():
    """
    Return a raw psycopg2 connection to Supabase PostgreSQL.

    sslmode is set to 'require' and connect_timeout to 15 seconds.
    The caller is responsible for closing the connection when finished.
    """
    return psycopg2.connect(
        host=_get_secret("DB_HOST"),
        port=_get_secret("DB_PORT"),
        dbname=_get_secret("DB_NAME"),
        user=_get_secret("DB_USER"),
        password=_get_secret("DB_PASSWORD"),
        sslmode="require",
        connect_timeout=15,
    )


# ─── Cached query helper ─────────────────────────────────────────────────────

@st.cache_data(ttl=60, show_spinner=False, hash_funcs={pg_sql.Composed: repr})
def query_df(sql, params: tuple = ()) -> pd.DataFrame:
    """
    Execute a parameterised SELECT query and return results as a DataFrame.

    sql is a string or a psycopg2.sql composition (for queries that splice in
    a configured table name).

    Opens and closes its own psycopg2 connection.  Results are cached for 60
    seconds to reduce round-trips on repeated Streamlit reruns.  Returns an
    empty DataFrame (never None) when the query produces no rows.  Use for
    READ operations only.
    """
    conn = get_pg_connection()
    try:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
            if not rows:
                return pd.DataFrame()
            return pd.DataFrame(rows)
    finally:
        conn.close()


# ─── Supabase row helpers ────────────────────────────────────────────────────

def rows(response) -> list[dict]:
    """Return response.data as a list, treating a missing payload as empty."""
    data = getattr(response, "data", None)
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def first_row(response) -> dict | None:
    """Return the first row of a Supabase response, or None."""
    data = rows(response)
    return data[0] if data else None
