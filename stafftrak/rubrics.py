"""
stafftrak/rubrics.py
Read-only access to rubric reference data (rubric → domains → standards).
"""

import logging

from stafftrak.db import get_supabase_client, rows

logger = logging.getLogger(__name__)

STAFF_TYPE_LABELS = {
    "licensed":   "Licensed Staff",
    "classified": "Classified Staff",
}


def fetch_rubrics(client=None) -> list[dict]:
    """Return all rubrics ordered by staff type, then name."""
    client = client or get_supabase_client()
    try:
        response = (
            client.table("rubrics")
            .select("*")
            .order("staff_type")
            .order("name")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load rubrics: %s", exc, exc_info=True)
        return []


def fetch_domains(rubric_id: str, client=None) -> list[dict]:
    client = client or get_supabase_client()
    try:
        response = (
            client.table("rubric_domains")
            .select("*")
            .eq("rubric_id", rubric_id)
            .order("sort_order")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load domains for rubric %s: %s", rubric_id, exc, exc_info=True)
        return []


def fetch_standards(domain_ids: list, client=None) -> list[dict]:
    """Return the standards for a set of domains.  No domains → no query."""
    if not domain_ids:
        return []
    client = client or get_supabase_client()
    try:
        response = (
            client.table("rubric_standards")
            .select("*")
            .in_("domain_id", list(domain_ids))
            .order("sort_order")
            .execute()
        )
        return rows(response)
    except Exception as exc:
        logger.error("Failed to load standards: %s", exc, exc_info=True)
        return []


def group_standards_by_domain(standards: list[dict]) -> dict:
    """domain_id → standards, preserving sort order."""
    grouped: dict = {}
    for standard in standards:
        grouped.setdefault(standard.get("domain_id"), []).append(standard)
    return grouped


def group_rubrics_by_staff_type(rubrics: list[dict]) -> dict:
    """
    Group rubrics under a display heading.

    Known staff types come first in a fixed order; anything else is grouped
    under its raw value.
    """
    grouped = {label: [] for label in STAFF_TYPE_LABELS.values()}
    for rubric in rubrics:
        staff_type = rubric.get("staff_type") or "other"
        label = STAFF_TYPE_LABELS.get(staff_type, staff_type.replace("_", " ").title())
        grouped.setdefault(label, []).append(rubric)
    return {label: items for label, items in grouped.items() if items}


def load_rubric_detail(rubric_id: str, client=None) -> tuple[list[dict], dict]:
    """Return (domains, standards grouped by domain id) for one rubric."""
    client = client or get_supabase_client()
    domains = fetch_domains(rubric_id, client)
    standards = fetch_standards([d["id"] for d in domains], client)
    return domains, group_standards_by_domain(standards)
